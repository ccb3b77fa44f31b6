"""Tests for runtime wiring: components built from Settings run one full cycle."""

from __future__ import annotations

from backend_insights.cache import MemoryCacheBackend
from backend_insights.config import Settings
from backend_insights.database import JobStatus
from backend_insights.runtime import build_runtime

BASE_TS = 1_704_067_200


def test_build_runtime_runs_cycle(tmp_path, fake_source, make_payment):
    fake_source.records = [make_payment("p1", BASE_TS + 5), make_payment("p2", BASE_TS + 7205)]
    settings = Settings(db_path=tmp_path / "rt.db", sync_interval_sec=60)
    runtime = build_runtime(settings, source=fake_source)
    try:
        assert isinstance(runtime.cache_backend, MemoryCacheBackend)
        result = runtime.sync.run_cycle()
        assert result.ingestion.inserted == 2
        assert runtime.service.get_cursor(settings.ingest_task_name) == "2"
        job = runtime.db.get_aggregation_job(settings.aggregation_job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.last_processed_hour == BASE_TS + 7200
        summaries = runtime.service.list_corridor_summaries(BASE_TS, BASE_TS + 3 * 3600)
        assert summaries[0].tx_count == 2
    finally:
        runtime.close()
