"""
Tests for the SQLite backend and Database facade: idempotent payment inserts,
time-range reads, wholesale hourly upserts and job compare-and-set.
"""

from __future__ import annotations

import dataclasses

import pytest

from backend_insights.core.exceptions import PersistenceFailure, ValidationFailure
from backend_insights.database import (
    AnchorMetricsHistoryRecord,
    HourlyCorridorMetric,
    IngestionCursor,
    JobStatus,
    SQLiteBackend,
)
BASE_TS = 1_704_067_200


def test_ingestion_cursor_upsert(db):
    assert db.get_ingestion_cursor("payments") is None
    db.update_ingestion_cursor("payments", "100")
    db.update_ingestion_cursor("payments", "200")
    assert db.get_ingestion_cursor("payments") == "200"
    assert db.get_ingestion_cursor("other") is None


def test_duplicate_payment_is_noop(db, make_payment):
    """Second insert of the same id neither errors nor changes the stored row."""
    original = make_payment("p1", amount=10.0)
    assert db.save_payments([original]) == 1
    replay = dataclasses.replace(original, amount=999.0, tx_hash="other")
    assert db.save_payments([replay]) == 0
    assert db.get_payment("p1") == original
    assert db.count_payments() == 1


def test_save_payments_counts_only_new_rows(db, make_payment):
    db.save_payments([make_payment("p1"), make_payment("p2")])
    inserted = db.save_payments([make_payment("p2"), make_payment("p3"), make_payment("p3")])
    assert inserted == 1
    assert db.count_payments() == 3


def test_save_empty_batch(db):
    assert db.save_payments([]) == 0


def test_payment_fields_round_trip(db, make_payment, usdc_issuer):
    p = make_payment(
        "p1",
        asset_type="credit_alphanum4",
        asset_code="USDC",
        asset_issuer=usdc_issuer,
        source_asset_type="native",
        successful=False,
        settlement_time_ms=1500,
    )
    db.save_payments([p])
    stored = db.get_payment("p1")
    assert stored == p
    assert stored.successful is False
    assert db.get_payment("missing") is None


def test_fetch_payments_by_timerange_is_half_open(db, make_payment):
    db.save_payments(
        [
            make_payment("a", created_at=BASE_TS - 1),
            make_payment("b", created_at=BASE_TS),
            make_payment("c", created_at=BASE_TS + 10),
            make_payment("d", created_at=BASE_TS + 3600),
        ]
    )
    rows = db.fetch_payments_by_timerange(BASE_TS, BASE_TS + 3600)
    assert [p.id for p in rows] == ["b", "c"]


def test_payment_time_bounds(db, make_payment):
    assert db.get_payment_time_bounds() is None
    db.save_payments([make_payment("a", created_at=BASE_TS + 5), make_payment("b", created_at=BASE_TS)])
    assert db.get_payment_time_bounds() == (BASE_TS, BASE_TS + 5)


def test_hourly_upsert_replaces_row(db):
    first = HourlyCorridorMetric("XLM:native->XLM:native", BASE_TS, 100.0, 4, 3, 1200.0)
    second = HourlyCorridorMetric("XLM:native->XLM:native", BASE_TS, 50.0, 2, 2, None)
    db.upsert_hourly_corridor_metrics([first])
    db.upsert_hourly_corridor_metric(second)
    rows = db.fetch_hourly_metrics_by_timerange(BASE_TS, BASE_TS + 3600)
    assert rows == [second]


def test_fetch_hourly_metrics_for_corridors(db):
    db.upsert_hourly_corridor_metrics(
        [
            HourlyCorridorMetric("A->B", BASE_TS, 1.0, 1, 1),
            HourlyCorridorMetric("B->C", BASE_TS, 2.0, 1, 1),
            HourlyCorridorMetric("A->B", BASE_TS + 3600, 3.0, 1, 0),
            HourlyCorridorMetric("A->B", BASE_TS + 7200, 4.0, 1, 0),
        ]
    )
    rows = db.fetch_hourly_metrics_for_corridors(["A->B", "A->B"], BASE_TS, BASE_TS + 7200)
    assert [(r.corridor_key, r.hour_bucket) for r in rows] == [
        ("A->B", BASE_TS),
        ("A->B", BASE_TS + 3600),
    ]
    with pytest.raises(ValidationFailure):
        db.fetch_hourly_metrics_for_corridors([], BASE_TS, BASE_TS + 3600)


def test_job_transition_is_compare_and_set(db):
    assert db.create_aggregation_job("job", "hourly") is True
    assert db.create_aggregation_job("job", "hourly") is False
    assert db.get_aggregation_job("job").status == JobStatus.PENDING
    assert db.transition_aggregation_job("job", [JobStatus.RUNNING], JobStatus.COMPLETED) is False
    assert db.transition_aggregation_job("job", [JobStatus.PENDING], JobStatus.RUNNING) is True
    assert db.get_aggregation_job("job").status == JobStatus.RUNNING
    assert db.transition_aggregation_job("missing", [JobStatus.PENDING], JobStatus.RUNNING) is False


def test_job_watermark_never_rewinds(db):
    db.create_aggregation_job("job", "hourly")
    db.transition_aggregation_job(
        "job", [JobStatus.PENDING], JobStatus.COMPLETED, last_processed_hour=BASE_TS + 7200
    )
    db.transition_aggregation_job(
        "job", [JobStatus.COMPLETED], JobStatus.COMPLETED, last_processed_hour=BASE_TS
    )
    assert db.get_aggregation_job("job").last_processed_hour == BASE_TS + 7200
    db.transition_aggregation_job("job", [JobStatus.COMPLETED], JobStatus.FAILED, increment_retry=True)
    job = db.get_aggregation_job("job")
    assert job.last_processed_hour == BASE_TS + 7200
    assert job.retry_count == 1
    db.transition_aggregation_job("job", [JobStatus.FAILED], JobStatus.COMPLETED, reset_retry=True)
    assert db.get_aggregation_job("job").retry_count == 0


def test_muxed_payment_accounts_match_uppercase_prefix_only(db, make_payment, muxed, account):
    m = muxed(3, 7)
    db.save_payments(
        [
            make_payment("p1", source_account=m),
            make_payment("p2", destination_account=m.lower()),
            make_payment("p3"),
        ]
    )
    assert db.fetch_muxed_payment_accounts() == [(m, account(2))]


def test_anchor_metrics_history_newest_first(db):
    def record(ts: int, score: float) -> AnchorMetricsHistoryRecord:
        return AnchorMetricsHistoryRecord(
            id=None,
            anchor_account="GANCHOR",
            timestamp=ts,
            success_rate=score,
            failure_rate=100 - score,
            reliability_score=score,
            status="healthy",
            total_transactions=10,
            successful_transactions=9,
            failed_transactions=1,
        )

    db.insert_anchor_metrics(record(BASE_TS, 90.0))
    db.insert_anchor_metrics(record(BASE_TS + 60, 95.0))
    history = db.get_anchor_metrics_history("GANCHOR", limit=10)
    assert [h.timestamp for h in history] == [BASE_TS + 60, BASE_TS]
    assert all(h.id is not None for h in history)
    assert len(db.get_anchor_metrics_history("GANCHOR", limit=1)) == 1
    assert db.get_anchor_metrics_history("GOTHER") == []


def test_unopenable_database_raises_persistence_failure(tmp_path):
    """A directory path cannot be opened as a database file."""
    backend = SQLiteBackend(tmp_path)
    with pytest.raises(PersistenceFailure):
        backend.ensure_schema()


def test_backend_cursor_row_carries_update_time(tmp_path):
    backend = SQLiteBackend(tmp_path / "cursor.db")
    backend.ensure_schema()
    backend.update_ingestion_cursor("payments", "100", BASE_TS)
    backend.update_ingestion_cursor("payments", "200", BASE_TS + 5)
    state = backend.get_ingestion_cursor("payments")
    assert isinstance(state, IngestionCursor)
    assert (state.task_name, state.last_cursor, state.updated_at) == ("payments", "200", BASE_TS + 5)
