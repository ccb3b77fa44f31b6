"""
One pipeline cycle: ingest new payments, then extend hourly aggregates.

Aggregation resumes from the job watermark (last_processed_hour) and covers up
to the hour after the newest stored payment. The newest hour is recomputed on
every cycle since it may still be receiving payments; the idempotent
recompute makes that harmless.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from backend_insights.aggregation import AggregationJobManager, HourlyAggregator
from backend_insights.aggregation.hourly import AggregationResult
from backend_insights.database import Database
from backend_insights.database.models import HOUR_SECONDS, hour_bucket
from backend_insights.ingestion import IngestionResult, PaymentIngestor
from backend_insights.insights_logging import get_logger, task_context

logger = get_logger(__name__)

AGGREGATION_JOB_TYPE = "hourly_corridor"


@dataclass(frozen=True)
class CycleResult:
    ingestion: IngestionResult
    aggregation: AggregationResult | None


class SyncService:
    def __init__(
        self,
        db: Database,
        ingestor: PaymentIngestor,
        aggregator: HourlyAggregator,
        jobs: AggregationJobManager,
        *,
        task_name: str,
        job_id: str,
    ) -> None:
        self._db = db
        self._ingestor = ingestor
        self._aggregator = aggregator
        self._jobs = jobs
        self._task_name = task_name
        self._job_id = job_id

    @property
    def job_id(self) -> str:
        return self._job_id

    def reset_interrupted(self) -> bool:
        return self._jobs.reset_interrupted(self._job_id)

    def run_cycle(self) -> CycleResult:
        """
        Raises:
            IngestionFailure: cursor unchanged, aggregation skipped.
            JobFailure: job could not be started (running elsewhere or out of retries).
            InsightsError: aggregation failed; the job is recorded as failed first.
        """
        t0 = time.monotonic()
        with task_context(self._task_name, job_id=self._job_id):
            ingestion = self._ingestor.run(self._task_name)
            aggregation = self._aggregate()
        logger.info(
            "sync_cycle_done",
            task=self._task_name,
            fetched=ingestion.fetched,
            inserted=ingestion.inserted,
            buckets=aggregation.buckets if aggregation else 0,
            duration_ms=round((time.monotonic() - t0) * 1000, 2),
        )
        return CycleResult(ingestion=ingestion, aggregation=aggregation)

    def _aggregate(self) -> AggregationResult | None:
        bounds = self._db.get_payment_time_bounds()
        if bounds is None:
            logger.debug("sync_aggregation_skipped", reason="no_payments")
            return None
        first_ts, last_ts = bounds
        job = self._jobs.start(self._job_id, AGGREGATION_JOB_TYPE)
        try:
            if job.last_processed_hour is not None:
                start = job.last_processed_hour
            else:
                start = hour_bucket(first_ts)
            end = hour_bucket(last_ts) + HOUR_SECONDS
            result = self._aggregator.aggregate(start, end)
        except Exception as error:
            self._jobs.fail(self._job_id, str(error))
            raise
        self._jobs.complete(self._job_id, result.end - HOUR_SECONDS)
        return result
