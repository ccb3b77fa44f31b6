"""
Aggregation job lifecycle: pending -> running -> completed | failed.

Every transition is a compare-and-set on the job row, so two processes can
never both move the same job to running. The watermark (last_processed_hour)
only moves forward and only on completion. retry_count counts consecutive
failures: it is zeroed when a run completes, and a failed job may be re-run
until it exceeds max_retries.
"""

from __future__ import annotations

from backend_insights.core.exceptions import (
    InvalidJobTransition,
    JobNotFound,
    RetryLimitExceeded,
)
from backend_insights.database import AggregationJob, Database, JobStatus
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 5


class AggregationJobManager:
    def __init__(self, db: Database, *, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self._db = db
        self._max_retries = max(0, int(max_retries))

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def get(self, job_id: str) -> AggregationJob | None:
        return self._db.get_aggregation_job(job_id)

    def _require(self, job_id: str) -> AggregationJob:
        job = self._db.get_aggregation_job(job_id)
        if job is None:
            raise JobNotFound(job_id, f"aggregation job {job_id!r} does not exist")
        return job

    def start(self, job_id: str, job_type: str) -> AggregationJob:
        """
        Create the job in pending if absent, then move it to running.

        Completed and failed jobs start a new run from their watermark.

        Raises:
            InvalidJobTransition: job is already running (or changed concurrently).
            RetryLimitExceeded: job failed more than max_retries times in a row.
        """
        if self._db.create_aggregation_job(job_id, job_type):
            logger.info("job_created", job_id=job_id, job_type=job_type)
        job = self._require(job_id)
        if job.status == JobStatus.RUNNING:
            raise InvalidJobTransition(job_id, f"job {job_id!r} is already running")
        if job.status == JobStatus.FAILED and job.retry_count > self._max_retries:
            raise RetryLimitExceeded(
                job_id,
                f"job {job_id!r} exceeded {self._max_retries} retries "
                f"(retry_count={job.retry_count})",
            )
        if not self._db.transition_aggregation_job(job_id, [job.status], JobStatus.RUNNING):
            raise InvalidJobTransition(
                job_id, f"job {job_id!r} changed state concurrently (was {job.status.value})"
            )
        logger.info(
            "job_transition",
            job_id=job_id,
            from_status=job.status.value,
            to_status=JobStatus.RUNNING.value,
            retry_count=job.retry_count,
        )
        return self._require(job_id)

    def complete(self, job_id: str, last_hour: int | None) -> AggregationJob:
        """
        running -> completed; advance the watermark to last_hour if it is not behind
        and clear retry_count.

        Raises:
            JobNotFound, InvalidJobTransition
        """
        job = self._require(job_id)
        if not self._db.transition_aggregation_job(
            job_id,
            [JobStatus.RUNNING],
            JobStatus.COMPLETED,
            reset_retry=True,
            last_processed_hour=last_hour,
        ):
            raise InvalidJobTransition(
                job_id, f"cannot complete job {job_id!r} from {job.status.value}"
            )
        updated = self._require(job_id)
        logger.info(
            "job_transition",
            job_id=job_id,
            from_status=JobStatus.RUNNING.value,
            to_status=JobStatus.COMPLETED.value,
            last_processed_hour=updated.last_processed_hour,
        )
        return updated

    def fail(self, job_id: str, error: str) -> AggregationJob:
        """
        running -> failed; record the error and increment retry_count.

        Raises:
            JobNotFound, InvalidJobTransition
        """
        job = self._require(job_id)
        if not self._db.transition_aggregation_job(
            job_id,
            [JobStatus.RUNNING],
            JobStatus.FAILED,
            error_message=error,
            increment_retry=True,
        ):
            raise InvalidJobTransition(job_id, f"cannot fail job {job_id!r} from {job.status.value}")
        updated = self._require(job_id)
        logger.warning(
            "job_transition",
            job_id=job_id,
            from_status=JobStatus.RUNNING.value,
            to_status=JobStatus.FAILED.value,
            retry_count=updated.retry_count,
            error=error,
        )
        return updated

    def reset_interrupted(self, job_id: str) -> bool:
        """Mark a job left running by a dead process as failed. Returns True if one was reset."""
        reset = self._db.transition_aggregation_job(
            job_id,
            [JobStatus.RUNNING],
            JobStatus.FAILED,
            error_message="interrupted",
            increment_retry=True,
        )
        if reset:
            logger.warning("job_reset_interrupted", job_id=job_id)
        return reset
