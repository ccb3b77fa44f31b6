"""
Application-level exceptions.

One root (InsightsError) with a branch per pipeline stage so callers can
decide what to retry: ingest failures leave the cursor untouched, cache read
failures surface to the caller, cache write failures never leave CacheAside,
job failures are recorded on the job row.
"""

from __future__ import annotations

from typing import Any


class InsightsError(Exception):
    """Base exception for all backend_insights failures."""


class ConfigError(InsightsError):
    """Raised for invalid runtime configuration."""


# --- Ingestion ---


class IngestionFailure(InsightsError):
    """Raised when an ingestion run fails; the cursor is left unchanged."""

    def __init__(self, message: str, *, task_name: str | None = None) -> None:
        super().__init__(message)
        self.task_name = task_name


class PersistenceFailure(InsightsError):
    """Store read or write failed; safe to retry the whole operation."""


class RemoteFetchFailure(IngestionFailure):
    """Remote source unreachable or returned a malformed batch."""


class BatchPersistenceFailure(IngestionFailure, PersistenceFailure):
    """Batch could not be stored; the run aborts before cursor advancement."""


# --- Cache ---


class CacheBackendError(InsightsError):
    """Raised by cache backends for any transport or server error."""


class CacheReadFailure(InsightsError):
    """Cache backend could not be read; never treated as a miss."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"cache read failed for key {key!r}: {message}")
        self.key = key


class CacheWriteFailure(InsightsError):
    """Cache backend rejected a write. Logged and swallowed by CacheAside."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"cache write failed for key {key!r}: {message}")
        self.key = key


# --- Validation ---


class ValidationFailure(InsightsError, ValueError):
    """Malformed input parameter; carries the parameter name and offending value."""

    def __init__(self, param: str, value: Any, message: str) -> None:
        super().__init__(message)
        self.param = param
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": "INVALID_PARAMETER",
            "param": self.param,
            "value": repr(self.value),
            "message": str(self),
        }


# --- Aggregation jobs ---


class JobFailure(InsightsError):
    """Base for aggregation job lifecycle errors."""

    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(message)
        self.job_id = job_id


class JobNotFound(JobFailure):
    """No aggregation job row exists for the job id."""


class InvalidJobTransition(JobFailure):
    """Requested status transition is not allowed from the current status."""


class RetryLimitExceeded(JobFailure):
    """Failed job has used up its configured retries."""


# --- Analytics ---


class MuxedAddressError(InsightsError, ValueError):
    """Address is not a decodable multiplexed (M...) account."""
