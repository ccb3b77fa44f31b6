"""
Incremental payment ingestion: cursor -> remote batch -> idempotent save -> cursor.

The remote source is at-least-once; duplicates are absorbed by the payments
primary key. The cursor is written strictly after the batch is durable, so a
failure anywhere leaves the next run to retry the same range.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, Sequence

from backend_insights.core.exceptions import (
    BatchPersistenceFailure,
    IngestionFailure,
    PersistenceFailure,
    RemoteFetchFailure,
)
from backend_insights.database import Database, PaymentRecord
from backend_insights.ingestion.cursor_store import CursorStore
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

START_OF_HISTORY = "0"


class PaymentSource(Protocol):
    """Remote source returning records after position in cursor order."""

    def fetch_since(self, position: str) -> tuple[Sequence[PaymentRecord], str]:
        ...


@dataclass(frozen=True)
class IngestionResult:
    task_name: str
    fetched: int
    inserted: int
    previous_cursor: str
    cursor: str

    @property
    def duplicates(self) -> int:
        return self.fetched - self.inserted


class PaymentIngestor:
    """Runs one ingestion pass per call; callers serialize runs per task."""

    def __init__(self, source: PaymentSource, cursor_store: CursorStore, db: Database) -> None:
        self._source = source
        self._cursors = cursor_store
        self._db = db

    def run(self, task_name: str) -> IngestionResult:
        """
        Fetch the next batch after the stored cursor, persist it, then advance.

        Raises:
            RemoteFetchFailure: source errored; cursor unchanged.
            BatchPersistenceFailure: batch or cursor write failed; cursor unchanged.
        """
        start = time.monotonic()
        try:
            previous = self._cursors.get(task_name)
        except PersistenceFailure as error:
            raise BatchPersistenceFailure(
                f"cannot read cursor: {error}", task_name=task_name
            ) from error
        position = previous if previous is not None else START_OF_HISTORY

        try:
            records, next_position = self._source.fetch_since(position)
        except IngestionFailure:
            logger.warning("ingest_fetch_failed", task=task_name, cursor=position)
            raise
        except Exception as error:
            logger.warning(
                "ingest_fetch_failed", task=task_name, cursor=position, error=str(error)
            )
            raise RemoteFetchFailure(
                f"remote fetch failed at cursor {position}: {error}", task_name=task_name
            ) from error

        try:
            inserted = self._db.save_payments(list(records))
        except PersistenceFailure as error:
            logger.error(
                "ingest_batch_failed",
                task=task_name,
                cursor=position,
                batch_size=len(records),
                error=str(error),
            )
            raise BatchPersistenceFailure(
                f"batch persistence failed at cursor {position}: {error}", task_name=task_name
            ) from error

        logger.info(
            "ingest_batch_saved",
            task=task_name,
            fetched=len(records),
            inserted=inserted,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )

        if next_position != position:
            try:
                self._cursors.set(task_name, next_position)
            except PersistenceFailure as error:
                raise BatchPersistenceFailure(
                    f"cursor update failed: {error}", task_name=task_name
                ) from error
            logger.info(
                "ingest_cursor_advanced", task=task_name, previous=position, cursor=next_position
            )

        return IngestionResult(
            task_name=task_name,
            fetched=len(records),
            inserted=inserted,
            previous_cursor=position,
            cursor=next_position,
        )
