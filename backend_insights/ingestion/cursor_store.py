"""
Per-task durable watermark of the last successfully ingested position.

The store does not validate or order positions; callers only advance after the
batch a position guards has been persisted.
"""

from __future__ import annotations

from backend_insights.database import Database


class CursorStore:
    """Thin owner of the ingestion_state table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get(self, task_name: str) -> str | None:
        return self._db.get_ingestion_cursor(task_name)

    def set(self, task_name: str, position: str) -> None:
        """Atomic upsert; readers see either the old or the new position."""
        self._db.update_ingestion_cursor(task_name, position)
