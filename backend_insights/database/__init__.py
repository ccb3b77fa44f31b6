"""
Database abstraction layer: ingestion cursors, payments, hourly corridor
metrics, aggregation jobs and anchor metrics history.

Uses SQLite via Database and get_database(); backend is swappable for PostgreSQL.
"""

from backend_insights.database.database import (
    Database,
    DatabaseBackend,
    SQLiteBackend,
    get_database,
)
from backend_insights.database.models import (
    AggregationJob,
    AnchorMetricsHistoryRecord,
    CorridorSummary,
    HourlyCorridorMetric,
    IngestionCursor,
    JobStatus,
    PaymentRecord,
)
from backend_insights.database.query_builder import MAX_IN_CLAUSE_KEYS, build_in_clause

__all__ = [
    "Database",
    "DatabaseBackend",
    "SQLiteBackend",
    "get_database",
    "AggregationJob",
    "AnchorMetricsHistoryRecord",
    "CorridorSummary",
    "HourlyCorridorMetric",
    "IngestionCursor",
    "JobStatus",
    "PaymentRecord",
    "MAX_IN_CLAUSE_KEYS",
    "build_in_clause",
]
