"""
Database abstraction layer for ingestion cursors, payments, hourly corridor
metrics, aggregation jobs and anchor metrics history.

Uses SQLite (WAL journal: concurrent readers, serialized writers); designed so
the backend can be swapped for PostgreSQL via a different Backend
implementation. Uniqueness (payment id, corridor+hour) is enforced by the store
itself; the application does no locking of its own.
"""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from backend_insights.analytics.strkey import MUXED_ADDRESS_LENGTH, MUXED_ADDRESS_PREFIX
from backend_insights.core.exceptions import PersistenceFailure
from backend_insights.database.models import (
    AggregationJob,
    AnchorMetricsHistoryRecord,
    HourlyCorridorMetric,
    IngestionCursor,
    JobStatus,
    PaymentRecord,
)
from backend_insights.database.query_builder import build_in_clause
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Schema (SQLite). For PostgreSQL: use TIMESTAMPTZ/BIGSERIAL and %s placeholders.
# -----------------------------------------------------------------------------

SCHEMA_INGESTION_STATE = """
CREATE TABLE IF NOT EXISTS ingestion_state (
    task_name TEXT PRIMARY KEY,
    last_cursor TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

SCHEMA_PAYMENTS = """
CREATE TABLE IF NOT EXISTS payments (
    id TEXT PRIMARY KEY,
    tx_hash TEXT NOT NULL,
    source_account TEXT NOT NULL,
    destination_account TEXT NOT NULL,
    asset_type TEXT NOT NULL,
    asset_code TEXT,
    asset_issuer TEXT,
    amount REAL NOT NULL,
    created_at INTEGER NOT NULL,
    source_asset_type TEXT,
    source_asset_code TEXT,
    source_asset_issuer TEXT,
    successful INTEGER NOT NULL DEFAULT 1,
    settlement_time_ms INTEGER
);
CREATE INDEX IF NOT EXISTS ix_payments_created_at ON payments(created_at);
CREATE INDEX IF NOT EXISTS ix_payments_source_account ON payments(source_account);
CREATE INDEX IF NOT EXISTS ix_payments_destination_account ON payments(destination_account);
"""

SCHEMA_HOURLY_CORRIDOR_METRICS = """
CREATE TABLE IF NOT EXISTS hourly_corridor_metrics (
    corridor_key TEXT NOT NULL,
    hour_bucket INTEGER NOT NULL,
    volume REAL NOT NULL,
    tx_count INTEGER NOT NULL,
    success_count INTEGER NOT NULL,
    avg_settlement REAL,
    PRIMARY KEY (corridor_key, hour_bucket)
);
CREATE INDEX IF NOT EXISTS ix_hourly_corridor_metrics_hour ON hourly_corridor_metrics(hour_bucket);
"""

SCHEMA_AGGREGATION_JOBS = """
CREATE TABLE IF NOT EXISTS aggregation_jobs (
    job_id TEXT PRIMARY KEY,
    job_type TEXT NOT NULL,
    status TEXT NOT NULL,
    retry_count INTEGER NOT NULL DEFAULT 0,
    last_processed_hour INTEGER,
    error_message TEXT,
    created_at INTEGER,
    updated_at INTEGER
);
"""

SCHEMA_ANCHOR_METRICS_HISTORY = """
CREATE TABLE IF NOT EXISTS anchor_metrics_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    anchor_account TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    success_rate REAL NOT NULL,
    failure_rate REAL NOT NULL,
    reliability_score REAL NOT NULL,
    status TEXT NOT NULL,
    total_transactions INTEGER NOT NULL,
    successful_transactions INTEGER NOT NULL,
    failed_transactions INTEGER NOT NULL,
    avg_settlement_time_ms REAL,
    volume_usd REAL
);
CREATE INDEX IF NOT EXISTS ix_anchor_metrics_history_anchor_ts
    ON anchor_metrics_history(anchor_account, timestamp);
"""

_PAYMENT_COLUMNS = (
    "id, tx_hash, source_account, destination_account, asset_type, asset_code, "
    "asset_issuer, amount, created_at, source_asset_type, source_asset_code, "
    "source_asset_issuer, successful, settlement_time_ms"
)
_JOB_COLUMNS = (
    "job_id, job_type, status, retry_count, last_processed_hour, error_message, "
    "created_at, updated_at"
)


# -----------------------------------------------------------------------------
# Abstract backend: swap implementation for PostgreSQL later.
# -----------------------------------------------------------------------------


class DatabaseBackend(ABC):
    """Abstract interface for persistence; implement for SQLite or PostgreSQL."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        ...

    # --- Ingestion cursors ---

    @abstractmethod
    def get_ingestion_cursor(self, task_name: str) -> IngestionCursor | None:
        ...

    @abstractmethod
    def update_ingestion_cursor(self, task_name: str, last_cursor: str, updated_at: int) -> None:
        """Atomic upsert of the cursor row for task_name."""
        ...

    # --- Payments ---

    @abstractmethod
    def save_payments(self, payments: Sequence[PaymentRecord]) -> int:
        """
        Insert payments in one transaction; duplicate ids are no-ops and existing
        rows are never modified. Returns number of rows newly inserted.
        """
        ...

    @abstractmethod
    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        ...

    @abstractmethod
    def count_payments(self) -> int:
        ...

    @abstractmethod
    def fetch_payments_by_timerange(self, start: int, end: int) -> list[PaymentRecord]:
        """Payments with start <= created_at < end ordered by (created_at, id)."""
        ...

    @abstractmethod
    def get_payment_time_bounds(self) -> tuple[int, int] | None:
        """(min created_at, max created_at) over all payments, or None if empty."""
        ...

    @abstractmethod
    def fetch_muxed_payment_accounts(self) -> list[tuple[str, str]]:
        """(source, destination) pairs of payments touching an M-address."""
        ...

    # --- Hourly corridor metrics ---

    @abstractmethod
    def upsert_hourly_corridor_metrics(self, metrics: Sequence[HourlyCorridorMetric]) -> int:
        """Insert or wholesale-replace each (corridor_key, hour_bucket) row in one transaction."""
        ...

    @abstractmethod
    def fetch_hourly_metrics_by_timerange(self, start: int, end: int) -> list[HourlyCorridorMetric]:
        ...

    @abstractmethod
    def fetch_hourly_metrics_for_corridors(
        self, corridor_keys: Sequence[str], start: int, end: int
    ) -> list[HourlyCorridorMetric]:
        ...

    # --- Aggregation jobs ---

    @abstractmethod
    def create_aggregation_job(self, job_id: str, job_type: str, now: int) -> bool:
        """Insert a pending job if absent. Returns True when a row was created."""
        ...

    @abstractmethod
    def get_aggregation_job(self, job_id: str) -> AggregationJob | None:
        ...

    @abstractmethod
    def transition_aggregation_job(
        self,
        job_id: str,
        from_statuses: Iterable[JobStatus],
        to_status: JobStatus,
        now: int,
        *,
        error_message: str | None = None,
        increment_retry: bool = False,
        reset_retry: bool = False,
        last_processed_hour: int | None = None,
    ) -> bool:
        """
        Compare-and-set the job status. last_processed_hour only moves forward;
        reset_retry zeroes retry_count, increment_retry adds one.
        Returns False when the job is not in one of from_statuses.
        """
        ...

    # --- Anchor metrics history ---

    @abstractmethod
    def insert_anchor_metrics(self, record: AnchorMetricsHistoryRecord) -> int:
        ...

    @abstractmethod
    def get_anchor_metrics_history(
        self, anchor_account: str, *, limit: int = 30
    ) -> list[AnchorMetricsHistoryRecord]:
        ...


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


def _row_to_payment(row: sqlite3.Row) -> PaymentRecord:
    return PaymentRecord(
        id=row["id"],
        tx_hash=row["tx_hash"],
        source_account=row["source_account"],
        destination_account=row["destination_account"],
        asset_type=row["asset_type"],
        asset_code=row["asset_code"],
        asset_issuer=row["asset_issuer"],
        amount=row["amount"],
        created_at=row["created_at"],
        source_asset_type=row["source_asset_type"],
        source_asset_code=row["source_asset_code"],
        source_asset_issuer=row["source_asset_issuer"],
        successful=bool(row["successful"]),
        settlement_time_ms=row["settlement_time_ms"],
    )


def _row_to_metric(row: sqlite3.Row) -> HourlyCorridorMetric:
    return HourlyCorridorMetric(
        corridor_key=row["corridor_key"],
        hour_bucket=row["hour_bucket"],
        volume=row["volume"],
        tx_count=row["tx_count"],
        success_count=row["success_count"],
        avg_settlement=row["avg_settlement"],
    )


def _row_to_job(row: sqlite3.Row) -> AggregationJob:
    return AggregationJob(
        job_id=row["job_id"],
        job_type=row["job_type"],
        status=JobStatus(row["status"]),
        retry_count=row["retry_count"],
        last_processed_hour=row["last_processed_hour"],
        error_message=row["error_message"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SQLiteBackend(DatabaseBackend):
    """SQLite implementation; single file, one connection per operation."""

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute(f"PRAGMA busy_timeout = {int(self._timeout_sec * 1000)}")
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        try:
            conn = self._connect()
        except sqlite3.Error as error:
            raise PersistenceFailure(f"cannot open database {self._path}: {error}") from error
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except sqlite3.Error as error:
            conn.rollback()
            raise PersistenceFailure(f"database operation failed: {error}") from error
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for stmt in (
                SCHEMA_INGESTION_STATE,
                SCHEMA_PAYMENTS,
                SCHEMA_HOURLY_CORRIDOR_METRICS,
                SCHEMA_AGGREGATION_JOBS,
                SCHEMA_ANCHOR_METRICS_HISTORY,
            ):
                cur.executescript(stmt)

    # --- Ingestion cursors ---

    def get_ingestion_cursor(self, task_name: str) -> IngestionCursor | None:
        with self._cursor() as cur:
            cur.execute(
                "SELECT task_name, last_cursor, updated_at FROM ingestion_state WHERE task_name = ?",
                (task_name,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return IngestionCursor(
            task_name=row["task_name"],
            last_cursor=row["last_cursor"],
            updated_at=row["updated_at"],
        )

    def update_ingestion_cursor(self, task_name: str, last_cursor: str, updated_at: int) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO ingestion_state (task_name, last_cursor, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(task_name) DO UPDATE SET
                    last_cursor = excluded.last_cursor,
                    updated_at = excluded.updated_at
                """,
                (task_name, last_cursor, updated_at),
            )

    # --- Payments ---

    def save_payments(self, payments: Sequence[PaymentRecord]) -> int:
        if not payments:
            return 0
        inserted = 0
        with self._cursor() as cur:
            for p in payments:
                cur.execute(
                    f"""
                    INSERT INTO payments ({_PAYMENT_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO NOTHING
                    """,
                    (
                        p.id,
                        p.tx_hash,
                        p.source_account,
                        p.destination_account,
                        p.asset_type,
                        p.asset_code,
                        p.asset_issuer,
                        p.amount,
                        p.created_at,
                        p.source_asset_type,
                        p.source_asset_code,
                        p.source_asset_issuer,
                        1 if p.successful else 0,
                        p.settlement_time_ms,
                    ),
                )
                inserted += cur.rowcount
        return inserted

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE id = ?", (payment_id,))
            row = cur.fetchone()
        return _row_to_payment(row) if row is not None else None

    def count_payments(self) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM payments")
            return int(cur.fetchone()[0])

    def fetch_payments_by_timerange(self, start: int, end: int) -> list[PaymentRecord]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT {_PAYMENT_COLUMNS} FROM payments
                WHERE created_at >= ? AND created_at < ?
                ORDER BY created_at ASC, id ASC
                """,
                (start, end),
            )
            rows = cur.fetchall()
        return [_row_to_payment(row) for row in rows]

    def get_payment_time_bounds(self) -> tuple[int, int] | None:
        with self._cursor() as cur:
            cur.execute("SELECT MIN(created_at), MAX(created_at) FROM payments")
            row = cur.fetchone()
        if row is None or row[0] is None:
            return None
        return int(row[0]), int(row[1])

    def fetch_muxed_payment_accounts(self) -> list[tuple[str, str]]:
        # substr() rather than LIKE: LIKE is case-insensitive for ASCII in SQLite
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT source_account, destination_account FROM payments
                WHERE (substr(source_account, 1, 1) = ? AND length(source_account) = ?)
                   OR (substr(destination_account, 1, 1) = ? AND length(destination_account) = ?)
                ORDER BY created_at ASC, id ASC
                """,
                (
                    MUXED_ADDRESS_PREFIX,
                    MUXED_ADDRESS_LENGTH,
                    MUXED_ADDRESS_PREFIX,
                    MUXED_ADDRESS_LENGTH,
                ),
            )
            return [(row["source_account"], row["destination_account"]) for row in cur.fetchall()]

    # --- Hourly corridor metrics ---

    def upsert_hourly_corridor_metrics(self, metrics: Sequence[HourlyCorridorMetric]) -> int:
        if not metrics:
            return 0
        with self._cursor() as cur:
            cur.executemany(
                """
                INSERT INTO hourly_corridor_metrics (
                    corridor_key, hour_bucket, volume, tx_count, success_count, avg_settlement
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(corridor_key, hour_bucket) DO UPDATE SET
                    volume = excluded.volume,
                    tx_count = excluded.tx_count,
                    success_count = excluded.success_count,
                    avg_settlement = excluded.avg_settlement
                """,
                [
                    (
                        m.corridor_key,
                        m.hour_bucket,
                        m.volume,
                        m.tx_count,
                        m.success_count,
                        m.avg_settlement,
                    )
                    for m in metrics
                ],
            )
        return len(metrics)

    def fetch_hourly_metrics_by_timerange(self, start: int, end: int) -> list[HourlyCorridorMetric]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT corridor_key, hour_bucket, volume, tx_count, success_count, avg_settlement
                FROM hourly_corridor_metrics
                WHERE hour_bucket >= ? AND hour_bucket < ?
                ORDER BY hour_bucket ASC, corridor_key ASC
                """,
                (start, end),
            )
            return [_row_to_metric(row) for row in cur.fetchall()]

    def fetch_hourly_metrics_for_corridors(
        self, corridor_keys: Sequence[str], start: int, end: int
    ) -> list[HourlyCorridorMetric]:
        in_clause, key_params = build_in_clause("corridor_key", corridor_keys)
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT corridor_key, hour_bucket, volume, tx_count, success_count, avg_settlement
                FROM hourly_corridor_metrics
                WHERE {in_clause} AND hour_bucket >= ? AND hour_bucket < ?
                ORDER BY hour_bucket ASC, corridor_key ASC
                """,
                [*key_params, start, end],
            )
            return [_row_to_metric(row) for row in cur.fetchall()]

    # --- Aggregation jobs ---

    def create_aggregation_job(self, job_id: str, job_type: str, now: int) -> bool:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO aggregation_jobs (job_id, job_type, status, retry_count, created_at, updated_at)
                VALUES (?, ?, ?, 0, ?, ?)
                ON CONFLICT(job_id) DO NOTHING
                """,
                (job_id, job_type, JobStatus.PENDING.value, now, now),
            )
            return cur.rowcount == 1

    def get_aggregation_job(self, job_id: str) -> AggregationJob | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_JOB_COLUMNS} FROM aggregation_jobs WHERE job_id = ?", (job_id,))
            row = cur.fetchone()
        return _row_to_job(row) if row is not None else None

    def transition_aggregation_job(
        self,
        job_id: str,
        from_statuses: Iterable[JobStatus],
        to_status: JobStatus,
        now: int,
        *,
        error_message: str | None = None,
        increment_retry: bool = False,
        reset_retry: bool = False,
        last_processed_hour: int | None = None,
    ) -> bool:
        status_clause, status_params = build_in_clause(
            "status", [s.value for s in from_statuses]
        )
        with self._cursor() as cur:
            cur.execute(
                f"""
                UPDATE aggregation_jobs SET
                    status = ?,
                    error_message = ?,
                    retry_count = CASE WHEN ? THEN 0 ELSE retry_count + ? END,
                    last_processed_hour = CASE
                        WHEN ? IS NULL THEN last_processed_hour
                        WHEN last_processed_hour IS NULL OR last_processed_hour < ? THEN ?
                        ELSE last_processed_hour
                    END,
                    updated_at = ?
                WHERE job_id = ? AND {status_clause}
                """,
                [
                    to_status.value,
                    error_message,
                    1 if reset_retry else 0,
                    1 if increment_retry else 0,
                    last_processed_hour,
                    last_processed_hour,
                    last_processed_hour,
                    now,
                    job_id,
                    *status_params,
                ],
            )
            return cur.rowcount == 1

    # --- Anchor metrics history ---

    def insert_anchor_metrics(self, record: AnchorMetricsHistoryRecord) -> int:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO anchor_metrics_history (
                    anchor_account, timestamp, success_rate, failure_rate, reliability_score,
                    status, total_transactions, successful_transactions, failed_transactions,
                    avg_settlement_time_ms, volume_usd
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.anchor_account,
                    record.timestamp,
                    record.success_rate,
                    record.failure_rate,
                    record.reliability_score,
                    record.status,
                    record.total_transactions,
                    record.successful_transactions,
                    record.failed_transactions,
                    record.avg_settlement_time_ms,
                    record.volume_usd,
                ),
            )
            return cur.lastrowid or 0

    def get_anchor_metrics_history(
        self, anchor_account: str, *, limit: int = 30
    ) -> list[AnchorMetricsHistoryRecord]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT id, anchor_account, timestamp, success_rate, failure_rate, reliability_score,
                       status, total_transactions, successful_transactions, failed_transactions,
                       avg_settlement_time_ms, volume_usd
                FROM anchor_metrics_history
                WHERE anchor_account = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (anchor_account, limit),
            )
            rows = cur.fetchall()
        return [
            AnchorMetricsHistoryRecord(
                id=row["id"],
                anchor_account=row["anchor_account"],
                timestamp=row["timestamp"],
                success_rate=row["success_rate"],
                failure_rate=row["failure_rate"],
                reliability_score=row["reliability_score"],
                status=row["status"],
                total_transactions=row["total_transactions"],
                successful_transactions=row["successful_transactions"],
                failed_transactions=row["failed_transactions"],
                avg_settlement_time_ms=row["avg_settlement_time_ms"],
                volume_usd=row["volume_usd"],
            )
            for row in rows
        ]


# -----------------------------------------------------------------------------
# Database facade: single entrypoint; backend is swappable.
# -----------------------------------------------------------------------------


class Database:
    """
    Database abstraction over cursors, payments, hourly metrics, jobs and anchor history.

    Uses a Backend (SQLite by default); replace with a PostgreSQL backend when upgrading.
    """

    def __init__(self, backend: DatabaseBackend) -> None:
        self._backend = backend

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        self._backend.ensure_schema()

    # --- Ingestion cursors ---

    def get_ingestion_cursor(self, task_name: str) -> str | None:
        state = self._backend.get_ingestion_cursor(task_name)
        return state.last_cursor if state is not None else None

    def update_ingestion_cursor(self, task_name: str, last_cursor: str) -> None:
        self._backend.update_ingestion_cursor(task_name, last_cursor, int(time.time()))

    # --- Payments ---

    def save_payments(self, payments: Sequence[PaymentRecord]) -> int:
        """Insert payments; duplicates by id are skipped. Returns count inserted."""
        start = time.monotonic()
        inserted = self._backend.save_payments(payments)
        logger.debug(
            "db_save_payments",
            received=len(payments),
            inserted=inserted,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return inserted

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        return self._backend.get_payment(payment_id)

    def count_payments(self) -> int:
        return self._backend.count_payments()

    def fetch_payments_by_timerange(self, start: int, end: int) -> list[PaymentRecord]:
        return self._backend.fetch_payments_by_timerange(start, end)

    def get_payment_time_bounds(self) -> tuple[int, int] | None:
        return self._backend.get_payment_time_bounds()

    def fetch_muxed_payment_accounts(self) -> list[tuple[str, str]]:
        return self._backend.fetch_muxed_payment_accounts()

    # --- Hourly corridor metrics ---

    def upsert_hourly_corridor_metric(self, metric: HourlyCorridorMetric) -> None:
        self._backend.upsert_hourly_corridor_metrics([metric])

    def upsert_hourly_corridor_metrics(self, metrics: Sequence[HourlyCorridorMetric]) -> int:
        return self._backend.upsert_hourly_corridor_metrics(metrics)

    def fetch_hourly_metrics_by_timerange(self, start: int, end: int) -> list[HourlyCorridorMetric]:
        return self._backend.fetch_hourly_metrics_by_timerange(start, end)

    def fetch_hourly_metrics_for_corridors(
        self, corridor_keys: Sequence[str], start: int, end: int
    ) -> list[HourlyCorridorMetric]:
        return self._backend.fetch_hourly_metrics_for_corridors(corridor_keys, start, end)

    # --- Aggregation jobs ---

    def create_aggregation_job(self, job_id: str, job_type: str) -> bool:
        return self._backend.create_aggregation_job(job_id, job_type, int(time.time()))

    def get_aggregation_job(self, job_id: str) -> AggregationJob | None:
        return self._backend.get_aggregation_job(job_id)

    def transition_aggregation_job(
        self,
        job_id: str,
        from_statuses: Iterable[JobStatus],
        to_status: JobStatus,
        *,
        error_message: str | None = None,
        increment_retry: bool = False,
        reset_retry: bool = False,
        last_processed_hour: int | None = None,
    ) -> bool:
        return self._backend.transition_aggregation_job(
            job_id,
            from_statuses,
            to_status,
            int(time.time()),
            error_message=error_message,
            increment_retry=increment_retry,
            reset_retry=reset_retry,
            last_processed_hour=last_processed_hour,
        )

    # --- Anchor metrics history ---

    def insert_anchor_metrics(self, record: AnchorMetricsHistoryRecord) -> int:
        return self._backend.insert_anchor_metrics(record)

    def get_anchor_metrics_history(
        self, anchor_account: str, *, limit: int = 30
    ) -> list[AnchorMetricsHistoryRecord]:
        return self._backend.get_anchor_metrics_history(anchor_account, limit=limit)


def get_database(path: str | Path | None = None) -> Database:
    """
    Return a Database over SQLite with the schema ensured.

    path: SQLite file (e.g. "data/insights.db"). Default: "insights.db" in cwd.
    """
    if path is None:
        path = Path("insights.db")
    db = Database(SQLiteBackend(path))
    db.ensure_schema()
    return db
