"""
Domain models for database entities.

Ingestion cursors, payment records, hourly corridor metrics, aggregation jobs
and anchor metrics history. Used by the repository layer; no ORM coupling so
backends stay swappable. Timestamps are unix seconds (UTC).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

HOUR_SECONDS = 3600
NATIVE_ASSET_TYPE = "native"
NATIVE_ASSET_LABEL = "XLM:native"


def hour_bucket(timestamp: int) -> int:
    """Start of the one-hour aligned window containing timestamp."""
    return timestamp - (timestamp % HOUR_SECONDS)


def asset_label(asset_type: str | None, asset_code: str | None, asset_issuer: str | None) -> str:
    """Render an asset as CODE:ISSUER; native lumens render as XLM:native."""
    if asset_type == NATIVE_ASSET_TYPE or not asset_code:
        return NATIVE_ASSET_LABEL
    return f"{asset_code}:{asset_issuer or ''}"


@dataclass
class IngestionCursor:
    """Durable watermark of the last ingested position for a task."""

    task_name: str
    last_cursor: str
    updated_at: int


@dataclass(frozen=True)
class PaymentRecord:
    """Single payment operation; immutable once written."""

    id: str
    tx_hash: str
    source_account: str
    destination_account: str
    asset_type: str
    asset_code: str | None
    asset_issuer: str | None
    amount: float
    created_at: int
    source_asset_type: str | None = None
    """Asset sent for path payments; None means the same asset as delivered."""
    source_asset_code: str | None = None
    source_asset_issuer: str | None = None
    successful: bool = True
    settlement_time_ms: int | None = None

    @property
    def destination_asset(self) -> str:
        return asset_label(self.asset_type, self.asset_code, self.asset_issuer)

    @property
    def source_asset(self) -> str:
        if self.source_asset_type is None:
            return self.destination_asset
        return asset_label(self.source_asset_type, self.source_asset_code, self.source_asset_issuer)

    @property
    def corridor_key(self) -> str:
        return f"{self.source_asset}->{self.destination_asset}"


@dataclass(frozen=True)
class HourlyCorridorMetric:
    """Aggregate of one corridor over one hour bucket; replaced wholesale on recompute."""

    corridor_key: str
    hour_bucket: int
    volume: float
    tx_count: int
    success_count: int
    avg_settlement: float | None = None
    """Mean settlement time in ms over payments that reported one; None if none did."""

    @property
    def success_rate(self) -> float:
        if self.tx_count == 0:
            return 0.0
        return self.success_count / self.tx_count * 100.0


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AggregationJob:
    """Lifecycle row of a named aggregation job."""

    job_id: str
    job_type: str
    status: JobStatus
    retry_count: int = 0
    last_processed_hour: int | None = None
    """Start of the last hour bucket aggregated successfully; never rewound."""
    error_message: str | None = None
    created_at: int | None = None
    updated_at: int | None = None


@dataclass(frozen=True)
class AnchorMetricsHistoryRecord:
    """One append-only entry in an anchor's reliability history."""

    id: int | None
    anchor_account: str
    timestamp: int
    success_rate: float
    failure_rate: float
    reliability_score: float
    status: str
    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    avg_settlement_time_ms: float | None = None
    volume_usd: float | None = None


@dataclass(frozen=True)
class CorridorSummary:
    """Per-corridor totals over a time range, derived from hourly rows."""

    corridor_key: str
    volume: float
    tx_count: int
    success_count: int
    avg_settlement: float | None

    @property
    def success_rate(self) -> float:
        if self.tx_count == 0:
            return 0.0
        return self.success_count / self.tx_count * 100.0

    @classmethod
    def from_dict(cls, data: dict) -> CorridorSummary:
        return cls(
            corridor_key=data["corridor_key"],
            volume=data["volume"],
            tx_count=data["tx_count"],
            success_count=data["success_count"],
            avg_settlement=data.get("avg_settlement"),
        )
