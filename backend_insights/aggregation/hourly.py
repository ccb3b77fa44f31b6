"""
Hourly corridor aggregation.

Recomputes every (corridor_key, hour_bucket) touched by a time range from the
stored payments and replaces those rows. Never increments, so repeated or
overlapping runs converge to the same stored state.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass

from backend_insights.core.validation import validate_time_range
from backend_insights.database import Database, HourlyCorridorMetric, PaymentRecord
from backend_insights.database.models import HOUR_SECONDS, hour_bucket
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)


def align_range(start: int, end: int) -> tuple[int, int]:
    """Widen [start, end) to whole hours so no bucket is computed from a partial hour."""
    aligned_start = hour_bucket(start)
    aligned_end = end if end % HOUR_SECONDS == 0 else hour_bucket(end) + HOUR_SECONDS
    return aligned_start, aligned_end


def compute_hourly_metrics(payments: list[PaymentRecord]) -> list[HourlyCorridorMetric]:
    """Group payments by corridor and hour; order is (hour_bucket, corridor_key)."""
    groups: dict[tuple[str, int], list[PaymentRecord]] = defaultdict(list)
    for payment in payments:
        groups[(payment.corridor_key, hour_bucket(payment.created_at))].append(payment)

    metrics = []
    for (corridor_key, bucket), items in groups.items():
        settlements = [p.settlement_time_ms for p in items if p.settlement_time_ms is not None]
        metrics.append(
            HourlyCorridorMetric(
                corridor_key=corridor_key,
                hour_bucket=bucket,
                volume=sum(p.amount for p in items),
                tx_count=len(items),
                success_count=sum(1 for p in items if p.successful),
                avg_settlement=sum(settlements) / len(settlements) if settlements else None,
            )
        )
    metrics.sort(key=lambda m: (m.hour_bucket, m.corridor_key))
    return metrics


@dataclass(frozen=True)
class AggregationResult:
    start: int
    end: int
    payments: int
    buckets: int


class HourlyAggregator:
    def __init__(self, db: Database) -> None:
        self._db = db

    def aggregate(self, start: int, end: int) -> AggregationResult:
        """
        Recompute hourly buckets for payments in [start, end), widened to whole hours.

        Raises:
            ValidationFailure: invalid range.
            PersistenceFailure: read or upsert failed; stored rows are unchanged.
        """
        validate_time_range(start, end)
        t0 = time.monotonic()
        start, end = align_range(start, end)
        payments = self._db.fetch_payments_by_timerange(start, end)
        metrics = compute_hourly_metrics(payments)
        self._db.upsert_hourly_corridor_metrics(metrics)
        logger.info(
            "aggregation_buckets_upserted",
            start=start,
            end=end,
            payments=len(payments),
            buckets=len(metrics),
            duration_ms=round((time.monotonic() - t0) * 1000, 2),
        )
        return AggregationResult(start=start, end=end, payments=len(payments), buckets=len(metrics))
