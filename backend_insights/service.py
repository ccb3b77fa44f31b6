"""
Insights service: the outward surface consumed by the API layer.

Wires the database, cache and scorer passed in by the caller; holds no
process-wide state of its own. Aggregate reads go through CacheAside with keys
derived from the query parameters.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import replace
from typing import Any, Callable, Sequence

from backend_insights.analytics import (
    AnchorMetricsSnapshot,
    MuxedAddressAnalyzer,
    MuxedAnalytics,
    ReliabilityScorer,
    WeightedReliabilityScorer,
)
from backend_insights.cache import CacheAside
from backend_insights.core.validation import (
    validate_corridor_filters,
    validate_limit,
    validate_time_range,
    validate_top_n,
)
from backend_insights.database import (
    AnchorMetricsHistoryRecord,
    CorridorSummary,
    Database,
    HourlyCorridorMetric,
)
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

MUXED_ANALYTICS_PREFIX = "muxed_analytics"
CORRIDOR_SUMMARIES_PREFIX = "corridor_summaries"
DEFAULT_HISTORY_LIMIT = 30
MAX_HISTORY_LIMIT = 1000


def summarize_corridors(metrics: Sequence[HourlyCorridorMetric]) -> list[CorridorSummary]:
    """
    Fold hourly rows into per-corridor totals, ordered by volume desc then key.

    avg_settlement is weighted by tx_count over buckets that reported one.
    """
    totals: dict[str, list[Any]] = defaultdict(lambda: [0.0, 0, 0, 0.0, 0])
    for m in metrics:
        t = totals[m.corridor_key]
        t[0] += m.volume
        t[1] += m.tx_count
        t[2] += m.success_count
        if m.avg_settlement is not None:
            t[3] += m.avg_settlement * m.tx_count
            t[4] += m.tx_count
    summaries = [
        CorridorSummary(
            corridor_key=key,
            volume=volume,
            tx_count=tx_count,
            success_count=success_count,
            avg_settlement=settle_sum / settle_weight if settle_weight else None,
        )
        for key, (volume, tx_count, success_count, settle_sum, settle_weight) in totals.items()
    ]
    summaries.sort(key=lambda s: (-s.volume, s.corridor_key))
    return summaries


def _summaries_from_json(rows: list[dict]) -> list[CorridorSummary]:
    return [CorridorSummary.from_dict(row) for row in rows]


class InsightsService:
    def __init__(
        self,
        db: Database,
        cache: CacheAside,
        *,
        scorer: ReliabilityScorer | None = None,
        muxed_analyzer: MuxedAddressAnalyzer | None = None,
        default_ttl: int = 300,
    ) -> None:
        self._db = db
        self._cache = cache
        self._scorer = scorer or WeightedReliabilityScorer()
        self._muxed = muxed_analyzer or MuxedAddressAnalyzer()
        self._default_ttl = default_ttl

    # --- Ingestion / aggregation state ---

    def get_cursor(self, task_name: str) -> str | None:
        return self._db.get_ingestion_cursor(task_name)

    def record_hourly_metric(self, metric: HourlyCorridorMetric) -> None:
        """Replace the (corridor_key, hour_bucket) row with metric."""
        self._db.upsert_hourly_corridor_metric(metric)

    # --- Cached reads ---

    def fetch_cached(
        self,
        key: str,
        ttl: int | None,
        producer: Callable[[], Any],
        decode: Callable[[Any], Any] | None = None,
    ) -> Any:
        return self._cache.fetch(key, ttl, producer, decode)

    def get_muxed_analytics(self, top_n: int = 20) -> MuxedAnalytics:
        """
        Multiplexed address usage across all stored payments.

        Raises:
            ValidationFailure: top_n outside [1, 1000].
            CacheReadFailure: cache backend unreadable.
        """
        top_n = validate_top_n(top_n)

        def produce() -> MuxedAnalytics:
            return self._muxed.analyze(self._db.fetch_muxed_payment_accounts(), top_n)

        return self._cache.fetch_with_params(
            MUXED_ANALYTICS_PREFIX,
            {"top_n": top_n},
            self._default_ttl,
            produce,
            MuxedAnalytics.from_dict,
        )

    def list_corridor_summaries(
        self,
        start: int,
        end: int,
        *,
        corridor_keys: Sequence[str] | None = None,
        success_rate_min: float | None = None,
        success_rate_max: float | None = None,
        volume_min: float | None = None,
        volume_max: float | None = None,
    ) -> list[CorridorSummary]:
        """
        Per-corridor totals over hourly rows in [start, end), filtered by bounds.

        Raises:
            ValidationFailure: bad range, filter value or corridor key set.
            CacheReadFailure: cache backend unreadable.
        """
        validate_time_range(start, end)
        validate_corridor_filters(success_rate_min, success_rate_max, volume_min, volume_max)
        keys = sorted(set(corridor_keys)) if corridor_keys is not None else None
        params = {
            "start": start,
            "end": end,
            "corridor_keys": keys,
            "success_rate_min": success_rate_min,
            "success_rate_max": success_rate_max,
            "volume_min": volume_min,
            "volume_max": volume_max,
        }

        def produce() -> list[CorridorSummary]:
            if keys is not None:
                metrics = self._db.fetch_hourly_metrics_for_corridors(keys, start, end)
            else:
                metrics = self._db.fetch_hourly_metrics_by_timerange(start, end)
            out = []
            for s in summarize_corridors(metrics):
                if success_rate_min is not None and s.success_rate < success_rate_min:
                    continue
                if success_rate_max is not None and s.success_rate > success_rate_max:
                    continue
                if volume_min is not None and s.volume < volume_min:
                    continue
                if volume_max is not None and s.volume > volume_max:
                    continue
                out.append(s)
            return out

        return self._cache.fetch_with_params(
            CORRIDOR_SUMMARIES_PREFIX, params, self._default_ttl, produce, _summaries_from_json
        )

    # --- Anchor reliability ---

    def score_anchor(
        self,
        total_transactions: int,
        successful_transactions: int,
        failed_transactions: int,
        avg_settlement_time_ms: float | None = None,
    ) -> AnchorMetricsSnapshot:
        return self._scorer.score(
            total_transactions, successful_transactions, failed_transactions, avg_settlement_time_ms
        )

    def record_anchor_metrics(
        self,
        anchor_account: str,
        total_transactions: int,
        successful_transactions: int,
        failed_transactions: int,
        avg_settlement_time_ms: float | None = None,
        volume_usd: float | None = None,
        *,
        timestamp: int | None = None,
    ) -> AnchorMetricsHistoryRecord:
        """Score the counters and append the snapshot to the anchor's history."""
        snapshot = self.score_anchor(
            total_transactions, successful_transactions, failed_transactions, avg_settlement_time_ms
        )
        record = AnchorMetricsHistoryRecord(
            id=None,
            anchor_account=anchor_account,
            timestamp=int(time.time()) if timestamp is None else timestamp,
            success_rate=snapshot.success_rate,
            failure_rate=snapshot.failure_rate,
            reliability_score=snapshot.reliability_score,
            status=snapshot.status.value,
            total_transactions=snapshot.total_transactions,
            successful_transactions=snapshot.successful_transactions,
            failed_transactions=snapshot.failed_transactions,
            avg_settlement_time_ms=avg_settlement_time_ms,
            volume_usd=volume_usd,
        )
        row_id = self._db.insert_anchor_metrics(record)
        logger.info(
            "anchor_metrics_recorded",
            anchor=anchor_account,
            reliability_score=snapshot.reliability_score,
            status=snapshot.status.value,
        )
        return replace(record, id=row_id)

    def get_anchor_metrics_history(
        self, anchor_account: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[AnchorMetricsHistoryRecord]:
        """
        Newest first.

        Raises:
            ValidationFailure: limit is not an integer in [1, 1000].
        """
        limit = validate_limit(limit, "limit", 1, MAX_HISTORY_LIMIT)
        return self._db.get_anchor_metrics_history(anchor_account, limit=limit)
