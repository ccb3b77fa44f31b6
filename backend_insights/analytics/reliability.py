"""
Anchor reliability scoring: raw transaction counters -> bounded score and status.

Deterministic and side-effect free so stored history can be recomputed and
audited. The default strategy weights success rate against settlement speed;
any object with a matching score() can be plugged into the service instead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from backend_insights.core.exceptions import ValidationFailure
from backend_insights.core.validation import validate_filter_value

MIN_SCORE = 0.0
MAX_SCORE = 100.0

# Weights of the default strategy (sum to 1)
SUCCESS_RATE_WEIGHT = 0.8
SETTLEMENT_WEIGHT = 0.2
# Settlements at or under this time get the full settlement component
DEFAULT_TARGET_SETTLEMENT_MS = 5_000.0

# Strictly-greater-than thresholds; a score equal to a threshold falls to the lower status
DEFAULT_HEALTHY_THRESHOLD = 90.0
DEFAULT_DEGRADED_THRESHOLD = 75.0


class AnchorStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class AnchorMetricsSnapshot:
    """Derived metrics for one set of counters."""

    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    avg_settlement_time_ms: float | None
    success_rate: float
    failure_rate: float
    reliability_score: float
    status: AnchorStatus

    @classmethod
    def from_dict(cls, data: dict) -> AnchorMetricsSnapshot:
        """Rebuild a snapshot from its JSON form (status as its string value)."""
        return cls(
            total_transactions=data["total_transactions"],
            successful_transactions=data["successful_transactions"],
            failed_transactions=data["failed_transactions"],
            avg_settlement_time_ms=data.get("avg_settlement_time_ms"),
            success_rate=data["success_rate"],
            failure_rate=data["failure_rate"],
            reliability_score=data["reliability_score"],
            status=AnchorStatus(data["status"]),
        )


class ReliabilityScorer(Protocol):
    def score(
        self,
        total_transactions: int,
        successful_transactions: int,
        failed_transactions: int,
        avg_settlement_time_ms: float | None = None,
    ) -> AnchorMetricsSnapshot:
        ...


def _check_counter(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationFailure(name, value, f"{name} must be a non-negative integer.")


def status_for_score(
    score: float,
    *,
    healthy_threshold: float = DEFAULT_HEALTHY_THRESHOLD,
    degraded_threshold: float = DEFAULT_DEGRADED_THRESHOLD,
) -> AnchorStatus:
    if score > healthy_threshold:
        return AnchorStatus.HEALTHY
    if score > degraded_threshold:
        return AnchorStatus.DEGRADED
    return AnchorStatus.UNHEALTHY


@dataclass(frozen=True)
class WeightedReliabilityScorer:
    """
    score = 0.8 * success_rate + 0.2 * settlement_score

    settlement_score is 100 when no settlement time is known or it is within the
    target, and decays as target / avg beyond it. Result clamped to [0, 100] and
    rounded to 2 decimals.
    """

    target_settlement_ms: float = DEFAULT_TARGET_SETTLEMENT_MS
    healthy_threshold: float = DEFAULT_HEALTHY_THRESHOLD
    degraded_threshold: float = DEFAULT_DEGRADED_THRESHOLD

    def __post_init__(self) -> None:
        if self.target_settlement_ms <= 0:
            raise ValueError("target_settlement_ms must be positive")
        if self.degraded_threshold > self.healthy_threshold:
            raise ValueError("degraded_threshold must not exceed healthy_threshold")

    def settlement_score(self, avg_settlement_time_ms: float | None) -> float:
        if avg_settlement_time_ms is None:
            return MAX_SCORE
        return MAX_SCORE * self.target_settlement_ms / max(
            self.target_settlement_ms, float(avg_settlement_time_ms)
        )

    def score(
        self,
        total_transactions: int,
        successful_transactions: int,
        failed_transactions: int,
        avg_settlement_time_ms: float | None = None,
    ) -> AnchorMetricsSnapshot:
        """
        Raises:
            ValidationFailure: negative counters, success/failure counts above total,
                or a settlement time that is negative or not finite.
        """
        _check_counter("total_transactions", total_transactions)
        _check_counter("successful_transactions", successful_transactions)
        _check_counter("failed_transactions", failed_transactions)
        if successful_transactions > total_transactions:
            raise ValidationFailure(
                "successful_transactions",
                successful_transactions,
                "successful_transactions cannot exceed total_transactions.",
            )
        if failed_transactions > total_transactions:
            raise ValidationFailure(
                "failed_transactions",
                failed_transactions,
                "failed_transactions cannot exceed total_transactions.",
            )
        validate_filter_value(
            avg_settlement_time_ms, 0.0, math.inf, "avg_settlement_time_ms"
        )

        if total_transactions == 0:
            success_rate = 0.0
            failure_rate = 0.0
        else:
            success_rate = successful_transactions / total_transactions * 100.0
            failure_rate = failed_transactions / total_transactions * 100.0

        raw = (
            SUCCESS_RATE_WEIGHT * success_rate
            + SETTLEMENT_WEIGHT * self.settlement_score(avg_settlement_time_ms)
        )
        score = round(max(MIN_SCORE, min(MAX_SCORE, raw)), 2)
        return AnchorMetricsSnapshot(
            total_transactions=total_transactions,
            successful_transactions=successful_transactions,
            failed_transactions=failed_transactions,
            avg_settlement_time_ms=avg_settlement_time_ms,
            success_rate=success_rate,
            failure_rate=failure_rate,
            reliability_score=score,
            status=status_for_score(
                score,
                healthy_threshold=self.healthy_threshold,
                degraded_threshold=self.degraded_threshold,
            ),
        )
