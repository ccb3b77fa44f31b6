# Hourly corridor aggregation and the aggregation job state machine.

from backend_insights.aggregation.hourly import (
    AggregationResult,
    HourlyAggregator,
    align_range,
    compute_hourly_metrics,
)
from backend_insights.aggregation.jobs import DEFAULT_MAX_RETRIES, AggregationJobManager

__all__ = [
    "AggregationResult",
    "HourlyAggregator",
    "align_range",
    "compute_hourly_metrics",
    "DEFAULT_MAX_RETRIES",
    "AggregationJobManager",
]
