# Derived analytics: reliability scoring and multiplexed address usage.

from backend_insights.analytics.muxed import (
    MuxedAddressAnalyzer,
    MuxedAddressUsage,
    MuxedAnalytics,
)
from backend_insights.analytics.reliability import (
    AnchorMetricsSnapshot,
    AnchorStatus,
    ReliabilityScorer,
    WeightedReliabilityScorer,
    status_for_score,
)
from backend_insights.analytics.strkey import (
    MuxedAccountInfo,
    decode_muxed_address,
    is_muxed_address,
    parse_muxed_address,
)

__all__ = [
    "MuxedAddressAnalyzer",
    "MuxedAddressUsage",
    "MuxedAnalytics",
    "AnchorMetricsSnapshot",
    "AnchorStatus",
    "ReliabilityScorer",
    "WeightedReliabilityScorer",
    "status_for_score",
    "MuxedAccountInfo",
    "decode_muxed_address",
    "is_muxed_address",
    "parse_muxed_address",
]
