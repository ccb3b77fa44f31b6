"""
Backend Insights: payment ingestion and corridor analytics for Stellar.

Pulls payments from Horizon on a schedule, stores them idempotently, builds
hourly per-corridor aggregates and serves reliability and multiplexed-account
analytics through a cache-aside read path.
"""

__version__ = "0.1.0"
