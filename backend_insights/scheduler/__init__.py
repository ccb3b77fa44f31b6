# Pipeline cycle (ingest + aggregate) and the periodic single-flight scheduler.

from backend_insights.scheduler.engine import PeriodicScheduler, SchedulerConfig
from backend_insights.scheduler.sync import CycleResult, SyncService

__all__ = [
    "PeriodicScheduler",
    "SchedulerConfig",
    "CycleResult",
    "SyncService",
]
