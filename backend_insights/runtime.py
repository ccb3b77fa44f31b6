"""
Process runtime: build every component from Settings, run the scheduler until
SIGINT/SIGTERM, then stop it and release clients.

Usage: python -m backend_insights
"""

from __future__ import annotations

import signal
import sys
import threading
from dataclasses import dataclass
from typing import Any

from backend_insights.aggregation import AggregationJobManager, HourlyAggregator
from backend_insights.cache import CacheAside, CacheBackend, build_cache_backend
from backend_insights.config import Settings, get_settings
from backend_insights.core.exceptions import InsightsError
from backend_insights.database import Database, get_database
from backend_insights.ingestion import (
    CursorStore,
    HorizonPaymentsClient,
    PaymentIngestor,
    PaymentSource,
)
from backend_insights.insights_logging import get_logger
from backend_insights.scheduler import PeriodicScheduler, SchedulerConfig, SyncService
from backend_insights.service import InsightsService

logger = get_logger(__name__)


@dataclass
class Runtime:
    settings: Settings
    db: Database
    cache_backend: CacheBackend
    source: PaymentSource
    sync: SyncService
    scheduler: PeriodicScheduler
    service: InsightsService

    def close(self) -> None:
        close = getattr(self.source, "close", None)
        if close is not None:
            close()
        self.cache_backend.close()


def build_runtime(settings: Settings, *, source: PaymentSource | None = None) -> Runtime:
    """Wire database, cache, source, pipeline and scheduler. No threads are started."""
    db = get_database(settings.db_path)
    cache_backend = build_cache_backend(settings.cache_url)
    cache = CacheAside(cache_backend, default_ttl=settings.cache_default_ttl_sec)
    if source is None:
        source = HorizonPaymentsClient(
            settings.horizon_url,
            limit=settings.source_page_limit,
            timeout=settings.source_timeout_sec,
        )
    sync = SyncService(
        db,
        PaymentIngestor(source, CursorStore(db), db),
        HourlyAggregator(db),
        AggregationJobManager(db, max_retries=settings.aggregation_max_retries),
        task_name=settings.ingest_task_name,
        job_id=settings.aggregation_job_id,
    )
    scheduler = PeriodicScheduler(
        sync.run_cycle,
        SchedulerConfig(
            interval_sec=settings.sync_interval_sec,
            run_immediately=settings.sync_run_on_start,
            name="sync",
        ),
    )
    service = InsightsService(db, cache, default_ttl=settings.cache_default_ttl_sec)
    return Runtime(
        settings=settings,
        db=db,
        cache_backend=cache_backend,
        source=source,
        sync=sync,
        scheduler=scheduler,
        service=service,
    )


def run(settings: Settings) -> None:
    """Start the scheduler and block until a shutdown signal."""
    runtime = build_runtime(settings)
    shutdown = threading.Event()

    def request_shutdown(signum: int, frame: Any) -> None:
        logger.info("runtime_shutdown_signal", signal=signum)
        shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, request_shutdown)
        except (AttributeError, ValueError):
            # Not on the main thread, or unsupported platform
            logger.debug("runtime_signal_unavailable", signal=str(sig))

    runtime.sync.reset_interrupted()
    runtime.scheduler.start()
    logger.info(
        "runtime_started",
        db_path=str(settings.db_path),
        interval_sec=settings.sync_interval_sec,
        cache="redis" if settings.cache_url else "memory",
    )
    try:
        shutdown.wait()
    finally:
        runtime.scheduler.stop(timeout=settings.shutdown_join_timeout_sec)
        runtime.close()
        logger.info("runtime_stopped")


def main() -> int:
    """CLI entrypoint: load settings from env and run until signalled."""
    try:
        run(get_settings())
        return 0
    except KeyboardInterrupt:
        logger.info("runtime_shutdown_signal")
        return 0
    except InsightsError as e:
        logger.error("runtime_fatal", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
