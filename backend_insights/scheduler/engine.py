"""
Periodic single-flight scheduler.

A background thread waits on a stop Event with the interval as timeout: the
Event resolving means stop, the timeout means tick. Each tick runs the cycle
to completion before the next wait, so cycles never overlap and a stop request
during a cycle is only seen once the cycle returns. Cycle errors are logged and
the loop continues.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 300.0
MIN_INTERVAL_SEC = 1.0
SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0


@dataclass
class SchedulerConfig:
    interval_sec: float = DEFAULT_INTERVAL_SEC
    run_immediately: bool = True
    """Run the first cycle right after start instead of after one interval."""
    name: str = "sync"

    def __post_init__(self) -> None:
        self.interval_sec = max(MIN_INTERVAL_SEC, float(self.interval_sec))


class PeriodicScheduler:
    def __init__(
        self,
        cycle: Callable[[], Any],
        config: SchedulerConfig | None = None,
        *,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._cycle = cycle
        self._config = config or SchedulerConfig()
        self._stop_event = stop_event or threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0
        self._failures = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _tick(self) -> None:
        self._ticks += 1
        t0 = time.monotonic()
        try:
            self._cycle()
        except Exception as e:
            self._failures += 1
            logger.exception(
                "scheduler_cycle_failed", scheduler=self._config.name, tick=self._ticks, error=str(e)
            )
            return
        logger.info(
            "scheduler_cycle_done",
            scheduler=self._config.name,
            tick=self._ticks,
            duration_ms=round((time.monotonic() - t0) * 1000, 2),
        )

    def run_forever(self) -> None:
        """Blocking loop until the stop event is set."""
        logger.info(
            "scheduler_started", scheduler=self._config.name, interval_sec=self._config.interval_sec
        )
        delay = 0.0 if self._config.run_immediately else self._config.interval_sec
        while True:
            if self._stop_event.wait(timeout=delay):
                break
            self._tick()
            delay = self._config.interval_sec
        logger.info("scheduler_stopped", scheduler=self._config.name, ticks=self._ticks)

    def start(self) -> None:
        if self.is_running():
            raise RuntimeError("scheduler already running")
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name=f"{self._config.name}-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = SHUTDOWN_JOIN_TIMEOUT_SEC) -> bool:
        """Signal stop and join. Returns False if the thread did not exit within timeout."""
        self._stop_event.set()
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning(
                "scheduler_stop_timeout", scheduler=self._config.name, timeout_sec=timeout
            )
            return False
        self._thread = None
        return True
