"""
Tests for PeriodicScheduler: single-flight cycles, stop semantics and error
isolation.
"""

from __future__ import annotations

import threading

import pytest

from backend_insights.scheduler import PeriodicScheduler, SchedulerConfig

WAIT_SEC = 5.0


def test_interval_is_clamped():
    assert SchedulerConfig(interval_sec=0.01).interval_sec == 1.0


def test_run_forever_returns_immediately_when_stopped():
    calls = []
    scheduler = PeriodicScheduler(lambda: calls.append(1))
    scheduler.stop_event.set()
    scheduler.run_forever()
    assert calls == []
    assert scheduler.ticks == 0


def test_start_runs_first_cycle_and_stops():
    ran = threading.Event()
    scheduler = PeriodicScheduler(ran.set, SchedulerConfig(interval_sec=60))
    scheduler.start()
    assert ran.wait(WAIT_SEC)
    assert scheduler.stop(timeout=WAIT_SEC) is True
    assert not scheduler.is_running()
    assert scheduler.ticks == 1


def test_stop_does_not_interrupt_running_cycle():
    """A stop request mid-cycle is only observed after the cycle returns."""
    entered = threading.Event()
    release = threading.Event()
    finished = []

    def cycle():
        entered.set()
        release.wait(WAIT_SEC)
        finished.append(True)

    scheduler = PeriodicScheduler(cycle, SchedulerConfig(interval_sec=60))
    scheduler.start()
    assert entered.wait(WAIT_SEC)
    scheduler.stop_event.set()
    assert scheduler.is_running()
    release.set()
    assert scheduler.stop(timeout=WAIT_SEC) is True
    assert finished == [True]
    assert scheduler.ticks == 1


def test_cycles_never_overlap():
    active = []
    max_active = []
    done = threading.Event()
    lock = threading.Lock()

    def cycle():
        with lock:
            active.append(1)
            max_active.append(len(active))
        with lock:
            active.pop()
        if len(max_active) >= 2:
            done.set()

    scheduler = PeriodicScheduler(cycle, SchedulerConfig(interval_sec=1))
    scheduler.start()
    assert done.wait(WAIT_SEC)
    scheduler.stop(timeout=WAIT_SEC)
    assert max(max_active) == 1


def test_cycle_exception_is_logged_and_loop_survives():
    failed = threading.Event()

    def cycle():
        failed.set()
        raise RuntimeError("cycle broke")

    scheduler = PeriodicScheduler(cycle, SchedulerConfig(interval_sec=60))
    scheduler.start()
    assert failed.wait(WAIT_SEC)
    assert scheduler.stop(timeout=WAIT_SEC) is True
    assert scheduler.failures == 1


def test_stop_timeout_reports_false():
    entered = threading.Event()
    release = threading.Event()

    def cycle():
        entered.set()
        release.wait(WAIT_SEC)

    scheduler = PeriodicScheduler(cycle, SchedulerConfig(interval_sec=60))
    scheduler.start()
    assert entered.wait(WAIT_SEC)
    assert scheduler.stop(timeout=0.05) is False
    release.set()
    assert scheduler.stop(timeout=WAIT_SEC) is True


def test_start_twice_rejected():
    release = threading.Event()
    scheduler = PeriodicScheduler(lambda: release.wait(WAIT_SEC), SchedulerConfig(interval_sec=60))
    scheduler.start()
    try:
        with pytest.raises(RuntimeError):
            scheduler.start()
    finally:
        release.set()
        scheduler.stop(timeout=WAIT_SEC)
