from __future__ import annotations

import threading

import pytest

from receipt_notifier.dispatch.scheduler import PollingScheduler


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        PollingScheduler(0, lambda: None)


def test_tick_is_not_reentrant() -> None:
    nested = []

    def job() -> None:
        nested.append(scheduler.tick())

    scheduler = PollingScheduler(60, job)

    assert scheduler.tick() is True
    assert nested == [False]
    assert scheduler.runs == 1
    assert scheduler.skipped == 1
    assert not scheduler.busy


def test_concurrent_tick_is_skipped_while_running() -> None:
    started = threading.Event()
    release = threading.Event()

    def job() -> None:
        started.set()
        release.wait(5)

    scheduler = PollingScheduler(60, job)
    worker = threading.Thread(target=scheduler.tick)
    worker.start()
    assert started.wait(5)

    assert scheduler.busy
    assert scheduler.tick() is False

    release.set()
    worker.join(5)
    assert scheduler.runs == 1
    assert scheduler.tick() is True


def test_start_runs_immediately_and_keeps_ticking_after_errors() -> None:
    calls = []

    def job() -> None:
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("boom")
        if len(calls) == 3:
            scheduler.stop()

    scheduler = PollingScheduler(0.01, job)
    scheduler.start()

    assert calls == [0, 1, 2]
    assert scheduler.runs == 3


def test_overrun_skips_missed_ticks() -> None:
    now = [0.0]

    def clock() -> float:
        return now[0]

    def job() -> None:
        now[0] += 25  # overruns two 10 second slots
        scheduler.stop()

    scheduler = PollingScheduler(10, job, clock=clock)
    scheduler.start()

    assert scheduler.runs == 1
    assert scheduler.skipped == 2
