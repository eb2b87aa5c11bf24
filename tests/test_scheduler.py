from __future__ import annotations

import datetime

import pytest

from services.scheduler import CycleScheduler


def test_interval_bounds_are_randomized(make_cycle):
    scheduler = CycleScheduler(make_cycle(), min_interval=45, max_interval=120)

    assert scheduler.job.interval == 45
    assert scheduler.job.latest == 120
    assert 45 <= scheduler.job.period.total_seconds() <= 120


@pytest.mark.parametrize("low,high", [(0, 10), (60, 30)])
def test_invalid_bounds_are_rejected(make_cycle, low, high):
    with pytest.raises(ValueError):
        CycleScheduler(make_cycle(), min_interval=low, max_interval=high)


def test_run_now_reports_to_callback(mailbox, make_cycle):
    mailbox.add_message("A", {"From": "a@example.com", "Subject": "Hello"})
    reports = []
    scheduler = CycleScheduler(make_cycle(), on_report=reports.append)

    report = scheduler.run_now()

    assert reports == [report]
    assert report.replied == 1


def test_cycle_exception_does_not_escape(make_cycle):
    cycle = make_cycle()

    def explode():
        raise RuntimeError("boom")

    cycle.run_cycle = explode
    scheduler = CycleScheduler(cycle)

    assert scheduler.run_now() is None
    # The lock was released, so the next run proceeds.
    cycle.run_cycle = lambda: "ok"
    assert scheduler.run_now() == "ok"


def test_overlapping_run_is_skipped(make_cycle):
    cycle = make_cycle()
    calls = []
    cycle.run_cycle = lambda: calls.append(1)
    scheduler = CycleScheduler(cycle)

    scheduler._lock.acquire()
    try:
        assert scheduler.run_now() is None
    finally:
        scheduler._lock.release()

    assert calls == []


def test_tick_runs_only_when_due(make_cycle):
    cycle = make_cycle()
    calls = []
    cycle.run_cycle = lambda: calls.append(1)
    scheduler = CycleScheduler(cycle)

    scheduler.tick()
    assert calls == []

    scheduler.job.next_run = datetime.datetime.now() - datetime.timedelta(seconds=1)
    scheduler.tick()
    assert calls == [1]


def test_stop_ends_run_forever_and_blocks_ticks(make_cycle):
    cycle = make_cycle()
    calls = []
    cycle.run_cycle = lambda: calls.append(1)
    scheduler = CycleScheduler(cycle)

    scheduler.stop()
    scheduler.job.next_run = datetime.datetime.now() - datetime.timedelta(seconds=1)
    scheduler.tick()
    scheduler.run_forever(poll_seconds=0)

    assert calls == []
    assert cycle.stop_event.is_set()
    assert scheduler.seconds_until_next_run() is None
