from __future__ import annotations

import pytest

from blinko_devserver.watch.debounce import DebounceScheduler, SingleShotTimer


def test_burst_within_delay_settles_once_after_last_event(clock) -> None:
    fired: list[float] = []
    scheduler = DebounceScheduler(lambda: fired.append(clock.now), delay=0.1, clock=clock)

    for at in (0.0, 0.03, 0.06):
        clock.now = at
        scheduler.on_event("index_1.js")
        assert scheduler.poll() is False

    clock.now = 0.159
    assert scheduler.poll() is False
    clock.now = 0.161
    assert scheduler.poll() is True
    assert fired == [0.161]

    clock.now = 1.0
    assert scheduler.poll() is False
    assert scheduler.pending is False


def test_next_event_after_settle_starts_fresh_window(clock) -> None:
    calls: list[int] = []
    scheduler = DebounceScheduler(lambda: calls.append(1), delay=0.1, clock=clock)

    scheduler.on_event("a")
    clock.advance(0.2)
    scheduler.poll()
    scheduler.on_event("b")
    clock.advance(0.05)
    assert scheduler.poll() is False
    clock.advance(0.06)
    assert scheduler.poll() is True
    assert len(calls) == 2


def test_next_timeout_reports_remaining_time(clock) -> None:
    scheduler = DebounceScheduler(lambda: None, delay=0.1, clock=clock)
    assert scheduler.next_timeout() is None

    scheduler.on_event("a")
    clock.advance(0.04)
    assert scheduler.next_timeout() == pytest.approx(0.06)

    clock.advance(1.0)
    assert scheduler.next_timeout() == 0.0


def test_cancel_drops_pending_window(clock) -> None:
    calls: list[int] = []
    scheduler = DebounceScheduler(lambda: calls.append(1), delay=0.1, clock=clock)

    scheduler.on_event("a")
    assert scheduler.cancel() is True
    clock.advance(1.0)

    assert scheduler.poll() is False
    assert calls == []
    assert scheduler.cancel() is False


def test_timer_rearm_replaces_deadline(clock) -> None:
    timer = SingleShotTimer(0.1, clock=clock)
    first = timer.arm()
    clock.advance(0.05)
    second = timer.arm()

    assert second > first
    assert timer.deadline == second
    clock.now = first
    assert timer.expire() is False


def test_timer_rejects_negative_delay() -> None:
    with pytest.raises(ValueError):
        SingleShotTimer(-1)
