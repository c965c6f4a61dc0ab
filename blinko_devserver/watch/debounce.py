"""Debounce bursts of filesystem events into a single settle signal."""
from __future__ import annotations

import logging
import time
from typing import Callable, Hashable, Optional

LOGGER = logging.getLogger("blinko_devserver.watch.debounce")

Clock = Callable[[], float]


class SingleShotTimer:
    """A cancellable one-shot deadline driven by an external loop.

    The timer never runs code on its own; the owner asks whether it has
    expired. Arming an armed timer replaces the previous deadline, so at most
    one deadline is ever pending.
    """

    def __init__(self, delay: float, *, clock: Clock = time.monotonic) -> None:
        if delay < 0:
            raise ValueError("delay cannot be negative")
        self.delay = delay
        self._clock = clock
        self._deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def arm(self) -> float:
        self._deadline = self._clock() + self.delay
        return self._deadline

    def cancel(self) -> bool:
        was_pending = self._deadline is not None
        self._deadline = None
        return was_pending

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def expire(self) -> bool:
        """Disarm and return ``True`` if the deadline has passed."""

        if self._deadline is None or self._clock() < self._deadline:
            return False
        self._deadline = None
        return True


class DebounceScheduler:
    """Collapse qualifying events into one ``on_settled`` call per quiet period."""

    def __init__(
        self,
        on_settled: Callable[[], None],
        *,
        delay: float = 0.1,
        clock: Clock = time.monotonic,
    ) -> None:
        self._on_settled = on_settled
        self._timer = SingleShotTimer(delay, clock=clock)
        self._last_event: Optional[Hashable] = None
        self._burst_size = 0

    @property
    def pending(self) -> bool:
        return self._timer.pending

    @property
    def delay(self) -> float:
        return self._timer.delay

    def on_event(self, event_id: Hashable) -> None:
        self._timer.arm()
        self._last_event = event_id
        self._burst_size += 1

    def next_timeout(self) -> Optional[float]:
        """Seconds until the pending window settles, or ``None`` when idle."""

        return self._timer.remaining()

    def poll(self) -> bool:
        """Fire the settle callback if the window elapsed; return whether it fired."""

        if not self._timer.expire():
            return False
        LOGGER.debug(
            "Debounce window settled after %d event(s), last=%s",
            self._burst_size,
            self._last_event,
        )
        self._last_event = None
        self._burst_size = 0
        self._on_settled()
        return True

    def cancel(self) -> bool:
        self._last_event = None
        self._burst_size = 0
        return self._timer.cancel()


__all__ = ["DebounceScheduler", "SingleShotTimer"]
