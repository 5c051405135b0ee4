"""Timer sources for the restoration scheduler.

The scheduler only ever asks for "call this in N seconds" and "what time is
it", so the event loop can be swapped for a virtual clock that tests advance
by hand.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """A scheduled callback that can still be cancelled."""

    def cancel(self) -> None: ...


class Clock(Protocol):
    """Monotonic time plus delayed callbacks."""

    def now(self) -> float: ...

    def call_later(
        self, delay: float, callback: Callable[[], None]
    ) -> TimerHandle: ...


class AsyncioClock:
    """Clock backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


class _VirtualTimer:
    __slots__ = ("callback", "cancelled", "when")

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """Deterministic clock that only moves when ``advance`` is called.

    Callbacks due at the same instant run in the order they were scheduled.
    Callbacks may schedule further callbacks; those run within the same
    ``advance`` call if they fall due before its end.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _VirtualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _VirtualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.when, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> None:
        """Move time forward, firing every callback that falls due."""
        deadline = self._now + seconds
        while self._queue and self._queue[0][0] <= deadline:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
        self._now = deadline

    def advance_to(self, when: float) -> None:
        self.advance(max(0.0, when - self._now))

    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)
