"""Tests for the scheduler's timer sources."""

from __future__ import annotations

import asyncio

import pytest

from reanchor.clock import AsyncioClock, VirtualClock


class TestVirtualClock:
    def test_fires_in_time_order(self) -> None:
        clock = VirtualClock()
        fired: list[str] = []
        clock.call_later(2, lambda: fired.append("late"))
        clock.call_later(1, lambda: fired.append("early"))
        clock.advance(1.5)
        assert fired == ["early"]
        assert clock.now() == 1.5
        clock.advance(1)
        assert fired == ["early", "late"]

    def test_same_instant_keeps_scheduling_order(self) -> None:
        clock = VirtualClock()
        fired: list[int] = []
        for n in range(3):
            clock.call_later(1, lambda n=n: fired.append(n))
        clock.advance(1)
        assert fired == [0, 1, 2]

    def test_cancelled_timer_does_not_fire(self) -> None:
        clock = VirtualClock()
        fired: list[str] = []
        handle = clock.call_later(1, lambda: fired.append("x"))
        assert clock.pending() == 1
        handle.cancel()
        assert clock.pending() == 0
        clock.advance(5)
        assert fired == []

    def test_callbacks_can_reschedule(self) -> None:
        clock = VirtualClock()
        times: list[float] = []

        def tick() -> None:
            times.append(clock.now())
            if len(times) < 3:
                clock.call_later(2, tick)

        clock.call_later(2, tick)
        clock.advance_to(10)
        assert times == [2, 4, 6]
        assert clock.now() == 10

    def test_advance_to_never_goes_backwards(self) -> None:
        clock = VirtualClock(start=5)
        clock.advance_to(3)
        assert clock.now() == 5


class TestAsyncioClock:
    @pytest.mark.asyncio
    async def test_call_later_runs_on_the_loop(self) -> None:
        clock = AsyncioClock()
        done = asyncio.Event()
        clock.call_later(0.01, done.set)
        await asyncio.wait_for(done.wait(), timeout=1)
        assert clock.now() <= asyncio.get_running_loop().time()
