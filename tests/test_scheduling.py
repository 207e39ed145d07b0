"""Tests for clocks and interval schedulers."""

import asyncio
from datetime import datetime

import pytest

from aquarium_core.clock import ManualClock, last_sunday, minutes_between, next_sunday
from aquarium_core.scheduling import AsyncioScheduler, ManualScheduler, TimerHandle


class TestWeeklyBoundaries:
    def test_last_sunday_midweek(self):
        assert last_sunday(datetime(2024, 1, 3, 12, 0)) == datetime(2023, 12, 31, 0, 0)

    def test_last_sunday_on_sunday(self):
        assert last_sunday(datetime(2024, 1, 7, 18, 30)) == datetime(2024, 1, 7, 0, 0)

    def test_next_sunday_on_sunday_is_a_week_later(self):
        assert next_sunday(datetime(2024, 1, 7, 0, 0)) == datetime(2024, 1, 14, 0, 0)

    def test_next_sunday_on_saturday(self):
        assert next_sunday(datetime(2024, 1, 6, 23, 59)) == datetime(2024, 1, 7, 0, 0)

    def test_minutes_between(self):
        assert minutes_between(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 10, 30)) == 30.0
        assert minutes_between(datetime(2024, 1, 1, 10, 30), datetime(2024, 1, 1, 10, 0)) == -30.0


class TestManualClock:
    def test_advance_moves_now_and_monotonic(self):
        clock = ManualClock(datetime(2024, 1, 1))
        clock.advance(seconds=30, minutes=1)
        assert clock.now() == datetime(2024, 1, 1, 0, 1, 30)
        assert clock.monotonic() == 90.0


class TestManualScheduler:
    def test_fires_in_time_order(self, clock):
        scheduler = ManualScheduler(clock)
        order = []
        scheduler.call_every(3, lambda: order.append("slow"), name="slow")
        scheduler.call_every(2, lambda: order.append("fast"), name="fast")
        fired = scheduler.advance(6)
        assert fired == 5
        assert order == ["fast", "slow", "fast", "slow", "fast"]

    def test_clock_moves_with_timers(self, clock):
        scheduler = ManualScheduler(clock)
        start = clock.now()
        seen = []
        scheduler.call_every(10, lambda: seen.append(clock.now()))
        scheduler.advance(25)
        assert [(t - start).total_seconds() for t in seen] == [10.0, 20.0]
        assert (clock.now() - start).total_seconds() == 25.0

    def test_cancelled_timer_stops(self, clock):
        scheduler = ManualScheduler(clock)
        calls = []
        handle = scheduler.call_every(1, lambda: calls.append(1))
        scheduler.advance(2)
        handle.cancel()
        handle.cancel()
        scheduler.advance(5)
        assert len(calls) == 2
        assert scheduler.active_count == 0

    def test_failing_callback_keeps_cadence(self, clock):
        scheduler = ManualScheduler(clock)
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("tick failed")

        handle = scheduler.call_every(1, flaky)
        scheduler.advance(3)
        assert len(calls) == 3
        assert handle.fire_count == 3


class TestTimerHandle:
    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            TimerHandle("bad", 0, lambda: None)


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_runs_until_cancelled(self):
        scheduler = AsyncioScheduler()
        calls = []
        scheduler.call_every(0.01, lambda: calls.append(1), name="fast")
        await asyncio.sleep(0.06)
        assert scheduler.active_count == 1
        scheduler.cancel_all()
        count = len(calls)
        await asyncio.sleep(0.03)
        assert count >= 2
        assert len(calls) == count
        assert scheduler.active_count == 0
