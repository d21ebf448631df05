"""Unit tests for the capture schedulers."""

import asyncio

import pytest

from voicediary.capture.scheduler import AsyncioScheduler, ManualScheduler


@pytest.mark.unit
class TestManualScheduler:
    """Test cases for ManualScheduler."""

    def test_timers_fire_in_order(self):
        scheduler = ManualScheduler()
        fired = []

        scheduler.call_later(300, lambda: fired.append(("b", scheduler.now_ms())))
        scheduler.call_later(100, lambda: fired.append(("a", scheduler.now_ms())))
        scheduler.advance(500)

        assert fired == [("a", 100), ("b", 300)]
        assert scheduler.now_ms() == 500

    def test_cancelled_timer_does_not_fire(self):
        scheduler = ManualScheduler()
        fired = []

        timer = scheduler.call_later(100, lambda: fired.append(1))
        timer.cancel()
        scheduler.advance(200)

        assert fired == []
        assert scheduler.pending == 0

    def test_chained_timers_within_one_advance(self):
        scheduler = ManualScheduler(start_ms=1000)
        fired = []

        def first():
            fired.append(scheduler.now_ms())
            scheduler.call_later(100, lambda: fired.append(scheduler.now_ms()))

        scheduler.call_later(100, first)
        scheduler.advance(250)

        assert fired == [1100, 1200]

    def test_timer_beyond_advance_stays_pending(self):
        scheduler = ManualScheduler()
        scheduler.call_later(1000, lambda: None)

        scheduler.advance(999)

        assert scheduler.pending == 1


@pytest.mark.unit
class TestAsyncioScheduler:
    """Test cases for AsyncioScheduler."""

    def test_call_later_runs_on_loop(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            fired = asyncio.Event()
            scheduler.call_later(5, fired.set)
            await asyncio.wait_for(fired.wait(), timeout=1)
            return scheduler.now_ms()

        assert asyncio.run(scenario()) > 0

    def test_cancel(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            fired = []
            timer = scheduler.call_later(5, lambda: fired.append(1))
            timer.cancel()
            await asyncio.sleep(0.02)
            return fired

        assert asyncio.run(scenario()) == []
