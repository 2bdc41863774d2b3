"""
Unit tests for the scheduler implementations.
"""

import asyncio

import pytest

from core.scheduler import AsyncioScheduler, Scheduler


class TestManualScheduler:
    def test_runs_in_time_order(self, scheduler):
        fired = []
        scheduler.call_later(2, lambda: fired.append("b"))
        scheduler.call_later(1, lambda: fired.append("a"))

        scheduler.advance(1.5)
        assert fired == ["a"]
        scheduler.advance(1)
        assert fired == ["a", "b"]

    def test_same_instant_keeps_scheduling_order(self, scheduler):
        fired = []
        for name in "xyz":
            scheduler.call_later(1, lambda n=name: fired.append(n))
        scheduler.advance(1)
        assert fired == ["x", "y", "z"]

    def test_cancelled_callback_skipped(self, scheduler):
        fired = []
        handle = scheduler.call_later(1, lambda: fired.append(1))
        handle.cancel()

        scheduler.advance(5)
        assert fired == []
        assert scheduler.pending == 0

    def test_nested_callbacks_within_window(self, scheduler):
        fired = []

        def first():
            fired.append(scheduler.now())
            scheduler.call_later(1, lambda: fired.append(scheduler.now()))

        scheduler.call_later(1, first)
        scheduler.advance(3)

        assert fired == [1, 2]
        assert scheduler.now() == 3

    def test_run_until_idle(self, scheduler):
        fired = []
        scheduler.call_later(10, lambda: fired.append(1))
        scheduler.call_later(20, lambda: fired.append(2))

        scheduler.run_until_idle()
        assert fired == [1, 2]
        assert scheduler.pending == 0

    def test_satisfies_protocol(self, scheduler):
        assert isinstance(scheduler, Scheduler)


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_call_later_on_running_loop(self):
        scheduler = AsyncioScheduler()
        done = asyncio.Event()

        scheduler.call_later(0.01, done.set)
        await asyncio.wait_for(done.wait(), timeout=1)

        assert isinstance(scheduler, Scheduler)

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler = AsyncioScheduler()
        fired = []

        handle = scheduler.call_later(0.01, lambda: fired.append(1))
        handle.cancel()
        await asyncio.sleep(0.05)

        assert fired == []
