"""
Tests for periodic scheduling.
"""

import asyncio

import pytest

from strikebot.utils.clock import PeriodicTask


async def run_until(predicate, timeout=1.0):
    async def wait():
        while not predicate():
            await asyncio.sleep(0)
    await asyncio.wait_for(wait(), timeout)


class TestPeriodicTask:
    """Tests for fixed-interval tasks."""

    @pytest.mark.asyncio
    async def test_fires_on_interval(self, clock):
        calls = []

        async def callback():
            calls.append(clock.now())

        start = clock.now()
        task = PeriodicTask("tick", 5.0, callback, clock=clock)
        task.start()
        await run_until(lambda: len(calls) >= 3)
        await task.stop()

        assert calls[:3] == [start + 5.0, start + 10.0, start + 15.0]
        assert not task.is_running

    @pytest.mark.asyncio
    async def test_run_immediately(self, clock):
        calls = []

        async def callback():
            calls.append(clock.now())

        start = clock.now()
        task = PeriodicTask("refresh", 30.0, callback, clock=clock, run_immediately=True)
        task.start()
        await run_until(lambda: len(calls) >= 2)
        await task.stop()

        assert calls[:2] == [start, start + 30.0]

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_schedule(self, clock):
        calls = []

        async def callback():
            calls.append(1)
            raise RuntimeError("transient")

        task = PeriodicTask("flaky", 1.0, callback, clock=clock)
        task.start()
        await run_until(lambda: len(calls) >= 3)

        assert task.is_running
        await task.stop()
