"""Unit tests for countdown backends."""

import asyncio

import pytest

from siren.domain.timers import AsyncioTimerService, SchedulerTimerService


async def wait_for(event: asyncio.Event, timeout: float = 2.0) -> bool:
    try:
        await asyncio.wait_for(event.wait(), timeout)
    except asyncio.TimeoutError:
        return False
    return True


@pytest.mark.unit
class TestAsyncioTimerService:
    """Test event loop countdowns."""

    async def test_fires_after_delay(self):
        timers = AsyncioTimerService()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        timers.schedule("s1:interval:1", 0.01, callback)

        assert await wait_for(fired)

    async def test_cancelled_countdown_does_not_fire(self):
        timers = AsyncioTimerService()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        handle = timers.schedule("s1:grace:2", 0.05, callback)
        handle.cancel()
        handle.cancel()

        assert not await wait_for(fired, timeout=0.2)

    async def test_failing_callback_is_contained(self):
        timers = AsyncioTimerService()
        done = asyncio.Event()

        async def callback():
            done.set()
            raise RuntimeError("boom")

        timers.schedule("s1:grace:3", 0, callback)
        assert await wait_for(done)

        await timers.shutdown()

    async def test_shutdown_drops_pending(self):
        timers = AsyncioTimerService()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        timers.schedule("s1:interval:4", 0.05, callback)
        await timers.shutdown()

        assert not await wait_for(fired, timeout=0.2)


@pytest.mark.unit
class TestSchedulerTimerService:
    """Test APScheduler countdowns."""

    async def test_fires_after_delay(self):
        timers = SchedulerTimerService()
        await timers.start()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        try:
            timers.schedule("s1:interval:1", 0.05, callback)
            assert await wait_for(fired)
        finally:
            await timers.shutdown()

    async def test_cancel_removes_job(self):
        timers = SchedulerTimerService()
        await timers.start()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        try:
            handle = timers.schedule("s1:grace:2", 0.2, callback)
            assert timers.scheduler.get_job("countdown:s1:grace:2") is not None

            handle.cancel()
            handle.cancel()

            assert timers.scheduler.get_job("countdown:s1:grace:2") is None
            assert not await wait_for(fired, timeout=0.4)
        finally:
            await timers.shutdown()

    async def test_running_reflects_lifecycle(self):
        timers = SchedulerTimerService()
        assert timers.running is False

        await timers.start()
        assert timers.running is True

        await timers.shutdown()
        assert timers.running is False
