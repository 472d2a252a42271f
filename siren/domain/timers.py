"""Cancellable countdown timers.

The engine tags every countdown with the session epoch current when it was
scheduled and cancels it on the transition out of the state that started it.
Backends only have to run a coroutine after a delay and support
cancellation; a callback that slips through after cancellation is rejected
by the engine's epoch check.
"""

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import timedelta

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from siren.core.logging import get_logger
from siren.domain.models import utcnow

logger = get_logger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle(ABC):
    """Handle to a scheduled countdown."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the countdown. Calling it more than once is harmless."""
        pass


class TimerService(ABC):
    """Interface for countdown backends."""

    @abstractmethod
    def schedule(self, name: str, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        """Run ``callback`` once after ``delay_seconds``."""
        pass

    async def start(self) -> None:
        """Start the backend."""

    async def shutdown(self) -> None:
        """Stop the backend and drop pending countdowns."""


class _LoopTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioTimerService(TimerService):
    """Countdowns on the running event loop via ``call_later``."""

    def __init__(self) -> None:
        self._handles: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, name: str, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle | None = None

        def fire() -> None:
            self._handles.discard(handle)
            task = loop.create_task(callback(), name=f"timer:{name}")
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

        handle = loop.call_later(max(delay_seconds, 0), fire)
        self._handles.add(handle)
        return _LoopTimerHandle(handle)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Countdown callback failed",
                task=task.get_name(),
                error=str(task.exception()),
            )

    async def shutdown(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


class _SchedulerJobHandle(TimerHandle):
    def __init__(self, scheduler: AsyncIOScheduler, job_id: str):
        self._scheduler = scheduler
        self._job_id = job_id

    def cancel(self) -> None:
        # The job is gone once it has fired.
        with contextlib.suppress(JobLookupError):
            self._scheduler.remove_job(self._job_id)


class SchedulerTimerService(TimerService):
    """Countdowns as APScheduler one-shot ``date`` jobs."""

    def __init__(self, scheduler: AsyncIOScheduler | None = None):
        self._scheduler = scheduler or _create_scheduler()

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def schedule(self, name: str, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        async def run_countdown() -> None:
            await callback()

        job = self._scheduler.add_job(
            func=run_countdown,
            trigger="date",
            run_date=utcnow() + timedelta(seconds=max(delay_seconds, 0)),
            id=f"countdown:{name}",
            name=f"Countdown {name}",
            replace_existing=True,
        )
        return _SchedulerJobHandle(self._scheduler, job.id)

    async def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Countdown scheduler started")

    async def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Countdown scheduler stopped")


def _create_scheduler() -> AsyncIOScheduler:
    """Create the APScheduler instance used for countdowns."""
    return AsyncIOScheduler(
        jobstores={"default": MemoryJobStore()},
        executors={"default": AsyncIOExecutor()},
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            # A late countdown must still fire; the epoch check drops stale ones.
            "misfire_grace_time": None,
        },
        timezone="UTC",
    )
