"""Deterministic clock and countdown backend for engine tests."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from siren.domain.timers import TimerCallback, TimerHandle, TimerService


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class ScheduledCountdown:
    name: str
    due: datetime
    callback: TimerCallback
    cancelled: bool = False
    fired: bool = False


class _FakeHandle(TimerHandle):
    def __init__(self, entry: ScheduledCountdown):
        self._entry = entry

    def cancel(self) -> None:
        self._entry.cancelled = True


class FakeTimerService(TimerService):
    """
    Records every countdown and fires them when the clock is advanced.

    Cancelled countdowns stay in ``scheduled`` so tests can invoke their
    callbacks directly and simulate a timer that slipped past cancellation.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.scheduled: list[ScheduledCountdown] = []
        self.started = False
        self.stopped = False

    def schedule(self, name: str, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        entry = ScheduledCountdown(
            name=name,
            due=self.clock() + timedelta(seconds=delay_seconds),
            callback=callback,
        )
        self.scheduled.append(entry)
        return _FakeHandle(entry)

    @property
    def pending(self) -> list[ScheduledCountdown]:
        return [e for e in self.scheduled if not e.cancelled and not e.fired]

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due countdowns in order."""
        target = self.clock() + timedelta(seconds=seconds)
        while True:
            due = [e for e in self.pending if e.due <= target]
            if not due:
                break
            entry = min(due, key=lambda e: e.due)
            self.clock.now = max(self.clock.now, entry.due)
            entry.fired = True
            await entry.callback()
        self.clock.now = target

    async def start(self) -> None:
        self.started = True

    async def shutdown(self) -> None:
        self.stopped = True
        for entry in self.pending:
            entry.cancelled = True
