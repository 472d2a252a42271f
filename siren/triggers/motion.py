"""Shake detection from accelerometer samples."""

import math
from collections import deque
from dataclasses import dataclass

from siren.domain.engine import EscalationEngine
from siren.domain.models import TriggerKind
from siren.triggers.base import TriggerAdapter


@dataclass(frozen=True)
class MotionSample:
    """Acceleration including gravity, in m/s^2."""

    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)


class MotionAdapter(TriggerAdapter):
    """
    Detects shakes as sudden spikes in acceleration magnitude.

    A sample is a shake when it exceeds ``sensitivity`` and exceeds the
    average of the preceding samples (up to four) by more than
    ``0.6 * sensitivity``. At least three samples must have been seen.
    """

    HISTORY_SIZE = 10
    AVERAGE_WINDOW = 4
    MIN_SAMPLES = 3
    SPIKE_FACTOR = 0.6

    def __init__(self, engine: EscalationEngine, session_id: str, sensitivity: float = 15.0):
        super().__init__(engine, session_id)
        if not sensitivity > 0:
            raise ValueError("sensitivity must be positive")
        self.sensitivity = sensitivity
        self._history: deque[float] = deque(maxlen=self.HISTORY_SIZE)

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind.MOTION

    @property
    def history(self) -> list[float]:
        return list(self._history)

    def reset(self) -> None:
        self._history.clear()

    async def feed(self, sample: MotionSample) -> bool:
        """Analyze one accelerometer sample. Returns True if a shake was detected."""
        return await self.feed_magnitude(sample.magnitude)

    async def feed_magnitude(self, magnitude: float) -> bool:
        if not math.isfinite(magnitude) or magnitude < 0:
            self.log.debug("Motion sample ignored", magnitude=magnitude)
            return False

        self._history.append(magnitude)
        if not self._is_spike(magnitude):
            return False

        self.log.info(
            "Shake detected",
            magnitude=round(magnitude, 2),
            sensitivity=self.sensitivity,
        )
        await self.emit(magnitude)
        return True

    def _is_spike(self, magnitude: float) -> bool:
        if magnitude <= self.sensitivity or len(self._history) < self.MIN_SAMPLES:
            return False
        previous = list(self._history)[-(self.AVERAGE_WINDOW + 1) : -1]
        average = sum(previous) / len(previous)
        return magnitude - average > self.sensitivity * self.SPIKE_FACTOR
