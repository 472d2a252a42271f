"""Trigger adapters that turn user actions and sensor data into trigger events."""

from .base import TriggerAdapter
from .manual import ManualCheckInAdapter
from .motion import MotionAdapter, MotionSample
from .voice import VoiceAdapter

__all__ = [
    "TriggerAdapter",
    "ManualCheckInAdapter",
    "MotionAdapter",
    "MotionSample",
    "VoiceAdapter",
]
