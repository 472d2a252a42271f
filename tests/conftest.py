"""Test configuration and fixtures for Siren tests."""

import os

import pytest

from siren.core.settings import Settings, get_settings
from siren.domain.engine import EscalationEngine
from siren.domain.models import Contact
from siren.storage.memory import InMemorySessionStore
from tests.fakes.notifier import RecordingNotifier
from tests.fakes.timers import FakeTimerService, ManualClock

os.environ.setdefault("APP_ENV", "test")


def reset_settings_cache() -> None:
    """Reset the settings cache for testing."""
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the built-in escalation defaults and the dry-run notifier."""
    return Settings(app_env="test", notifier_backend="log", scheduler_enabled=False)


@pytest.fixture
def contacts() -> list[Contact]:
    """Mom is called first; Dad and Sarah are messaged."""
    return [
        Contact(id="mom", name="Mom", phone="+15550000001", priority=1),
        Contact(id="dad", name="Dad", phone="+15550000002", priority=2),
        Contact(id="sarah", name="Sarah", phone="+15550000003", priority=3),
    ]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timers(clock: ManualClock) -> FakeTimerService:
    return FakeTimerService(clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def engine(notifier, store, timers, clock) -> EscalationEngine:
    return EscalationEngine(notifier=notifier, store=store, timers=timers, clock=clock)


@pytest.fixture
def events(engine: EscalationEngine) -> list:
    """Every event the engine publishes, in order."""
    received: list = []
    engine.subscribe(received.append)
    return received


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Set asyncio mode to auto
    config.option.asyncio_mode = "auto"
