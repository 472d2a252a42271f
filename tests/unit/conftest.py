"""Unit test configuration."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from siren.factory import create_app
from tests.fakes.notifier import RecordingNotifier
from tests.fakes.timers import FakeTimerService


@pytest.fixture
def app(test_settings, notifier: RecordingNotifier, timers: FakeTimerService) -> FastAPI:
    """Return a fresh app instance wired to the fake notifier and timers."""
    return create_app(settings=test_settings, notifier=notifier, timers=timers)


@pytest.fixture
async def async_client(app: FastAPI):
    """Async client on the test's event loop, so fake countdowns can be fired between requests."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
