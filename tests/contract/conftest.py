"""Contract test configuration."""

import pytest

from siren.domain.models import ActionKind, EscalationAction


@pytest.fixture
def respx_mock():
    """Function-scoped respx mock for external HTTP calls."""
    import respx

    with respx.mock(assert_all_mocked=True, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def call_action() -> EscalationAction:
    return EscalationAction(
        session_id="abc123",
        contact_id="mom",
        action=ActionKind.CALL,
        reason="missed 3 check-ins",
        phone="+15550000001",
        contact_name="Mom",
    )


@pytest.fixture
def message_action() -> EscalationAction:
    return EscalationAction(
        session_id="abc123",
        contact_id="dad",
        action=ActionKind.MESSAGE,
        reason="missed 3 check-ins",
        phone="+15550000002",
        contact_name="Dad",
        note="Walking home from the station",
    )
