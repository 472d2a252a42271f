"""Unit tests for domain models."""

import math

import pytest

from siren.domain.models import (
    Contact,
    SessionConfig,
    SessionMode,
    Tier,
    TriggerEvent,
    TriggerKind,
)


@pytest.mark.unit
class TestSessionConfig:
    """Test session configuration validation."""

    def test_check_in_requires_interval(self):
        with pytest.raises(ValueError, match="interval_seconds"):
            SessionConfig(mode=SessionMode.CHECK_IN)

    def test_reflex_interval_is_optional(self):
        config = SessionConfig(mode=SessionMode.SHAKE_WATCH)
        assert config.interval_seconds is None

    def test_contacts_list_is_frozen_to_tuple(self, contacts):
        config = SessionConfig(mode=SessionMode.CHECK_IN, interval_seconds=60, contacts=contacts)
        assert isinstance(config.contacts, tuple)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"interval_seconds": 0},
            {"interval_seconds": -5},
            {"check_in_timeout_seconds": 0},
            {"message_threshold": 0},
            {"call_threshold": 0},
            {"refractory_seconds": -1},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        values = {"mode": SessionMode.CHECK_IN, "interval_seconds": 60}
        values.update(overrides)
        with pytest.raises(ValueError):
            SessionConfig(**values)

    def test_rejects_duplicate_contact_ids(self):
        contact = Contact(id="mom", name="Mom", phone="+1", priority=1)
        with pytest.raises(ValueError, match="unique"):
            SessionConfig(mode=SessionMode.SHAKE_WATCH, contacts=[contact, contact])


@pytest.mark.unit
class TestTriggerEvent:
    """Test trigger value validation."""

    @pytest.mark.parametrize(
        "kind,value,expected",
        [
            (TriggerKind.MOTION, 25.0, True),
            (TriggerKind.MOTION, 0.0, True),
            (TriggerKind.MOTION, -0.1, False),
            (TriggerKind.MOTION, math.nan, False),
            (TriggerKind.VOICE, 100.0, True),
            (TriggerKind.VOICE, 100.5, False),
            (TriggerKind.VOICE, math.inf, False),
            (TriggerKind.MANUAL, math.nan, True),
        ],
    )
    def test_is_well_formed(self, kind, value, expected):
        assert TriggerEvent(kind=kind, value=value).is_well_formed() is expected


@pytest.mark.unit
def test_terminal_tiers():
    assert {tier for tier in Tier if tier.is_terminal} == {Tier.RESOLVED, Tier.CANCELLED}
    assert not SessionMode.CHECK_IN.is_reflex
    assert SessionMode.SHAKE_WATCH.is_reflex
