"""Unit tests for trigger adapters."""

import pytest
import structlog

from siren.domain.models import SessionConfig, SessionMode, Tier
from siren.triggers import ManualCheckInAdapter, MotionAdapter, MotionSample, VoiceAdapter

GRAVITY = 9.8


@pytest.fixture
async def shake_session(engine, contacts) -> str:
    return await engine.create_session(
        SessionConfig(mode=SessionMode.SHAKE_WATCH, contacts=contacts)
    )


@pytest.mark.unit
class TestMotionAdapter:
    """Test shake detection."""

    def test_sample_magnitude(self):
        assert MotionSample(3.0, 4.0, 0.0).magnitude == pytest.approx(5.0)

    def test_rejects_non_positive_sensitivity(self, engine):
        with pytest.raises(ValueError):
            MotionAdapter(engine, "s1", sensitivity=0)

    async def test_spike_triggers_session(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)

        detected = [await adapter.feed_magnitude(m) for m in (GRAVITY, GRAVITY, 30.0)]

        assert detected == [False, False, True]
        assert (await engine.get_session(shake_session)).tier is Tier.AWAITING_ACK

    async def test_needs_three_samples(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)

        assert await adapter.feed_magnitude(GRAVITY) is False
        assert await adapter.feed_magnitude(30.0) is False
        assert (await engine.get_session(shake_session)).tier is Tier.ARMED

    async def test_below_sensitivity_is_ignored(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)

        for magnitude in (GRAVITY, GRAVITY, 14.0):
            assert await adapter.feed_magnitude(magnitude) is False

    async def test_sustained_high_acceleration_is_not_a_spike(self, engine, shake_session):
        """A spike must stand out from the recent average, not just exceed sensitivity."""
        adapter = MotionAdapter(engine, shake_session)

        results = [await adapter.feed_magnitude(m) for m in (20.0, 20.0, 20.0, 22.0)]

        assert results == [False, False, False, False]

    async def test_average_uses_the_four_preceding_samples(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)
        # Early high samples fall out of the four-sample window.
        for magnitude in (60.0, 60.0, GRAVITY, GRAVITY, GRAVITY, GRAVITY):
            await adapter.feed_magnitude(magnitude)

        assert await adapter.feed_magnitude(30.0) is True

    async def test_history_is_bounded(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)
        for _ in range(15):
            await adapter.feed(MotionSample(0.0, 0.0, GRAVITY))

        assert len(adapter.history) == MotionAdapter.HISTORY_SIZE
        adapter.reset()
        assert adapter.history == []

    async def test_invalid_magnitude_is_ignored(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)

        assert await adapter.feed_magnitude(float("nan")) is False
        assert adapter.history == []

    async def test_stopped_session_is_not_an_error(self, engine, shake_session):
        adapter = MotionAdapter(engine, shake_session)
        await engine.cancel(shake_session)

        for magnitude in (GRAVITY, GRAVITY):
            await adapter.feed_magnitude(magnitude)

        assert await adapter.feed_magnitude(30.0) is True
        assert (await engine.get_session(shake_session)).tier is Tier.CANCELLED


@pytest.mark.unit
class TestVoiceAdapter:
    """Test emergency phrase detection."""

    def test_match_is_case_insensitive_substring(self, engine):
        adapter = VoiceAdapter(engine, "s1", phrase="Help Me")

        assert adapter.match("please HELP ME now", 0.8) == pytest.approx(80.0)

    def test_match_requires_confidence(self, engine):
        adapter = VoiceAdapter(engine, "s1", phrase="help me", sensitivity=70)

        assert adapter.match("help me", 0.69) is None
        assert adapter.match("help me", 0.75) == pytest.approx(75.0)

    @pytest.mark.parametrize("confidence", [-0.1, 1.5, float("nan")])
    def test_match_rejects_out_of_range_confidence(self, engine, confidence):
        adapter = VoiceAdapter(engine, "s1", phrase="help me")
        assert adapter.match("help me", confidence) is None

    def test_match_requires_phrase(self, engine):
        adapter = VoiceAdapter(engine, "s1", phrase="help me")
        assert adapter.match("hello there", 0.99) is None

    @pytest.mark.parametrize("phrase,sensitivity", [("   ", 70), ("help", 101), ("help", -1)])
    def test_rejects_bad_configuration(self, engine, phrase, sensitivity):
        with pytest.raises(ValueError):
            VoiceAdapter(engine, "s1", phrase=phrase, sensitivity=sensitivity)

    async def test_first_matching_result_triggers(self, engine, contacts):
        session_id = await engine.create_session(
            SessionConfig(mode=SessionMode.VOICE_WATCH, contacts=contacts)
        )
        adapter = VoiceAdapter(engine, session_id, phrase="help me")

        detected = await adapter.on_results(
            [("hello", 0.95), ("help me", 0.5), ("help me please", 0.9)]
        )

        assert detected is True
        assert (await engine.get_session(session_id)).tier is Tier.AWAITING_ACK

    async def test_no_match_leaves_session_armed(self, engine, contacts):
        session_id = await engine.create_session(
            SessionConfig(mode=SessionMode.VOICE_WATCH, contacts=contacts)
        )
        adapter = VoiceAdapter(engine, session_id, phrase="help me")

        assert await adapter.on_results([("good night", 0.99)]) is False
        assert (await engine.get_session(session_id)).tier is Tier.ARMED


@pytest.mark.unit
class TestManualCheckInAdapter:
    """Test the check-in relay."""

    async def test_check_in_acknowledges(self, engine, timers, contacts):
        session_id = await engine.create_session(
            SessionConfig(mode=SessionMode.CHECK_IN, interval_seconds=60, contacts=contacts)
        )
        await timers.advance(60)

        session = await ManualCheckInAdapter(engine, session_id).check_in()

        assert session.tier is Tier.ARMED

    async def test_check_in_on_stopped_session_returns_none(self, engine, contacts):
        session_id = await engine.create_session(
            SessionConfig(mode=SessionMode.CHECK_IN, interval_seconds=60, contacts=contacts)
        )
        await engine.complete(session_id)

        assert await ManualCheckInAdapter(engine, session_id).check_in() is None

    def test_logger_is_bound_to_the_session(self, engine):
        adapter = ManualCheckInAdapter(engine, "s1")

        context = structlog.get_context(adapter.log)

        assert context["session_id"] == "s1"
        assert context["adapter"] == "ManualCheckInAdapter"
