"""Session service: builds sessions from requests and wires trigger adapters."""

from dataclasses import dataclass, field
from datetime import datetime

from siren.core.logging import get_logger
from siren.core.settings import Settings
from siren.domain.engine import EscalationEngine
from siren.domain.errors import InvalidSession
from siren.domain.models import (
    Contact,
    SafetySession,
    SessionConfig,
    SessionMode,
    TriggerEvent,
    TriggerKind,
)
from siren.integrations.contacts import ContactsClient
from siren.schemas.sessions import SessionCreate
from siren.triggers import ManualCheckInAdapter, MotionAdapter, MotionSample, VoiceAdapter

logger = get_logger(__name__)

NO_CONTACTS_WARNING = "No emergency contacts configured: escalation will not notify anyone"


@dataclass
class SessionAdapters:
    """Trigger adapters attached to one session."""

    manual: ManualCheckInAdapter
    motion: MotionAdapter | None = None
    voice: VoiceAdapter | None = None


@dataclass
class CreatedSession:
    session: SafetySession
    warnings: list[str] = field(default_factory=list)


class SessionService:
    """Service for arming sessions and feeding them user and sensor input."""

    def __init__(
        self,
        engine: EscalationEngine,
        settings: Settings,
        contacts_client: ContactsClient | None = None,
    ):
        self.engine = engine
        self.settings = settings
        self.contacts_client = contacts_client
        self._adapters: dict[str, SessionAdapters] = {}

    async def create_session(
        self, request: SessionCreate, token: str | None = None
    ) -> CreatedSession:
        """Arm a session from an API request.

        Contacts come from the request or, when omitted, from the contacts
        backend for the authenticated user. Raises ValueError for an invalid
        configuration and ContactsUnavailable if the backend fails.
        """
        contacts = await self._resolve_contacts(request, token)

        if request.mode is SessionMode.VOICE_WATCH and not request.voice_phrase:
            raise ValueError("voice_phrase is required for voice-watch sessions")

        config = SessionConfig(
            mode=request.mode,
            contacts=tuple(contacts),
            interval_seconds=request.interval_seconds,
            check_in_timeout_seconds=(
                request.check_in_timeout_seconds or self.settings.check_in_timeout_seconds
            ),
            message_threshold=request.message_threshold or self.settings.message_threshold,
            call_threshold=request.call_threshold or self.settings.call_threshold,
            refractory_seconds=(
                request.refractory_seconds
                if request.refractory_seconds is not None
                else self.settings.refractory_seconds
            ),
            label=request.label,
            custom_message=request.custom_message,
            test_mode=request.test_mode,
        )

        session_id = await self.engine.create_session(config)
        self._adapters[session_id] = self._build_adapters(session_id, request)

        warnings = []
        if not contacts:
            warnings.append(NO_CONTACTS_WARNING)
            logger.warning("Session armed without contacts", session_id=session_id)

        return CreatedSession(session=await self.engine.get_session(session_id), warnings=warnings)

    async def _resolve_contacts(self, request: SessionCreate, token: str | None) -> list[Contact]:
        if request.contacts is not None:
            return [contact.to_domain() for contact in request.contacts]
        if token and self.contacts_client is not None:
            return await self.contacts_client.fetch_contacts(token)
        return []

    def _build_adapters(self, session_id: str, request: SessionCreate) -> SessionAdapters:
        adapters = SessionAdapters(manual=ManualCheckInAdapter(self.engine, session_id))
        if request.mode is SessionMode.SHAKE_WATCH:
            adapters.motion = MotionAdapter(
                self.engine,
                session_id,
                sensitivity=request.motion_sensitivity or self.settings.motion_sensitivity,
            )
        if request.voice_phrase:
            adapters.voice = VoiceAdapter(
                self.engine,
                session_id,
                phrase=request.voice_phrase,
                sensitivity=(
                    request.voice_sensitivity
                    if request.voice_sensitivity is not None
                    else self.settings.voice_sensitivity
                ),
            )
        return adapters

    async def check_in(self, session_id: str) -> SafetySession:
        """Relay the user's check-in through the session's manual adapter."""
        session = await self._require_adapters(session_id).manual.check_in()
        if session is None:
            raise InvalidSession(session_id, "no active session")
        return session

    async def trigger(
        self,
        session_id: str,
        kind: TriggerKind,
        value: float,
        timestamp: datetime | None = None,
    ) -> SafetySession:
        event = TriggerEvent(kind=kind, value=value, timestamp=timestamp or self.engine.clock())
        return await self.engine.on_trigger(session_id, event)

    async def feed_motion(self, session_id: str, samples: list[MotionSample]) -> bool:
        """Run samples through the session's shake detector."""
        adapter = self._require_adapters(session_id).motion
        if adapter is None:
            raise ValueError("session has no motion detector")
        detected = False
        for sample in samples:
            detected = await adapter.feed(sample) or detected
        return detected

    async def feed_voice(self, session_id: str, results: list[tuple[str, float]]) -> bool:
        """Run recognition results through the session's phrase detector."""
        adapter = self._require_adapters(session_id).voice
        if adapter is None:
            raise ValueError("session has no voice phrase configured")
        return await adapter.on_results(results)

    async def complete(self, session_id: str) -> SafetySession:
        session = await self.engine.complete(session_id)
        self._adapters.pop(session_id, None)
        return session

    async def cancel(self, session_id: str) -> SafetySession:
        session = await self.engine.cancel(session_id)
        self._adapters.pop(session_id, None)
        return session

    def _require_adapters(self, session_id: str) -> SessionAdapters:
        adapters = self._adapters.get(session_id)
        if adapters is None:
            raise InvalidSession(session_id, "no active session")
        return adapters
