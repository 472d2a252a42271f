"""Safety session domain models."""

import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum


class SessionMode(str, Enum):
    """Trigger source that owns a session."""

    CHECK_IN = "check_in"
    SHAKE_WATCH = "shake_watch"
    VOICE_WATCH = "voice_watch"

    @property
    def is_reflex(self) -> bool:
        """Shake and voice sessions react to single events instead of a schedule."""
        return self is not SessionMode.CHECK_IN


class Tier(str, Enum):
    """Escalation state of a session."""

    ARMED = "armed"
    AWAITING_ACK = "awaiting_ack"
    ESCALATING = "escalating"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (Tier.RESOLVED, Tier.CANCELLED)


class TriggerKind(str, Enum):
    """Kinds of trigger events."""

    MANUAL = "manual"
    MOTION = "motion"
    VOICE = "voice"

    @property
    def is_reflex(self) -> bool:
        return self is not TriggerKind.MANUAL


class ActionKind(str, Enum):
    """What the notifier should do for a contact."""

    CALL = "call"
    MESSAGE = "message"


class LogEntryType(str, Enum):
    """Session log entry types."""

    ARMED = "armed"
    CHECK_IN = "check_in"
    TRIGGER = "trigger"
    MISSED = "missed"
    MESSAGE = "message"
    ESCALATION = "escalation"
    COMPLETION = "completion"
    CANCELLATION = "cancellation"


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class Contact:
    """Emergency contact. Priority 1 is called; everyone else is messaged."""

    id: str
    name: str
    phone: str
    priority: int


@dataclass(frozen=True)
class TriggerEvent:
    """Immutable event produced by a trigger adapter.

    ``value`` is the acceleration magnitude for motion events and the
    recognizer confidence percent (0-100) for voice events. Manual events
    carry no meaningful value.
    """

    kind: TriggerKind
    value: float = 0.0
    timestamp: datetime = field(default_factory=utcnow)

    def is_well_formed(self) -> bool:
        """Check that the value is usable for this kind of trigger."""
        if self.kind is TriggerKind.MANUAL:
            return True
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            return False
        if not math.isfinite(self.value) or self.value < 0:
            return False
        if self.kind is TriggerKind.VOICE and self.value > 100:
            return False
        return True


@dataclass(frozen=True)
class EscalationAction:
    """Command emitted by the engine for the notifier."""

    session_id: str
    contact_id: str
    action: ActionKind
    reason: str
    phone: str = ""
    contact_name: str = ""
    note: str = ""


@dataclass(frozen=True)
class SessionConfig:
    """Configuration loaded once when a session is created."""

    mode: SessionMode
    contacts: tuple[Contact, ...] = ()
    interval_seconds: float | None = None
    check_in_timeout_seconds: float = 30
    message_threshold: int = 1
    call_threshold: int = 3
    refractory_seconds: float = 5.0
    label: str | None = None
    custom_message: str | None = None
    test_mode: bool = False

    def __post_init__(self) -> None:
        # Lists are accepted for convenience and frozen here.
        object.__setattr__(self, "contacts", tuple(self.contacts))
        if self.mode is SessionMode.CHECK_IN and not self.interval_seconds:
            raise ValueError("interval_seconds is required for check-in sessions")
        if self.interval_seconds is not None and self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.check_in_timeout_seconds <= 0:
            raise ValueError("check_in_timeout_seconds must be positive")
        if self.message_threshold < 1 or self.call_threshold < 1:
            raise ValueError("thresholds must be at least 1")
        if self.refractory_seconds < 0:
            raise ValueError("refractory_seconds must not be negative")
        ids = [contact.id for contact in self.contacts]
        if len(ids) != len(set(ids)):
            raise ValueError("contact ids must be unique")


@dataclass
class SafetySession:
    """One active monitoring instance. Owned exclusively by the engine."""

    session_id: str
    config: SessionConfig
    tier: Tier = Tier.ARMED
    missed_count: int = 0
    epoch: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_acknowledged_at: datetime | None = None
    last_trigger_at: datetime | None = None
    countdown_deadline: datetime | None = None

    @property
    def mode(self) -> SessionMode:
        return self.config.mode

    @property
    def contacts(self) -> tuple[Contact, ...]:
        return self.config.contacts

    @property
    def interval_seconds(self) -> float | None:
        return self.config.interval_seconds

    @property
    def is_terminal(self) -> bool:
        return self.tier.is_terminal

    def snapshot(self) -> "SafetySession":
        """Detached copy safe to hand out of the engine."""
        return replace(self)


@dataclass(frozen=True)
class SessionLogEntry:
    """Entry in a session's history."""

    session_id: str
    type: LogEntryType
    message: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class TierChanged:
    """Published when a session moves between tiers."""

    session_id: str
    previous: Tier
    current: Tier
    missed_count: int
    at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class ActionEmitted:
    """Published for every escalation action the engine emits."""

    action: EscalationAction
    at: datetime = field(default_factory=utcnow)


SessionEvent = TierChanged | ActionEmitted
