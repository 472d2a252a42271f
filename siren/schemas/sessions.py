"""Pydantic schemas for safety sessions."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from siren.domain.models import (
    Contact,
    LogEntryType,
    SafetySession,
    SessionLogEntry,
    SessionMode,
    Tier,
    TriggerKind,
)


class ContactSchema(BaseModel):
    """Emergency contact."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., max_length=200)
    phone: str = Field(..., max_length=32, description="Phone number, preferably E.164")
    priority: int = Field(..., ge=1, description="1 is called first, the rest are messaged")

    def to_domain(self) -> Contact:
        return Contact(id=self.id, name=self.name, phone=self.phone, priority=self.priority)

    @classmethod
    def from_domain(cls, contact: Contact) -> "ContactSchema":
        return cls(id=contact.id, name=contact.name, phone=contact.phone, priority=contact.priority)


class SessionCreate(BaseModel):
    """Schema for arming a safety session."""

    mode: SessionMode
    interval_seconds: Optional[float] = Field(
        None, gt=0, description="Quiet period before a check-in is due"
    )
    check_in_timeout_seconds: Optional[float] = Field(
        None, gt=0, description="Grace period after a check-in is due"
    )
    message_threshold: Optional[int] = Field(None, ge=1)
    call_threshold: Optional[int] = Field(None, ge=1)
    refractory_seconds: Optional[float] = Field(None, ge=0)
    contacts: Optional[List[ContactSchema]] = Field(
        None, description="Contacts; fetched from the contacts backend when omitted"
    )
    label: Optional[str] = Field(None, max_length=200, description="Destination or note")
    custom_message: Optional[str] = Field(None, max_length=1000)
    test_mode: bool = Field(False, description="Emit actions without notifying anyone")
    motion_sensitivity: Optional[float] = Field(None, gt=0)
    voice_phrase: Optional[str] = Field(None, min_length=1, max_length=200)
    voice_sensitivity: Optional[float] = Field(None, ge=0, le=100)


class SessionResponse(BaseModel):
    """Schema for a safety session."""

    session_id: str
    mode: SessionMode
    tier: Tier
    missed_count: int
    interval_seconds: Optional[float]
    check_in_timeout_seconds: float
    message_threshold: int
    call_threshold: int
    contacts: List[ContactSchema]
    label: Optional[str]
    test_mode: bool
    created_at: datetime
    updated_at: datetime
    last_acknowledged_at: Optional[datetime]
    countdown_deadline: Optional[datetime]

    @classmethod
    def from_domain(cls, session: SafetySession) -> "SessionResponse":
        config = session.config
        return cls(
            session_id=session.session_id,
            mode=session.mode,
            tier=session.tier,
            missed_count=session.missed_count,
            interval_seconds=config.interval_seconds,
            check_in_timeout_seconds=config.check_in_timeout_seconds,
            message_threshold=config.message_threshold,
            call_threshold=config.call_threshold,
            contacts=[ContactSchema.from_domain(contact) for contact in config.contacts],
            label=config.label,
            test_mode=config.test_mode,
            created_at=session.created_at,
            updated_at=session.updated_at,
            last_acknowledged_at=session.last_acknowledged_at,
            countdown_deadline=session.countdown_deadline,
        )


class SessionCreated(BaseModel):
    """Schema returned when a session is armed."""

    session: SessionResponse
    warnings: List[str] = []


class SessionList(BaseModel):
    """Schema for list of sessions."""

    sessions: List[SessionResponse]
    total: int


class TriggerRequest(BaseModel):
    """Schema for a raw trigger event."""

    kind: TriggerKind
    value: float = Field(0.0, description="Magnitude (motion) or confidence percent (voice)")
    timestamp: Optional[datetime] = Field(
        None, description="When the event happened; values without an offset are read as UTC"
    )


class MotionSampleSchema(BaseModel):
    """Accelerometer sample in m/s^2."""

    x: float
    y: float
    z: float


class MotionSamplesRequest(BaseModel):
    """Schema for a batch of accelerometer samples."""

    samples: List[MotionSampleSchema] = Field(..., min_length=1, max_length=500)


class VoiceResultSchema(BaseModel):
    """One speech recognition alternative."""

    transcript: str = Field(..., max_length=2000)
    confidence: float = Field(..., description="Recognizer confidence between 0 and 1")


class VoiceResultsRequest(BaseModel):
    """Schema for a batch of recognition results."""

    results: List[VoiceResultSchema] = Field(..., min_length=1, max_length=50)


class DetectionResponse(BaseModel):
    """Result of feeding sensor data into a session."""

    detected: bool
    session: SessionResponse


class LogEntryResponse(BaseModel):
    """Schema for a session history entry."""

    type: LogEntryType
    message: str
    timestamp: datetime

    @classmethod
    def from_domain(cls, entry: SessionLogEntry) -> "LogEntryResponse":
        return cls(type=entry.type, message=entry.message, timestamp=entry.timestamp)

