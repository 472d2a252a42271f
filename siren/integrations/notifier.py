"""Notifier providers that deliver escalation actions to contacts."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx
from twilio.base.exceptions import TwilioException
from twilio.rest import Client
from twilio.twiml.voice_response import VoiceResponse

from siren.core.logging import get_logger
from siren.core.settings import Settings
from siren.domain.errors import NotifierFailure
from siren.domain.models import ActionKind, EscalationAction, utcnow

logger = get_logger(__name__)


@dataclass
class NotificationOutcome:
    """Result of delivering one escalation action."""

    action: EscalationAction
    delivered: bool
    provider_id: str | None = None
    error_message: str | None = None
    sent_at: datetime = field(default_factory=utcnow)


def format_message(action: EscalationAction) -> str:
    """Format the SMS / push text for an escalation action."""
    if action.action is ActionKind.CALL:
        message = f"SIREN EMERGENCY: {action.reason}. Calling {action.contact_name or 'you'} now."
    else:
        message = f"SIREN ALERT: {action.reason}."
    if action.note:
        message += f" Message: {action.note}"
    message += " Please check on them or call emergency services."
    return message


def format_call_twiml(action: EscalationAction) -> str:
    """Spoken message for escalation calls, played twice."""
    spoken = f"This is a Siren emergency alert. {action.reason}."
    if action.note:
        spoken += f" {action.note}."
    response = VoiceResponse()
    response.say(spoken)
    response.pause(length=1)
    response.say(spoken)
    return str(response)


class Notifier(ABC):
    """Abstract base class for notifiers."""

    name: str = "notifier"

    @abstractmethod
    async def send(self, action: EscalationAction) -> NotificationOutcome:
        """
        Deliver an escalation action.

        Implementations either return an outcome or raise NotifierFailure.
        Retrying is up to the caller.
        """
        pass

    async def aclose(self) -> None:
        """Release provider resources."""


class LoggingNotifier(Notifier):
    """Dry-run notifier that only logs what would be sent."""

    name = "log"

    async def send(self, action: EscalationAction) -> NotificationOutcome:
        logger.info(
            "DRY-RUN notifier: would deliver action",
            session_id=action.session_id,
            contact_id=action.contact_id,
            action=action.action.value,
            reason=action.reason,
            mode="simulated",
        )
        return NotificationOutcome(action=action, delivered=True, provider_id="simulated")


class HttpNotifier(Notifier):
    """Posts escalation actions to the notifier backend."""

    name = "http"

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @staticmethod
    def build_payload(action: EscalationAction) -> dict[str, Any]:
        return {
            "session_id": action.session_id,
            "contact_id": action.contact_id,
            "action": action.action.value,
            "reason": action.reason,
            "to": action.phone,
            "contact_name": action.contact_name,
            "message": format_message(action),
        }

    async def send(self, action: EscalationAction) -> NotificationOutcome:
        payload = self.build_payload(action)
        try:
            response = await self._client.post(
                self.url,
                json=payload,
                headers={"Idempotency-Key": _idempotency_key(action)},
            )
        except httpx.HTTPError as e:
            raise NotifierFailure(f"Notifier backend unreachable: {e}") from e

        if response.status_code >= 400:
            raise NotifierFailure(
                f"Notifier backend rejected {action.action.value} "
                f"with status {response.status_code}"
            )

        provider_id = None
        try:
            provider_id = response.json().get("id")
        except ValueError:
            logger.debug("Notifier response has no JSON body", status_code=response.status_code)

        return NotificationOutcome(action=action, delivered=True, provider_id=provider_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class TwilioNotifier(Notifier):
    """Real Twilio provider for SMS and voice calls."""

    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        voice_url: str | None = None,
        client: Client | None = None,
    ):
        self.client = client or Client(account_sid, auth_token)
        self.from_number = from_number
        self.voice_url = voice_url

    async def send(self, action: EscalationAction) -> NotificationOutcome:
        if not action.phone:
            raise NotifierFailure(f"Contact {action.contact_id} has no phone number")

        try:
            if action.action is ActionKind.CALL:
                provider_id = await asyncio.to_thread(self._place_call, action)
            else:
                provider_id = await asyncio.to_thread(self._send_sms, action)
        except TwilioException as e:
            raise NotifierFailure(f"Twilio {action.action.value} failed: {e}") from e

        logger.info(
            "Twilio action sent",
            session_id=action.session_id,
            contact_id=action.contact_id,
            action=action.action.value,
            sid=provider_id,
        )
        return NotificationOutcome(action=action, delivered=True, provider_id=provider_id)

    def _place_call(self, action: EscalationAction) -> str:
        kwargs: dict[str, Any] = {"to": action.phone, "from_": self.from_number, "timeout": 30}
        if self.voice_url:
            kwargs.update(url=self.voice_url, method="POST")
        else:
            kwargs["twiml"] = format_call_twiml(action)
        call = self.client.calls.create(**kwargs)
        return call.sid

    def _send_sms(self, action: EscalationAction) -> str:
        sms = self.client.messages.create(
            body=format_message(action),
            from_=self.from_number,
            to=action.phone,
        )
        return sms.sid


def _idempotency_key(action: EscalationAction) -> str:
    return f"session:{action.session_id}:{action.action.value}:contact:{action.contact_id}:{action.reason}"


def get_notifier(settings: Settings) -> Notifier:
    """Factory function to get the configured notifier."""
    if settings.notifier_backend == "http":
        return HttpNotifier(settings.notifier_url or "", timeout=settings.notifier_timeout_sec)
    if settings.notifier_backend == "twilio":
        return TwilioNotifier(
            account_sid=settings.twilio_account_sid or "",
            auth_token=settings.twilio_auth_token or "",
            from_number=settings.twilio_from_number or "",
            voice_url=settings.twilio_voice_url,
        )
    return LoggingNotifier()
