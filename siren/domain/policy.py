"""Tier policy: what a missed check-in leads to and who gets contacted."""

from enum import Enum

from siren.domain.models import (
    ActionKind,
    Contact,
    EscalationAction,
    SafetySession,
    SessionConfig,
)


class ExpiryOutcome(str, Enum):
    """Result of classifying a grace expiry."""

    REARM = "rearm"
    MESSAGE_AND_REARM = "message_and_rearm"
    ESCALATE = "escalate"


def order_contacts(contacts: tuple[Contact, ...]) -> list[Contact]:
    """Contacts in calling order. Ties keep their configured order."""
    return sorted(contacts, key=lambda contact: contact.priority)


def classify_expiry(config: SessionConfig, missed_count: int) -> ExpiryOutcome:
    """
    Decide what an unacknowledged grace expiry leads to.

    Reflex sessions are single-shot: the first unanswered shake or voice
    trigger escalates. Scheduled check-ins accumulate misses across
    intervals and are compared against the two thresholds.
    """
    if config.mode.is_reflex:
        return ExpiryOutcome.ESCALATE
    if missed_count >= config.call_threshold:
        return ExpiryOutcome.ESCALATE
    if missed_count >= config.message_threshold:
        return ExpiryOutcome.MESSAGE_AND_REARM
    return ExpiryOutcome.REARM


def _action(session: SafetySession, contact: Contact, kind: ActionKind, reason: str) -> EscalationAction:
    return EscalationAction(
        session_id=session.session_id,
        contact_id=contact.id,
        action=kind,
        reason=reason,
        phone=contact.phone,
        contact_name=contact.name,
        note=session.config.custom_message or "",
    )


def message_round(session: SafetySession) -> list[EscalationAction]:
    """One message per contact for a missed check-in."""
    reason = f"missed check-in {session.missed_count}"
    if not session.mode.is_reflex:
        reason += f" of {session.config.call_threshold}"
    return [
        _action(session, contact, ActionKind.MESSAGE, reason)
        for contact in order_contacts(session.contacts)
    ]


def escalation_round(session: SafetySession) -> list[EscalationAction]:
    """Call the primary contact, then message everyone else."""
    ordered = order_contacts(session.contacts)
    if not ordered:
        return []

    if session.mode.is_reflex:
        reason = f"{session.mode.value.replace('_', ' ')} alert not acknowledged"
    else:
        reason = f"missed {session.missed_count} check-ins"

    primary, *others = ordered
    actions = [_action(session, primary, ActionKind.CALL, reason)]
    actions.extend(_action(session, contact, ActionKind.MESSAGE, reason) for contact in others)
    return actions
