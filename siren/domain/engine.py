"""Safety escalation engine.

One state machine per safety session::

    Armed -> AwaitingAck -> Armed (acknowledged or below the call threshold)
                         -> Escalating -> Armed (acknowledged)
    any non-terminal tier -> Resolved (complete) | Cancelled (cancel)

Transitions of a session are serialized by a per-session lock. Each
countdown is tagged with the session epoch current when it was scheduled;
every transition bumps the epoch, so a countdown that fires after losing a
race against acknowledge/trigger/cancel is recognised as stale and dropped.

Escalation actions are published to subscribers synchronously and delivered
to the notifier in background tasks, so a slow provider never holds up a
transition.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from functools import partial
from uuid import uuid4

from siren.core.logging import get_logger, log_with_context
from siren.core.metrics import (
    escalation_actions_total,
    notifier_failures_total,
    notifier_send_seconds,
    sessions_active,
    sessions_created_total,
    stale_callbacks_total,
    tier_transitions_total,
    triggers_dropped_total,
)
from siren.domain.errors import InvalidSession, NotifierFailure, StaleEpoch
from siren.domain.models import (
    ActionEmitted,
    EscalationAction,
    LogEntryType,
    SafetySession,
    SessionConfig,
    SessionEvent,
    SessionLogEntry,
    Tier,
    TierChanged,
    TriggerEvent,
    TriggerKind,
    utcnow,
)
from siren.domain.policy import (
    ExpiryOutcome,
    classify_expiry,
    escalation_round,
    message_round,
)
from siren.domain.timers import AsyncioTimerService, TimerHandle, TimerService
from siren.integrations.notifier import Notifier
from siren.storage.interfaces import SessionStore
from siren.storage.memory import InMemorySessionStore

logger = get_logger(__name__)

SessionListener = Callable[[SessionEvent], None]

PHASE_INTERVAL = "interval"
PHASE_GRACE = "grace"


class EscalationEngine:
    """Owns every safety session and drives its tier transitions."""

    def __init__(
        self,
        notifier: Notifier,
        store: SessionStore | None = None,
        timers: TimerService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._notifier = notifier
        self._store = store or InMemorySessionStore()
        self._timers = timers or AsyncioTimerService()
        self._clock = clock

        self._sessions: dict[str, SafetySession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._countdowns: dict[str, TimerHandle] = {}
        self._listeners: list[SessionListener] = []
        self._dispatches: set[asyncio.Task] = set()

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for tier changes and emitted actions.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Session listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def create_session(self, config: SessionConfig) -> str:
        """Arm a new session and start its countdown."""
        now = self._clock()
        session = SafetySession(
            session_id=uuid4().hex,
            config=config,
            created_at=now,
            updated_at=now,
        )
        self._sessions[session.session_id] = session
        self._locks[session.session_id] = asyncio.Lock()

        async with self._locks[session.session_id]:
            self._start_interval(session)
            await self._store.save(session)
            await self._log(
                session,
                LogEntryType.ARMED,
                f"{config.mode.value} session armed"
                + (f" for {config.label}" if config.label else ""),
            )

        sessions_created_total.labels(mode=config.mode.value).inc()
        sessions_active.inc()
        logger.info(
            "Safety session created",
            session_id=session.session_id,
            mode=config.mode.value,
            interval_seconds=config.interval_seconds,
            contact_count=len(config.contacts),
            test_mode=config.test_mode,
        )
        return session.session_id

    async def acknowledge(self, session_id: str) -> SafetySession:
        """The user confirmed they are safe."""
        session = await self._require(session_id)
        async with self._locks[session_id]:
            self._require_live(session)
            now = self._clock()
            session.last_acknowledged_at = now

            if session.tier is Tier.ARMED:
                message = "Check-in received, countdown extended"
            elif session.tier is Tier.AWAITING_ACK:
                message = "Check-in received before the grace period ran out"
            else:
                message = "Check-in received, escalation stood down"
            session.missed_count = 0

            self._set_tier(session, Tier.ARMED)
            self._start_interval(session)
            await self._store.save(session)
            await self._log(session, LogEntryType.CHECK_IN, message)

        logger.info(
            "Session acknowledged",
            session_id=session_id,
            missed_count=session.missed_count,
            epoch=session.epoch,
        )
        return session.snapshot()

    async def on_trigger(self, session_id: str, event: TriggerEvent) -> SafetySession:
        """Feed a trigger event into a session.

        Manual events count as a positive check-in. Motion and voice events
        move an armed session to AwaitingAck immediately; bursts inside the
        refractory window collapse into that single entry. Timestamps
        without an offset are taken to be UTC.
        """
        session = await self._require(session_id)
        if event.kind is TriggerKind.MANUAL:
            return await self.acknowledge(session_id)

        if event.timestamp.tzinfo is None:
            event = replace(event, timestamp=event.timestamp.replace(tzinfo=UTC))

        if not event.is_well_formed():
            self._drop_trigger(session, event, "malformed")
            return session.snapshot()

        async with self._locks[session_id]:
            self._require_live(session)

            if session.tier is Tier.ESCALATING:
                self._drop_trigger(session, event, "escalating")
                return session.snapshot()

            if session.last_trigger_at is not None:
                elapsed = (event.timestamp - session.last_trigger_at).total_seconds()
                if elapsed < session.config.refractory_seconds:
                    self._drop_trigger(session, event, "refractory")
                    return session.snapshot()

            if session.tier is Tier.AWAITING_ACK:
                self._drop_trigger(session, event, "pending")
                return session.snapshot()

            session.last_trigger_at = event.timestamp
            self._set_tier(session, Tier.AWAITING_ACK)
            self._start_grace(session)
            await self._store.save(session)
            await self._log(
                session,
                LogEntryType.TRIGGER,
                f"{event.kind.value} trigger ({event.value:.1f}), awaiting check-in",
            )

        logger.info(
            "Trigger accepted",
            session_id=session_id,
            kind=event.kind.value,
            value=event.value,
            epoch=session.epoch,
        )
        return session.snapshot()

    async def complete(self, session_id: str) -> SafetySession:
        """End a session normally. Completing a finished session is a no-op."""
        return await self._finish(
            session_id, Tier.RESOLVED, LogEntryType.COMPLETION, "Session completed"
        )

    async def cancel(self, session_id: str) -> SafetySession:
        """Stop a session and all of its countdowns. Idempotent."""
        return await self._finish(
            session_id, Tier.CANCELLED, LogEntryType.CANCELLATION, "Session cancelled"
        )

    async def get_session(self, session_id: str) -> SafetySession:
        session = self._sessions.get(session_id)
        if session is not None:
            return session.snapshot()
        stored = await self._store.get(session_id)
        if stored is None:
            raise InvalidSession(session_id)
        return stored

    async def list_sessions(self, include_terminal: bool = False) -> list[SafetySession]:
        return await self._store.list_sessions(include_terminal=include_terminal)

    async def get_log(self, session_id: str, limit: int = 100) -> list[SessionLogEntry]:
        await self.get_session(session_id)
        return await self._store.get_log(session_id, limit=limit)

    async def drain(self) -> None:
        """Wait until every in-flight notifier dispatch has finished."""
        while self._dispatches:
            await asyncio.gather(*list(self._dispatches), return_exceptions=True)

    @property
    def live_session_count(self) -> int:
        """Number of sessions held in memory, i.e. not yet completed or cancelled."""
        return len(self._sessions)

    async def shutdown(self) -> None:
        """Stop all countdowns and wait for pending notifications.

        Sessions still live are abandoned in their current tier; they stop
        counting towards the active sessions gauge.
        """
        for session_id, handle in list(self._countdowns.items()):
            handle.cancel()
            self._sessions[session_id].epoch += 1
        self._countdowns.clear()
        await self.drain()

        abandoned = len(self._sessions)
        if abandoned:
            sessions_active.dec(abandoned)
        self._sessions.clear()
        self._locks.clear()
        logger.info("Escalation engine stopped", abandoned_sessions=abandoned)

    # ------------------------------------------------------------------
    # Session lookup
    # ------------------------------------------------------------------

    async def _require(self, session_id: str) -> SafetySession:
        session = self._sessions.get(session_id)
        if session is not None:
            return session

        stored = await self._store.get(session_id)
        if stored is not None:
            self._require_live(stored)
        logger.warning("Operation on unknown session", session_id=session_id)
        raise InvalidSession(session_id)

    def _require_live(self, session: SafetySession) -> None:
        if session.is_terminal:
            logger.warning(
                "Operation on terminal session",
                session_id=session.session_id,
                tier=session.tier.value,
            )
            raise InvalidSession(session.session_id, f"session is {session.tier.value}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _finish(
        self, session_id: str, tier: Tier, entry_type: LogEntryType, message: str
    ) -> SafetySession:
        session = self._sessions.get(session_id)
        if session is None:
            stored = await self._store.get(session_id)
            if stored is not None and stored.is_terminal:
                return stored
            logger.warning("Operation on unknown session", session_id=session_id)
            raise InvalidSession(session_id)

        async with self._locks[session_id]:
            if session.is_terminal:
                return session.snapshot()

            self._stop_countdown(session)
            self._set_tier(session, tier)
            await self._store.save(session)
            await self._log(session, entry_type, message)
            # The store keeps the terminal snapshot; the engine lets go.
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)

        sessions_active.dec()
        logger.info("Session finished", session_id=session_id, tier=tier.value)
        return session.snapshot()

    def _set_tier(self, session: SafetySession, tier: Tier) -> None:
        previous = session.tier
        session.updated_at = self._clock()
        if previous is tier:
            return
        session.tier = tier
        tier_transitions_total.labels(from_tier=previous.value, to_tier=tier.value).inc()
        logger.info(
            "Tier changed",
            session_id=session.session_id,
            previous=previous.value,
            current=tier.value,
            missed_count=session.missed_count,
        )
        self._publish(
            TierChanged(
                session_id=session.session_id,
                previous=previous,
                current=tier,
                missed_count=session.missed_count,
                at=session.updated_at,
            )
        )

    def _drop_trigger(self, session: SafetySession, event: TriggerEvent, reason: str) -> None:
        triggers_dropped_total.labels(kind=event.kind.value, reason=reason).inc()
        logger.debug(
            "Trigger dropped",
            session_id=session.session_id,
            kind=event.kind.value,
            value=event.value,
            reason=reason,
            tier=session.tier.value,
        )

    async def _log(self, session: SafetySession, entry_type: LogEntryType, message: str) -> None:
        await self._store.append_log(
            SessionLogEntry(
                session_id=session.session_id,
                type=entry_type,
                message=message,
                timestamp=self._clock(),
            )
        )

    # ------------------------------------------------------------------
    # Countdowns
    # ------------------------------------------------------------------

    def _stop_countdown(self, session: SafetySession) -> None:
        handle = self._countdowns.pop(session.session_id, None)
        if handle is not None:
            handle.cancel()
        session.epoch += 1
        session.countdown_deadline = None

    def _start_countdown(self, session: SafetySession, phase: str, seconds: float) -> None:
        self._stop_countdown(session)
        epoch = session.epoch
        session.countdown_deadline = self._clock() + timedelta(seconds=seconds)
        self._countdowns[session.session_id] = self._timers.schedule(
            f"{session.session_id}:{phase}:{epoch}",
            seconds,
            partial(self._on_countdown_expired, session.session_id, phase, epoch),
        )

    def _start_interval(self, session: SafetySession) -> None:
        if session.interval_seconds:
            self._start_countdown(session, PHASE_INTERVAL, session.interval_seconds)
        else:
            # Reflex sessions without a schedule just wait for triggers.
            self._stop_countdown(session)

    def _start_grace(self, session: SafetySession) -> None:
        self._start_countdown(session, PHASE_GRACE, session.config.check_in_timeout_seconds)

    def _check_epoch(self, session: SafetySession, phase: str, epoch: int) -> None:
        expected_tier = Tier.ARMED if phase == PHASE_INTERVAL else Tier.AWAITING_ACK
        if session.epoch != epoch or session.tier is not expected_tier:
            raise StaleEpoch(session.session_id, epoch, session.epoch)

    async def _on_countdown_expired(self, session_id: str, phase: str, epoch: int) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            stale_callbacks_total.labels(phase=phase).inc()
            logger.debug("Countdown fired for finished session", session_id=session_id, phase=phase)
            return

        async with self._locks[session_id]:
            try:
                self._check_epoch(session, phase, epoch)
            except StaleEpoch as e:
                stale_callbacks_total.labels(phase=phase).inc()
                logger.debug("Stale countdown dropped", session_id=session_id, phase=phase, detail=str(e))
                return

            self._countdowns.pop(session_id, None)
            if phase == PHASE_INTERVAL:
                await self._on_interval_expired(session)
            else:
                await self._on_grace_expired(session)

    async def _on_interval_expired(self, session: SafetySession) -> None:
        self._set_tier(session, Tier.AWAITING_ACK)
        self._start_grace(session)
        await self._store.save(session)
        await self._log(session, LogEntryType.CHECK_IN, "Check-in due, waiting for acknowledgement")

    async def _on_grace_expired(self, session: SafetySession) -> None:
        session.missed_count += 1
        outcome = classify_expiry(session.config, session.missed_count)
        log = log_with_context(
            logger,
            session_id=session.session_id,
            mode=session.config.mode.value,
            missed_count=session.missed_count,
        )
        await self._log(
            session,
            LogEntryType.MISSED,
            f"Missed check-in ({session.missed_count})",
        )
        log.warning("Check-in missed", outcome=outcome.value)

        if outcome is ExpiryOutcome.ESCALATE:
            self._set_tier(session, Tier.ESCALATING)
            self._stop_countdown(session)
            actions = escalation_round(session)
            await self._log(
                session,
                LogEntryType.ESCALATION,
                f"Escalated: {_describe(actions)}",
            )
            log.warning("Session escalated", contact_count=len(actions))
        else:
            actions = message_round(session) if outcome is ExpiryOutcome.MESSAGE_AND_REARM else []
            self._set_tier(session, Tier.ARMED)
            self._start_interval(session)
            if actions:
                await self._log(session, LogEntryType.MESSAGE, f"Alerted: {_describe(actions)}")

        await self._store.save(session)
        self._emit(session, actions)

    # ------------------------------------------------------------------
    # Notifier dispatch
    # ------------------------------------------------------------------

    def _emit(self, session: SafetySession, actions: list[EscalationAction]) -> None:
        if not actions:
            return

        for action in actions:
            escalation_actions_total.labels(action=action.action.value).inc()
            self._publish(ActionEmitted(action=action, at=self._clock()))

        if session.config.test_mode:
            logger.info(
                "Test mode: escalation actions not sent",
                session_id=session.session_id,
                action_count=len(actions),
            )
            return

        task = asyncio.create_task(
            self._dispatch(actions), name=f"dispatch:{session.session_id}:{session.epoch}"
        )
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

    async def _dispatch(self, actions: list[EscalationAction]) -> None:
        for action in actions:
            try:
                with notifier_send_seconds.labels(backend=self._notifier.name).time():
                    outcome = await self._notifier.send(action)
            except NotifierFailure as e:
                self._record_failure(action, str(e))
                continue
            except Exception as e:
                self._record_failure(action, f"unexpected error: {e}")
                continue

            if not outcome.delivered:
                self._record_failure(action, outcome.error_message or "not delivered")

    def _record_failure(self, action: EscalationAction, error: str) -> None:
        notifier_failures_total.labels(action=action.action.value).inc()
        logger.error(
            "Notifier failed to deliver action",
            session_id=action.session_id,
            contact_id=action.contact_id,
            action=action.action.value,
            error=error,
        )


def _describe(actions: list[EscalationAction]) -> str:
    if not actions:
        return "no contacts configured"
    return ", ".join(f"{action.action.value} {action.contact_name or action.contact_id}" for action in actions)
