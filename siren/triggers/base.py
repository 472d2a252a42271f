"""Shared contract of trigger adapters."""

from abc import ABC, abstractmethod

from siren.core.logging import get_logger, log_with_context
from siren.domain.engine import EscalationEngine
from siren.domain.errors import InvalidSession
from siren.domain.models import SafetySession, TriggerEvent, TriggerKind

logger = get_logger(__name__)


class TriggerAdapter(ABC):
    """
    Adapter between one trigger source and one engine session.

    Adapters hold only the session handle. They never touch session state;
    everything goes through the engine's public operations.
    """

    def __init__(self, engine: EscalationEngine, session_id: str):
        self.engine = engine
        self.session_id = session_id
        self.log = log_with_context(logger, session_id=session_id, adapter=type(self).__name__)

    @property
    @abstractmethod
    def kind(self) -> TriggerKind:
        """Kind of trigger events this adapter produces."""
        pass

    async def emit(self, value: float) -> SafetySession | None:
        """Send a trigger event to the engine.

        A session that has been stopped is not an adapter error: the event
        is logged and discarded.
        """
        event = TriggerEvent(kind=self.kind, value=value, timestamp=self.engine.clock())
        try:
            return await self.engine.on_trigger(self.session_id, event)
        except InvalidSession as e:
            self.log.info(
                "Trigger for inactive session discarded",
                kind=self.kind.value,
                reason=e.reason,
            )
            return None
