"""Manual check-in adapter."""

from siren.domain.models import SafetySession, TriggerKind
from siren.triggers.base import TriggerAdapter


class ManualCheckInAdapter(TriggerAdapter):
    """Relays the user's "I'm safe" action.

    Scheduled check-ins rely on the engine's own countdown, so this adapter
    never synthesizes events on a timer.
    """

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind.MANUAL

    async def check_in(self) -> SafetySession | None:
        return await self.emit(0.0)
