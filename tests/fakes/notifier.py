"""Recording notifier fake."""

from siren.domain.errors import NotifierFailure
from siren.domain.models import EscalationAction
from siren.integrations.notifier import NotificationOutcome, Notifier


class RecordingNotifier(Notifier):
    """Keeps every delivered action. Contacts in ``failing`` raise NotifierFailure."""

    name = "recording"

    def __init__(self, failing: set[str] | None = None):
        self.sent: list[EscalationAction] = []
        self.attempts: list[EscalationAction] = []
        self.failing = failing or set()
        self.closed = False

    async def send(self, action: EscalationAction) -> NotificationOutcome:
        self.attempts.append(action)
        if action.contact_id in self.failing:
            raise NotifierFailure(f"provider rejected {action.contact_id}")
        self.sent.append(action)
        return NotificationOutcome(action=action, delivered=True, provider_id=f"fake-{len(self.sent)}")

    async def aclose(self) -> None:
        self.closed = True
