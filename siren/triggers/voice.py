"""Emergency phrase detection from speech recognition results."""

import math
from collections.abc import Iterable

from siren.domain.engine import EscalationEngine
from siren.domain.models import TriggerKind
from siren.triggers.base import TriggerAdapter


class VoiceAdapter(TriggerAdapter):
    """Matches recognizer transcripts against the stored emergency phrase."""

    def __init__(
        self,
        engine: EscalationEngine,
        session_id: str,
        phrase: str,
        sensitivity: float = 70.0,
    ):
        super().__init__(engine, session_id)
        self.phrase = phrase.strip().lower()
        if not self.phrase:
            raise ValueError("phrase must not be empty")
        if not 0 <= sensitivity <= 100:
            raise ValueError("sensitivity is a percentage between 0 and 100")
        self.sensitivity = sensitivity

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind.VOICE

    def match(self, transcript: str, confidence: float) -> float | None:
        """Confidence percent if the transcript triggers, otherwise None.

        ``confidence`` is the recognizer's 0-1 score.
        """
        if not isinstance(confidence, (int, float)) or not math.isfinite(confidence):
            return None
        if not 0 <= confidence <= 1:
            return None
        percent = confidence * 100
        if self.phrase in transcript.lower() and percent >= self.sensitivity:
            return percent
        return None

    async def on_transcript(self, transcript: str, confidence: float) -> bool:
        """Handle one recognition result. Returns True if it triggered."""
        percent = self.match(transcript, confidence)
        if percent is None:
            return False
        self.log.info(
            "Emergency phrase detected",
            confidence=round(percent, 1),
        )
        await self.emit(percent)
        return True

    async def on_results(self, results: Iterable[tuple[str, float]]) -> bool:
        """Handle a batch of results; the first match triggers and ends the batch."""
        for transcript, confidence in results:
            if await self.on_transcript(transcript, confidence):
                return True
        return False
