"""Analyze free text, then persist a journal and its derived mood entry.

Steps and failure policy:

1. classify the text; on failure nothing is written (``ClassificationFailed``)
2. map the label to an intensity; unknown labels fall back to neutral
3. store the journal; on failure abort (``JournalPersistFailed``)
4. store the linked ``journal-derived`` mood entry; on failure the journal is
   kept and returned inside ``MoodEntryPersistFailed``
"""
import logging
from dataclasses import dataclass

from ..errors import (
    ClassificationFailed,
    JournalPersistFailed,
    MoodEntryPersistFailed,
    UpstreamError,
    ValidationError,
    WellspringError,
)
from ..models.journal import Journal
from ..models.mood import EntryKind, MoodEntry
from ..orchestration.classify import ClassifierGateway, intensity_for
from .journal import JournalService
from .mood import MoodService

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    journal: Journal
    mood_entry: MoodEntry
    label: str
    intensity: float


class MoodAnalysisPipeline:
    def __init__(self, classifier: ClassifierGateway, journals: JournalService, moods: MoodService):
        self.classifier = classifier
        self.journals = journals
        self.moods = moods

    async def analyze_and_save(self, user_id: int, text: str) -> AnalysisResult:
        if not text or not text.strip():
            raise ValidationError("journal content must not be empty")

        # 1) classify before anything is stored
        try:
            label = await self.classifier.classify(text)
        except UpstreamError as e:
            logger.error("Mood classification failed for user %s: %s", user_id, e)
            raise ClassificationFailed(
                f"mood classification failed: {e.message}",
                service=e.service,
                status_code=e.status_code,
                detail=e.detail,
            ) from e

        # 2) map label
        intensity = intensity_for(label)

        # 3) journal
        try:
            journal = self.journals.create(user_id, text)
        except WellspringError as e:
            logger.error("Journal persist failed for user %s: %s", user_id, e)
            raise JournalPersistFailed(f"failed to create journal entry: {e.message}") from e

        # 4) linked mood entry; no rollback of the journal on failure
        try:
            mood_entry = self.moods.create(
                user_id=user_id,
                entry_type=EntryKind.JOURNAL_DERIVED,
                primary_emotion=label,
                intensity_level=intensity,
                journal_id=journal.id,
            )
        except WellspringError as e:
            logger.error(
                "Mood entry persist failed for journal %s (user %s); journal kept: %s",
                journal.id, user_id, e,
            )
            raise MoodEntryPersistFailed(
                f"failed to create mood entry: {e.message}", journal=journal
            ) from e

        logger.info(
            "Analyzed journal %s for user %s: label=%s intensity=%s",
            journal.id, user_id, label, intensity,
        )
        return AnalysisResult(journal=journal, mood_entry=mood_entry, label=label, intensity=intensity)
