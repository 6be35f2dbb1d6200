import math
from typing import List, Optional, Tuple, Union

from ..errors import NotFound, ValidationError
from ..models.mood import EntryKind, MoodEntry
from ..pagination import DateRange, Page
from ..repositories.journal import JournalRepository
from ..repositories.mood import MoodRepository

DEFAULT_MOOD_PAGE = 10


def parse_entry_kind(value: Union[EntryKind, str]) -> EntryKind:
    try:
        return EntryKind(value)
    except ValueError:
        allowed = ", ".join(k.value for k in EntryKind)
        raise ValidationError(f"invalid entry type {value!r}; expected one of: {allowed}")


class MoodService:
    """Mood entries: created once, never updated.

    Invariants enforced on create: intensity in [0, 1], and a linked journal
    must exist and belong to the same user.
    """

    def __init__(self, repo: MoodRepository, journals: JournalRepository):
        self.repo = repo
        self.journals = journals

    def create(
        self,
        user_id: int,
        entry_type: Union[EntryKind, str],
        primary_emotion: str,
        intensity_level: float,
        journal_id: Optional[int] = None,
        trigger_factor: Optional[str] = None,
        coping_strategy: Optional[str] = None,
    ) -> MoodEntry:
        kind = parse_entry_kind(entry_type)
        if not primary_emotion or not primary_emotion.strip():
            raise ValidationError("primary emotion must not be empty")
        if intensity_level is None or math.isnan(intensity_level) or not 0.0 <= intensity_level <= 1.0:
            raise ValidationError("intensity level must be between 0.0 and 1.0")
        if journal_id is not None:
            if self.journals.get(journal_id, user_id) is None:
                raise NotFound("journal", journal_id)

        return self.repo.create(
            user_id=user_id,
            entry_type=kind,
            primary_emotion=primary_emotion.strip(),
            intensity_level=float(intensity_level),
            journal_id=journal_id,
            trigger_factor=trigger_factor,
            coping_strategy=coping_strategy,
        )

    def get(self, entry_id: int, user_id: int) -> MoodEntry:
        entry = self.repo.get(entry_id, user_id)
        if entry is None:
            raise NotFound("mood entry", entry_id)
        return entry

    def list(
        self,
        user_id: int,
        limit: int = DEFAULT_MOOD_PAGE,
        offset: int = 0,
        date_range: Optional[DateRange] = None,
        entry_type: Optional[Union[EntryKind, str]] = None,
    ) -> Tuple[List[MoodEntry], int]:
        page = Page.clamp(limit, offset, default=DEFAULT_MOOD_PAGE)
        kind = parse_entry_kind(entry_type) if entry_type else None
        return self.repo.list(user_id, page, date_range, kind)
