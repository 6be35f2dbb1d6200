from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseDBModel, UTCDateTime


class EntryKind(str, Enum):
    DAILY = "daily"
    EVENT = "event"
    REFLECTION = "reflection"
    JOURNAL_DERIVED = "journal-derived"


class MoodEntry(BaseDBModel):
    user_id: int
    journal_id: Optional[int] = None
    entry_type: EntryKind
    recorded_at: UTCDateTime
    primary_emotion: str
    intensity_level: float
    trigger_factor: Optional[str] = None
    coping_strategy: Optional[str] = None


class MoodEntryCreate(BaseModel):
    """Schema for recording a mood entry by hand.

    Range and linkage checks live in ``MoodService`` so the pipeline and the
    API share them.
    """

    entry_type: str
    primary_emotion: str = Field(..., min_length=1)
    intensity_level: float
    journal_id: Optional[int] = None
    trigger_factor: Optional[str] = None
    coping_strategy: Optional[str] = None


class MoodEntryList(BaseModel):
    items: List[MoodEntry]
    total: int
    limit: int
    offset: int
