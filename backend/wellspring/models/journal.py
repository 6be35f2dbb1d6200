from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseDBModel, UTCDateTime
from .mood import MoodEntry


class Journal(BaseDBModel):
    user_id: int
    content: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


class JournalCreate(BaseModel):
    content: str = Field(..., min_length=1)


class JournalUpdate(BaseModel):
    content: str = Field(..., min_length=1)


class JournalList(BaseModel):
    items: List[Journal]
    total: int
    limit: int
    offset: int


class JournalAnalysis(BaseModel):
    """Result of analyze-and-save."""

    message: str
    journal: Journal
    mood_entry: Optional[MoodEntry] = None
