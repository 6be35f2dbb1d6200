from typing import Any, Optional

from fastapi import APIRouter, Depends, status

from ....core.security import get_current_principal
from ....models.mood import MoodEntry, MoodEntryCreate, MoodEntryList
from ....models.user import Principal
from ....pagination import DateRange, Page
from ....services.mood import DEFAULT_MOOD_PAGE, MoodService
from ..deps import date_range, get_mood_service, record_activity

router = APIRouter(prefix="/mood", tags=["mood"], dependencies=[Depends(record_activity)])


@router.post("", response_model=MoodEntry, status_code=status.HTTP_201_CREATED)
async def create_mood_entry(
    entry_in: MoodEntryCreate,
    principal: Principal = Depends(get_current_principal),
    moods: MoodService = Depends(get_mood_service),
) -> Any:
    """Record a mood entry; a linked journal must belong to the caller."""
    return moods.create(
        user_id=principal.user_id,
        entry_type=entry_in.entry_type,
        primary_emotion=entry_in.primary_emotion,
        intensity_level=entry_in.intensity_level,
        journal_id=entry_in.journal_id,
        trigger_factor=entry_in.trigger_factor,
        coping_strategy=entry_in.coping_strategy,
    )


@router.get("", response_model=MoodEntryList)
async def list_mood_entries(
    limit: int = DEFAULT_MOOD_PAGE,
    offset: int = 0,
    entry_type: Optional[str] = None,
    window: DateRange = Depends(date_range),
    principal: Principal = Depends(get_current_principal),
    moods: MoodService = Depends(get_mood_service),
) -> Any:
    page = Page.clamp(limit, offset, default=DEFAULT_MOOD_PAGE)
    items, total = moods.list(principal.user_id, page.limit, page.offset, window, entry_type)
    return MoodEntryList(items=items, total=total, limit=page.limit, offset=page.offset)


@router.get("/{entry_id}", response_model=MoodEntry)
async def get_mood_entry(
    entry_id: int,
    principal: Principal = Depends(get_current_principal),
    moods: MoodService = Depends(get_mood_service),
) -> Any:
    return moods.get(entry_id, principal.user_id)
