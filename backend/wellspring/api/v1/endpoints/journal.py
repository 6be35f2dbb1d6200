from typing import Any

from fastapi import APIRouter, Depends, Response, status

from ....core.security import get_current_principal
from ....models.journal import Journal, JournalAnalysis, JournalCreate, JournalList, JournalUpdate
from ....models.user import Principal
from ....pagination import DateRange, Page
from ....services.journal import DEFAULT_JOURNAL_PAGE, JournalService
from ....services.mood_analysis import MoodAnalysisPipeline
from ..deps import date_range, get_journal_service, get_mood_pipeline, record_activity

router = APIRouter(prefix="/journal", tags=["journal"], dependencies=[Depends(record_activity)])


@router.post("", response_model=Journal, status_code=status.HTTP_201_CREATED)
async def create_journal(
    journal_in: JournalCreate,
    principal: Principal = Depends(get_current_principal),
    journals: JournalService = Depends(get_journal_service),
) -> Any:
    return journals.create(principal.user_id, journal_in.content)


@router.get("", response_model=JournalList)
async def list_journals(
    limit: int = DEFAULT_JOURNAL_PAGE,
    offset: int = 0,
    window: DateRange = Depends(date_range),
    principal: Principal = Depends(get_current_principal),
    journals: JournalService = Depends(get_journal_service),
) -> Any:
    page = Page.clamp(limit, offset, default=DEFAULT_JOURNAL_PAGE)
    items, total = journals.list(principal.user_id, page.limit, page.offset, window)
    return JournalList(items=items, total=total, limit=page.limit, offset=page.offset)


@router.post("/analyze", response_model=JournalAnalysis, status_code=status.HTTP_201_CREATED)
async def analyze_journal(
    journal_in: JournalCreate,
    principal: Principal = Depends(get_current_principal),
    pipeline: MoodAnalysisPipeline = Depends(get_mood_pipeline),
) -> Any:
    """
    Classify the text, then store it as a journal with a derived mood entry.

    If only the mood entry fails, the response is a 500 whose body still
    carries the stored journal.
    """
    result = await pipeline.analyze_and_save(principal.user_id, journal_in.content)
    return JournalAnalysis(
        message="Journal analyzed and saved",
        journal=result.journal,
        mood_entry=result.mood_entry,
    )


@router.get("/{journal_id}", response_model=Journal)
async def get_journal(
    journal_id: int,
    principal: Principal = Depends(get_current_principal),
    journals: JournalService = Depends(get_journal_service),
) -> Any:
    return journals.get(journal_id, principal.user_id)


@router.patch("/{journal_id}", response_model=Journal)
async def update_journal(
    journal_id: int,
    journal_in: JournalUpdate,
    principal: Principal = Depends(get_current_principal),
    journals: JournalService = Depends(get_journal_service),
) -> Any:
    return journals.update(journal_id, principal.user_id, journal_in.content)


@router.delete("/{journal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_journal(
    journal_id: int,
    principal: Principal = Depends(get_current_principal),
    journals: JournalService = Depends(get_journal_service),
) -> Response:
    journals.delete(journal_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
