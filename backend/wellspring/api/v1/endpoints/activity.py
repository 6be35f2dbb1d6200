from typing import Any, Optional

from fastapi import APIRouter, Depends

from ....core.security import get_current_principal
from ....models.activity import ActivityList
from ....models.user import Principal
from ....pagination import DateRange, Page
from ....services.activity import DEFAULT_ACTIVITY_PAGE, ActivityService
from ..deps import date_range, get_activity_service, record_activity

router = APIRouter(prefix="/activity", tags=["activity"], dependencies=[Depends(record_activity)])


@router.get("", response_model=ActivityList)
async def list_activity(
    limit: int = DEFAULT_ACTIVITY_PAGE,
    offset: int = 0,
    activity: Optional[str] = None,
    window: DateRange = Depends(date_range),
    principal: Principal = Depends(get_current_principal),
    activity_service: ActivityService = Depends(get_activity_service),
) -> Any:
    """The caller's audit trail, newest first, optionally filtered by tag."""
    page = Page.clamp(limit, offset, default=DEFAULT_ACTIVITY_PAGE)
    items, total = activity_service.list(principal.user_id, page.limit, page.offset, window, activity)
    return ActivityList(items=items, total=total, limit=page.limit, offset=page.offset)
