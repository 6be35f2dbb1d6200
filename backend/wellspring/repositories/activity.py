from datetime import datetime
from typing import List, Optional, Tuple

from ..models.activity import ActivityLogEntry
from ..models.sql_models import ActivityLog as SQLActivityLog
from ..pagination import DateRange, Page, apply_date_range, apply_page
from .base import Repository


class ActivityRepository(Repository):
    """Append-only activity log; there is no update or delete path."""

    def append(
        self,
        user_id: int,
        activity: str,
        timestamp: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ActivityLogEntry:
        with self.guard("append_activity") as db:
            row = SQLActivityLog(
                user_id=user_id,
                activity=activity,
                timestamp=timestamp,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return ActivityLogEntry.model_validate(row)

    def list(
        self,
        user_id: int,
        page: Page,
        date_range: Optional[DateRange] = None,
        activity: Optional[str] = None,
    ) -> Tuple[List[ActivityLogEntry], int]:
        with self.guard("list_activity") as db:
            q = db.query(SQLActivityLog).filter(SQLActivityLog.user_id == user_id)
            q = apply_date_range(q, SQLActivityLog.timestamp, date_range)
            if activity:
                q = q.filter(SQLActivityLog.activity == activity)
            total = q.count()
            rows = apply_page(
                q.order_by(SQLActivityLog.timestamp.desc(), SQLActivityLog.id.desc()), page
            ).all()
            return [ActivityLogEntry.model_validate(r) for r in rows], total
