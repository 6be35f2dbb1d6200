from typing import List, Optional

from pydantic import BaseModel

from .base import BaseDBModel, UTCDateTime


class ActivityLogEntry(BaseDBModel):
    user_id: int
    activity: str
    timestamp: UTCDateTime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ActivityList(BaseModel):
    items: List[ActivityLogEntry]
    total: int
    limit: int
    offset: int
