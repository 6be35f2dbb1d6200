from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict


def _ensure_utc(v: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_ensure_utc)]


class BaseDBModel(BaseModel):
    """Base model for API representations of stored rows."""

    id: int

    model_config = ConfigDict(
        from_attributes=True,
    )
