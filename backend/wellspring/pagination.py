from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Query

from .errors import ValidationError

MAX_PAGE_SIZE = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Page:
    """Offset pagination window with clamped bounds."""

    limit: int
    offset: int = 0

    @classmethod
    def clamp(cls, limit: Optional[int], offset: Optional[int] = 0, *, default: int) -> "Page":
        if not limit or limit <= 0:
            limit = default
        limit = min(limit, MAX_PAGE_SIZE)
        if not offset or offset < 0:
            offset = 0
        return cls(limit=limit, offset=offset)


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] window; either bound may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_bounds(cls, start: Optional[datetime], end: Optional[datetime]) -> "DateRange":
        start = _as_utc(start) if start else None
        end = _as_utc(end) if end else None
        if start and end and start > end:
            raise ValidationError("start_date must not be after end_date")
        return cls(start=start, end=end)

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


def apply_date_range(query: Query, column, date_range: Optional[DateRange]) -> Query:
    """Compose optional date predicates onto ``query``."""
    if date_range is None:
        return query
    if date_range.start is not None:
        query = query.filter(column >= date_range.start)
    if date_range.end is not None:
        query = query.filter(column <= date_range.end)
    return query


def apply_page(query: Query, page: Page) -> Query:
    return query.offset(page.offset).limit(page.limit)
