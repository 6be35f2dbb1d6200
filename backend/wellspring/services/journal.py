from typing import List, Optional, Tuple

from ..errors import NotFound, ValidationError
from ..models.journal import Journal
from ..pagination import DateRange, Page
from ..repositories.journal import JournalRepository

DEFAULT_JOURNAL_PAGE = 10


def _require_content(content: str) -> str:
    if not content or not content.strip():
        raise ValidationError("journal content must not be empty")
    return content


class JournalService:
    """Owner-scoped journal CRUD."""

    def __init__(self, repo: JournalRepository):
        self.repo = repo

    def create(self, user_id: int, content: str) -> Journal:
        return self.repo.create(user_id, _require_content(content))

    def get(self, journal_id: int, user_id: int) -> Journal:
        journal = self.repo.get(journal_id, user_id)
        if journal is None:
            raise NotFound("journal", journal_id)
        return journal

    def list(
        self,
        user_id: int,
        limit: int = DEFAULT_JOURNAL_PAGE,
        offset: int = 0,
        date_range: Optional[DateRange] = None,
    ) -> Tuple[List[Journal], int]:
        page = Page.clamp(limit, offset, default=DEFAULT_JOURNAL_PAGE)
        return self.repo.list(user_id, page, date_range)

    def update(self, journal_id: int, user_id: int, content: str) -> Journal:
        journal = self.repo.update(journal_id, user_id, _require_content(content))
        if journal is None:
            raise NotFound("journal", journal_id)
        return journal

    def delete(self, journal_id: int, user_id: int) -> None:
        if not self.repo.delete(journal_id, user_id):
            raise NotFound("journal", journal_id)
