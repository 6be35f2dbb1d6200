from typing import List, Optional, Tuple

from ..models.journal import Journal
from ..models.sql_models import Journal as SQLJournal
from ..pagination import DateRange, Page, apply_date_range, apply_page, utcnow
from .base import Repository


class JournalRepository(Repository):
    def create(self, user_id: int, content: str) -> Journal:
        with self.guard("create_journal") as db:
            now = utcnow()
            row = SQLJournal(user_id=user_id, content=content, created_at=now, updated_at=now)
            db.add(row)
            db.commit()
            db.refresh(row)
            return Journal.model_validate(row)

    def get(self, journal_id: int, user_id: int) -> Optional[Journal]:
        with self.guard("get_journal") as db:
            row = self._owned(journal_id, user_id)
            return Journal.model_validate(row) if row else None

    def list(
        self, user_id: int, page: Page, date_range: Optional[DateRange] = None
    ) -> Tuple[List[Journal], int]:
        with self.guard("list_journals") as db:
            q = db.query(SQLJournal).filter(SQLJournal.user_id == user_id)
            q = apply_date_range(q, SQLJournal.created_at, date_range)
            total = q.count()
            rows = apply_page(q.order_by(SQLJournal.created_at.desc(), SQLJournal.id.desc()), page).all()
            return [Journal.model_validate(r) for r in rows], total

    def update(self, journal_id: int, user_id: int, content: str) -> Optional[Journal]:
        with self.guard("update_journal") as db:
            row = self._owned(journal_id, user_id)
            if not row:
                return None
            row.content = content
            row.updated_at = utcnow()
            db.commit()
            db.refresh(row)
            return Journal.model_validate(row)

    def delete(self, journal_id: int, user_id: int) -> bool:
        with self.guard("delete_journal") as db:
            row = self._owned(journal_id, user_id)
            if not row:
                return False
            db.delete(row)
            db.commit()
            return True

    def _owned(self, journal_id: int, user_id: int) -> Optional[SQLJournal]:
        return (
            self.db.query(SQLJournal)
            .filter(SQLJournal.id == journal_id, SQLJournal.user_id == user_id)
            .first()
        )
