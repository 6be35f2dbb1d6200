from typing import List, Optional, Tuple

from ..models.mood import EntryKind, MoodEntry
from ..models.sql_models import MoodEntry as SQLMoodEntry
from ..pagination import DateRange, Page, apply_date_range, apply_page, utcnow
from .base import Repository


class MoodRepository(Repository):
    def create(
        self,
        user_id: int,
        entry_type: EntryKind,
        primary_emotion: str,
        intensity_level: float,
        journal_id: Optional[int] = None,
        trigger_factor: Optional[str] = None,
        coping_strategy: Optional[str] = None,
    ) -> MoodEntry:
        with self.guard("create_mood_entry") as db:
            row = SQLMoodEntry(
                user_id=user_id,
                journal_id=journal_id,
                entry_type=entry_type.value,
                recorded_at=utcnow(),
                primary_emotion=primary_emotion,
                intensity_level=intensity_level,
                trigger_factor=trigger_factor,
                coping_strategy=coping_strategy,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return MoodEntry.model_validate(row)

    def get(self, entry_id: int, user_id: int) -> Optional[MoodEntry]:
        with self.guard("get_mood_entry") as db:
            row = (
                db.query(SQLMoodEntry)
                .filter(SQLMoodEntry.id == entry_id, SQLMoodEntry.user_id == user_id)
                .first()
            )
            return MoodEntry.model_validate(row) if row else None

    def list(
        self,
        user_id: int,
        page: Page,
        date_range: Optional[DateRange] = None,
        entry_type: Optional[EntryKind] = None,
    ) -> Tuple[List[MoodEntry], int]:
        with self.guard("list_mood_entries") as db:
            q = db.query(SQLMoodEntry).filter(SQLMoodEntry.user_id == user_id)
            q = apply_date_range(q, SQLMoodEntry.recorded_at, date_range)
            if entry_type is not None:
                q = q.filter(SQLMoodEntry.entry_type == entry_type.value)
            total = q.count()
            rows = apply_page(
                q.order_by(SQLMoodEntry.recorded_at.desc(), SQLMoodEntry.id.desc()), page
            ).all()
            return [MoodEntry.model_validate(r) for r in rows], total
