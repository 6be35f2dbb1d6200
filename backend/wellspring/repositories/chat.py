from datetime import datetime
from typing import List, Optional, Tuple

from ..models.chat import ChatMessage, ChatSession, SenderKind
from ..models.sql_models import ChatMessage as SQLChatMessage
from ..models.sql_models import ChatSession as SQLChatSession
from ..pagination import DateRange, Page, apply_date_range, apply_page, utcnow
from .base import Repository


class ChatRepository(Repository):
    """Chat sessions and their messages."""

    def create_session(self, user_id: int) -> ChatSession:
        with self.guard("create_session") as db:
            row = SQLChatSession(user_id=user_id, start_time=utcnow())
            db.add(row)
            db.commit()
            db.refresh(row)
            return ChatSession.model_validate(row)

    def get_session(self, session_id: int, user_id: int) -> Optional[ChatSession]:
        with self.guard("get_session") as db:
            row = (
                db.query(SQLChatSession)
                .filter(SQLChatSession.id == session_id, SQLChatSession.user_id == user_id)
                .first()
            )
            return ChatSession.model_validate(row) if row else None

    def end_session(self, session_id: int, user_id: int, end_time: datetime) -> bool:
        """Set ``end_time`` only if it is still NULL.

        Returns True when this call performed the transition.
        """
        with self.guard("end_session") as db:
            updated = (
                db.query(SQLChatSession)
                .filter(
                    SQLChatSession.id == session_id,
                    SQLChatSession.user_id == user_id,
                    SQLChatSession.end_time.is_(None),
                )
                .update({SQLChatSession.end_time: end_time}, synchronize_session=False)
            )
            db.commit()
            return updated == 1

    def list_sessions(
        self, user_id: int, page: Page, date_range: Optional[DateRange] = None
    ) -> Tuple[List[ChatSession], int]:
        with self.guard("list_sessions") as db:
            q = db.query(SQLChatSession).filter(SQLChatSession.user_id == user_id)
            q = apply_date_range(q, SQLChatSession.start_time, date_range)
            total = q.count()
            rows = apply_page(
                q.order_by(SQLChatSession.start_time.desc(), SQLChatSession.id.desc()), page
            ).all()
            return [ChatSession.model_validate(r) for r in rows], total

    def delete_session(self, session_id: int, user_id: int) -> bool:
        with self.guard("delete_session") as db:
            row = (
                db.query(SQLChatSession)
                .filter(SQLChatSession.id == session_id, SQLChatSession.user_id == user_id)
                .first()
            )
            if not row:
                return False
            db.delete(row)
            db.commit()
            return True

    def create_message(
        self, session_id: int, user_id: int, content: str, sender: SenderKind
    ) -> Optional[ChatMessage]:
        """Insert a message if the owning session is still active.

        The session row is re-read (and locked where the backend supports it)
        in the same transaction as the insert. Returns None when the session
        is missing or already ended.
        """
        with self.guard("create_message") as db:
            session_row = (
                db.query(SQLChatSession)
                .filter(
                    SQLChatSession.id == session_id,
                    SQLChatSession.user_id == user_id,
                    SQLChatSession.end_time.is_(None),
                )
                .with_for_update()
                .first()
            )
            if session_row is None:
                db.rollback()
                return None
            row = SQLChatMessage(
                session_id=session_id,
                content=content,
                sender=sender.value,
                sent_at=utcnow(),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return ChatMessage.model_validate(row)

    def list_messages(
        self, session_id: int, limit: int, before_id: Optional[int] = None
    ) -> Tuple[List[ChatMessage], int]:
        with self.guard("list_messages") as db:
            q = db.query(SQLChatMessage).filter(SQLChatMessage.session_id == session_id)
            if before_id:
                q = q.filter(SQLChatMessage.id < before_id)
            total = q.count()
            rows = (
                q.order_by(SQLChatMessage.sent_at.desc(), SQLChatMessage.id.desc())
                .limit(limit)
                .all()
            )
            return [ChatMessage.model_validate(r) for r in rows], total
