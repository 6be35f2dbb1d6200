import logging
from typing import List, Optional, Tuple, Union

from ..errors import AlreadyEnded, NotFound, SessionEnded, ValidationError
from ..models.chat import ChatMessage, ChatSession, SenderKind
from ..pagination import DateRange, Page, utcnow
from ..repositories.chat import ChatRepository

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_SESSION_PAGE = 10
DEFAULT_MESSAGE_PAGE = 50


class ChatService:
    """Chat session lifecycle and message storage.

    A session is Active while ``end_time`` is unset and Ended afterwards;
    there is no way back. Every operation is scoped to ``user_id``: a session
    owned by someone else is indistinguishable from a missing one.
    """

    def __init__(self, repo: ChatRepository):
        self.repo = repo

    def start_session(self, user_id: int) -> ChatSession:
        session = self.repo.create_session(user_id)
        logger.info("Started chat session %s for user %s", session.id, user_id)
        return session

    def get_session(self, session_id: int, user_id: int) -> ChatSession:
        session = self.repo.get_session(session_id, user_id)
        if session is None:
            raise NotFound("session", session_id)
        return session

    def end_session(self, session_id: int, user_id: int) -> ChatSession:
        """End an active session exactly once.

        Raises:
            NotFound: no such session for this user
            AlreadyEnded: the session was ended before, possibly by a
                concurrent request that won the conditional update
        """
        session = self.get_session(session_id, user_id)
        if session.end_time is not None:
            raise AlreadyEnded(session_id)

        end_time = utcnow()
        if not self.repo.end_session(session_id, user_id, end_time):
            # Lost the race (or the row vanished); report what the store says now
            current = self.repo.get_session(session_id, user_id)
            if current is None:
                raise NotFound("session", session_id)
            raise AlreadyEnded(session_id)

        logger.info("Ended chat session %s for user %s", session_id, user_id)
        return session.model_copy(update={"end_time": end_time})

    def append_message(
        self,
        session_id: int,
        user_id: int,
        content: str,
        sender: Union[SenderKind, str] = SenderKind.USER,
    ) -> ChatMessage:
        try:
            sender = SenderKind(sender)
        except ValueError:
            raise ValidationError(f"invalid sender kind: {sender!r}")
        if not content or not content.strip():
            raise ValidationError("message content must not be empty")

        session = self.get_session(session_id, user_id)
        if session.end_time is not None:
            raise SessionEnded(session_id)

        message = self.repo.create_message(session_id, user_id, content, sender)
        if message is None:
            # Ended (or deleted) between the check and the insert
            if self.repo.get_session(session_id, user_id) is None:
                raise NotFound("session", session_id)
            raise SessionEnded(session_id)
        return message

    def list_sessions(
        self,
        user_id: int,
        limit: int = DEFAULT_SESSION_PAGE,
        offset: int = 0,
        date_range: Optional[DateRange] = None,
    ) -> Tuple[List[ChatSession], int]:
        """Return one page of sessions, newest first, plus the filtered total."""
        page = Page.clamp(limit, offset, default=DEFAULT_SESSION_PAGE)
        return self.repo.list_sessions(user_id, page, date_range)

    def list_messages(
        self,
        session_id: int,
        user_id: int,
        limit: int = DEFAULT_MESSAGE_PAGE,
        before_id: Optional[int] = None,
    ) -> Tuple[List[ChatMessage], int]:
        """Return messages most recent first, optionally older than ``before_id``."""
        self.get_session(session_id, user_id)
        page = Page.clamp(limit, default=DEFAULT_MESSAGE_PAGE)
        cursor = before_id if before_id and before_id > 0 else None
        return self.repo.list_messages(session_id, page.limit, cursor)

    def delete_session(self, session_id: int, user_id: int) -> None:
        """Delete a session and, by cascade, its messages."""
        if not self.repo.delete_session(session_id, user_id):
            raise NotFound("session", session_id)
        logger.info("Deleted chat session %s for user %s", session_id, user_id)
