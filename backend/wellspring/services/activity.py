import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import SessionLocal
from ..models.activity import ActivityLogEntry
from ..pagination import DateRange, Page, utcnow
from ..repositories.activity import ActivityRepository

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_PAGE = 20

# (method, route name) -> activity tag; route names are the endpoint function names
ACTIVITY_TAGS: Dict[Tuple[str, str], str] = {
    ("POST", "create_journal"): "journal_create",  # /v1/journal
    ("PATCH", "update_journal"): "journal_update",  # /v1/journal/{journal_id}
    ("DELETE", "delete_journal"): "journal_delete",  # /v1/journal/{journal_id}
    ("POST", "analyze_journal"): "journal_analyze",  # /v1/journal/analyze
    ("POST", "create_mood_entry"): "mood_create",  # /v1/mood
    ("POST", "start_session"): "chat_session_start",  # /v1/chat/sessions
    ("PATCH", "end_session"): "chat_session_end",  # /v1/chat/sessions/{session_id}
    ("DELETE", "delete_session"): "chat_session_delete",  # /v1/chat/sessions/{session_id}
    ("POST", "send_message"): "chat_message_send",  # /v1/chat/sessions/{session_id}/messages
    ("POST", "companion"): "chat_companion",  # /v1/chat/companion
}


def activity_tag(method: str, route_name: Optional[str], path: str) -> str:
    """Tag for a request, falling back to ``<METHOD>_<path>`` when unmapped."""
    method = method.upper()
    tag = ACTIVITY_TAGS.get((method, route_name))
    if tag:
        return tag
    return f"{method}_{path}"


@dataclass(frozen=True)
class ActivityEvent:
    user_id: int
    activity: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


class ActivityAuditLogger:
    """Fire-and-forget audit sink.

    ``record`` never blocks and never raises: events go into a bounded queue
    drained by a background task, and each event is written at most once.
    A full queue, a stopped logger, or a failed write only produces a log
    line.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        maxsize: int = 1000,
    ):
        self._session_factory = session_factory
        self._maxsize = maxsize
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._maxsize)
        self._worker = asyncio.create_task(self._run(), name="activity-audit-worker")
        logger.info("Activity audit worker started (queue size %s)", self._maxsize)

    async def stop(self, drain_timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        if self._queue is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Activity audit queue not drained within %ss; %s events dropped",
                    drain_timeout, self._queue.qsize(),
                )
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self._queue = None
        logger.info("Activity audit worker stopped")

    def record(self, event: ActivityEvent) -> bool:
        """Enqueue ``event``; returns False when it had to be dropped."""
        if self._queue is None:
            logger.debug("Activity audit not running; dropping %s", event.activity)
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Activity audit queue full; dropping %s for user %s", event.activity, event.user_id)
            return False
        return True

    async def _run(self) -> None:
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                await asyncio.to_thread(self._write, event)
            except Exception as e:
                # Audit failures stay out of band; the primary response is already decided
                logger.error("Failed to write activity %s for user %s: %s", event.activity, event.user_id, e)
            finally:
                queue.task_done()

    def _write(self, event: ActivityEvent) -> None:
        db = self._session_factory()
        try:
            ActivityRepository(db).append(
                user_id=event.user_id,
                activity=event.activity,
                timestamp=event.timestamp,
                ip_address=event.ip_address,
                user_agent=event.user_agent,
            )
        finally:
            db.close()


@lru_cache()
def get_audit_logger() -> ActivityAuditLogger:
    return ActivityAuditLogger(maxsize=get_settings().AUDIT_QUEUE_SIZE)


class ActivityService:
    """Read side of the audit trail."""

    def __init__(self, repo: ActivityRepository):
        self.repo = repo

    def list(
        self,
        user_id: int,
        limit: int = DEFAULT_ACTIVITY_PAGE,
        offset: int = 0,
        date_range: Optional[DateRange] = None,
        activity: Optional[str] = None,
    ) -> Tuple[List[ActivityLogEntry], int]:
        page = Page.clamp(limit, offset, default=DEFAULT_ACTIVITY_PAGE)
        return self.repo.list(user_id, page, date_range, activity)
