"""Request-scoped wiring for the v1 routers."""
from datetime import datetime
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...config import get_settings
from ...core.security import get_current_principal
from ...db.base import get_db
from ...models.user import Principal
from ...orchestration.classify import ClassifierGateway, get_classifier_gateway
from ...orchestration.context import ContextAssembler
from ...orchestration.llm import CompletionGateway, get_completion_gateway
from ...orchestration.turn import ConversationTurn
from ...pagination import DateRange
from ...repositories.activity import ActivityRepository
from ...repositories.chat import ChatRepository
from ...repositories.journal import JournalRepository
from ...repositories.mood import MoodRepository
from ...services.activity import (
    ActivityAuditLogger,
    ActivityEvent,
    ActivityService,
    activity_tag,
    get_audit_logger,
)
from ...services.chat import ChatService
from ...services.journal import JournalService
from ...services.mood import MoodService
from ...services.mood_analysis import MoodAnalysisPipeline


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    return ChatService(ChatRepository(db))


def get_journal_service(db: Session = Depends(get_db)) -> JournalService:
    return JournalService(JournalRepository(db))


def get_mood_service(db: Session = Depends(get_db)) -> MoodService:
    return MoodService(MoodRepository(db), JournalRepository(db))


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    return ActivityService(ActivityRepository(db))


def get_conversation_turn(
    chat_service: ChatService = Depends(get_chat_service),
    gateway: CompletionGateway = Depends(get_completion_gateway),
) -> ConversationTurn:
    assembler = ContextAssembler(chat_service, window=get_settings().CONTEXT_WINDOW)
    return ConversationTurn(chat_service, gateway, assembler)


def get_mood_pipeline(
    classifier: ClassifierGateway = Depends(get_classifier_gateway),
    journals: JournalService = Depends(get_journal_service),
    moods: MoodService = Depends(get_mood_service),
) -> MoodAnalysisPipeline:
    return MoodAnalysisPipeline(classifier, journals, moods)


def date_range(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> DateRange:
    """``start_date``/``end_date`` query parameters as a validated range."""
    return DateRange.from_bounds(start_date, end_date)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


async def record_activity(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    audit: ActivityAuditLogger = Depends(get_audit_logger),
) -> AsyncGenerator[None, None]:
    """Audit every authenticated request once the handler has finished.

    Recording happens on success and on failure alike; it only enqueues, so
    the response is never delayed by the audit write.
    """
    try:
        yield
    finally:
        route_name = getattr(request.scope.get("route"), "name", None)
        audit.record(
            ActivityEvent(
                user_id=principal.user_id,
                activity=activity_tag(request.method, route_name, request.url.path),
                ip_address=client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )
        )
