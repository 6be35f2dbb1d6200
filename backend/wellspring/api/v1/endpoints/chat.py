from typing import Any, Optional

from fastapi import APIRouter, Depends, Response, status

from ....models.chat import (
    ChatMessage,
    ChatSession,
    CompanionRequest,
    CompanionResponse,
    MessageCreate,
    MessageList,
    SessionList,
)
from ....models.user import Principal
from ....core.security import get_current_principal
from ....orchestration.turn import ConversationTurn
from ....pagination import DateRange, Page
from ....services.chat import DEFAULT_MESSAGE_PAGE, DEFAULT_SESSION_PAGE, ChatService
from ..deps import date_range, get_chat_service, get_conversation_turn, record_activity

router = APIRouter(prefix="/chat", tags=["chat"], dependencies=[Depends(record_activity)])


@router.post("/sessions", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def start_session(
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """Open a new, active chat session for the caller."""
    return chat_service.start_session(principal.user_id)


@router.get("/sessions", response_model=SessionList)
async def list_sessions(
    limit: int = DEFAULT_SESSION_PAGE,
    offset: int = 0,
    window: DateRange = Depends(date_range),
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """
    List the caller's sessions, newest first.

    Args:
        limit: Page size (capped at 100)
        offset: Number of sessions to skip
        window: Optional ``start_date``/``end_date`` filter on the start time
    """
    page = Page.clamp(limit, offset, default=DEFAULT_SESSION_PAGE)
    sessions, total = chat_service.list_sessions(
        principal.user_id, limit=page.limit, offset=page.offset, date_range=window
    )
    return SessionList(items=sessions, total=total, limit=page.limit, offset=page.offset)


@router.get("/sessions/{session_id}", response_model=ChatSession)
async def get_session(
    session_id: int,
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    return chat_service.get_session(session_id, principal.user_id)


@router.patch("/sessions/{session_id}", response_model=ChatSession)
async def end_session(
    session_id: int,
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """End an active session. Ending twice is a conflict."""
    return chat_service.end_session(session_id, principal.user_id)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: int,
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Response:
    """Delete a session together with its messages."""
    chat_service.delete_session(session_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/sessions/{session_id}/messages",
    response_model=ChatMessage,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    session_id: int,
    message_in: MessageCreate,
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    return chat_service.append_message(
        session_id, principal.user_id, message_in.content, message_in.sender
    )


@router.get("/sessions/{session_id}/messages", response_model=MessageList)
async def list_messages(
    session_id: int,
    limit: int = DEFAULT_MESSAGE_PAGE,
    before_id: Optional[int] = None,
    principal: Principal = Depends(get_current_principal),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """
    List messages, most recent first.

    Pass the smallest ``id`` of the previous page as ``before_id`` to page
    further back.
    """
    page = Page.clamp(limit, default=DEFAULT_MESSAGE_PAGE)
    messages, total = chat_service.list_messages(
        session_id, principal.user_id, limit=page.limit, before_id=before_id
    )
    return MessageList(
        items=messages,
        total=total,
        limit=page.limit,
        before_id=before_id if before_id and before_id > 0 else None,
        session_id=session_id,
    )


@router.post("/companion", response_model=CompanionResponse)
async def companion(
    request_in: CompanionRequest,
    principal: Principal = Depends(get_current_principal),
    turn: ConversationTurn = Depends(get_conversation_turn),
) -> Any:
    """
    Run one conversational turn.

    With ``session_id`` the exchange is stored and prior messages are used as
    context; without it the reply is ephemeral.
    """
    result = await turn.run(principal.user_id, request_in.message, request_in.session_id)
    return CompanionResponse(
        response=result.reply,
        session_id=result.session_id,
        message_id=result.message_id,
        tokens_used=result.tokens_used,
        model=result.model,
    )
