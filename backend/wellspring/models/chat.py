from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseDBModel, UTCDateTime


class SenderKind(str, Enum):
    """Who authored a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatSession(BaseDBModel):
    """Chat session as returned by the API."""

    user_id: int
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None

    @property
    def is_active(self) -> bool:
        return self.end_time is None


class ChatMessage(BaseDBModel):
    """Chat message as returned by the API."""

    session_id: int
    content: str
    sent_at: UTCDateTime
    sender: SenderKind


class MessageCreate(BaseModel):
    """Schema for appending a message to a session."""

    content: str = Field(..., min_length=1)
    sender: SenderKind = SenderKind.USER


class SessionList(BaseModel):
    """Offset-paginated session listing."""

    items: List[ChatSession]
    total: int
    limit: int
    offset: int


class MessageList(BaseModel):
    """Cursor-paginated message listing, most recent first."""

    items: List[ChatMessage]
    total: int
    limit: int
    before_id: Optional[int] = None
    session_id: int


class CompanionRequest(BaseModel):
    """A conversational turn; ``session_id`` omitted or 0 means ephemeral."""

    message: str = Field(..., min_length=1)
    session_id: Optional[int] = None


class CompanionResponse(BaseModel):
    response: str
    session_id: Optional[int] = None
    message_id: Optional[int] = None
    tokens_used: int = 0
    model: str
