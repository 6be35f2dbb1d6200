import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import SessionEnded, ValidationError, WellspringError
from ..models.chat import SenderKind
from ..services.chat import ChatService
from .context import ContextAssembler
from .llm import FALLBACK_REPLY, CompletionGateway

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    reply: str
    model: str
    session_id: Optional[int] = None
    message_id: Optional[int] = None
    tokens_used: int = 0
    used_fallback: bool = False


class ConversationTurn:
    """One user message in, one assistant reply out.

    With a session the user message and the reply are stored in order;
    without one the turn is ephemeral and nothing is persisted. A reply that
    cannot be stored is still returned, with no ``message_id``.
    """

    def __init__(
        self,
        chat_service: ChatService,
        gateway: CompletionGateway,
        assembler: Optional[ContextAssembler] = None,
    ):
        self.chat_service = chat_service
        self.gateway = gateway
        self.assembler = assembler or ContextAssembler(chat_service)

    async def run(self, user_id: int, message: str, session_id: Optional[int] = None) -> TurnResult:
        if not message or not message.strip():
            raise ValidationError("message must not be empty")
        if session_id is not None and session_id <= 0:
            session_id = None

        # 1) session must exist, belong to the user, and still be active
        if session_id is not None:
            session = self.chat_service.get_session(session_id, user_id)
            if session.end_time is not None:
                raise SessionEnded(session_id)

        # 2) prompt from history read before this message is stored
        turns = self.assembler.assemble(user_id, message, session_id)

        # 3) keep the user's words even if the model call fails
        if session_id is not None:
            self.chat_service.append_message(session_id, user_id, message, SenderKind.USER)

        # 4) single attempt; UpstreamError propagates
        completion = await self.gateway.complete(turns)

        reply = completion.text
        used_fallback = completion.is_empty
        if used_fallback:
            reply = FALLBACK_REPLY

        result = TurnResult(
            reply=reply,
            model=completion.model,
            session_id=session_id,
            tokens_used=completion.usage.total_tokens,
            used_fallback=used_fallback,
        )
        if session_id is not None:
            try:
                stored = self.chat_service.append_message(session_id, user_id, reply, SenderKind.ASSISTANT)
            except WellspringError as e:
                # Storing the reply is best effort; the caller still gets it
                logger.error("Failed to store assistant reply for session %s: %s", session_id, e)
            else:
                result.message_id = stored.id
        logger.info(
            "Conversation turn done: session=%s tokens=%s fallback=%s",
            session_id, result.tokens_used, used_fallback,
        )
        return result
