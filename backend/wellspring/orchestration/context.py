from typing import List, Optional

from ..models.chat import SenderKind
from ..services.chat import ChatService
from .llm import Role, Turn

SYSTEM_PROMPT = """
You are Wellspring, a compassionate mental wellness companion offering emotional
support and gentle guidance.

Your core purpose:
- Provide empathetic emotional support and validation
- Offer evidence-based coping strategies (breathing exercises, grounding,
  journaling prompts, progressive muscle relaxation, sleep hygiene)
- Be a caring, non-judgmental listening companion

How you speak:
- Warm, supportive and encouraging; concise but meaningful
- Validate feelings before offering suggestions
- Ask a thoughtful follow-up question when it helps

You must not:
- Diagnose, or give medical or medication advice
- Present yourself as a therapist or a replacement for professional care

If someone mentions suicidal thoughts, self-harm, or being in danger, respond with
care and firmly encourage them to contact emergency services or a crisis line and
to reach out to a mental health professional right away.
"""

PRIMING_ACK = (
    "I understand my role. I'm here to listen with compassion, offer practical coping "
    "strategies and encouragement, and point you to professional help whenever it's "
    "needed. How can I support you today?"
)

_ROLE_FOR_SENDER = {
    SenderKind.USER: Role.USER,
    SenderKind.ASSISTANT: Role.ASSISTANT,
}


class ContextAssembler:
    """Build the ordered prompt for one conversational turn.

    Output: persona priming pair, then up to ``window`` prior session
    messages in chronological order, then the new user message. Session
    lookups are not optional: if the history cannot be read the error
    propagates instead of sending an ungrounded prompt.
    """

    def __init__(self, chat_service: ChatService, window: int = 8):
        self.chat_service = chat_service
        self.window = window

    def priming(self) -> List[Turn]:
        return [
            Turn(Role.SYSTEM, SYSTEM_PROMPT.strip()),
            Turn(Role.ASSISTANT, PRIMING_ACK),
        ]

    def history(self, session_id: int, user_id: int) -> List[Turn]:
        recent, _ = self.chat_service.list_messages(session_id, user_id, limit=self.window)
        # list_messages is newest first
        return [Turn(_ROLE_FOR_SENDER[m.sender], m.content) for m in reversed(recent)]

    def assemble(self, user_id: int, message: str, session_id: Optional[int] = None) -> List[Turn]:
        turns = self.priming()
        if session_id and session_id > 0:
            turns.extend(self.history(session_id, user_id))
        turns.append(Turn(Role.USER, message))
        return turns
