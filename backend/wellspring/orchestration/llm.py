import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import Settings, get_settings
from ..errors import UpstreamError

logger = logging.getLogger(__name__)

# Substituted by the caller when the model answers with nothing usable
FALLBACK_REPLY = "I'm here to support you. How can I help you today?"

SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"
SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# generateContent only knows "user" and "model"; persona priming rides as user
_WIRE_ROLES = {
    Role.SYSTEM: "user",
    Role.USER: "user",
    Role.ASSISTANT: "model",
}


@dataclass(frozen=True)
class Turn:
    role: Role
    text: str


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Completion:
    text: str
    model: str
    finish_reason: Optional[str] = None
    usage: Usage = field(default_factory=Usage)

    @property
    def is_empty(self) -> bool:
        return not self.text


class CompletionGateway:
    """Single-shot client for the external completion service.

    No retries: a conversational turn is stateful and a retried call could
    produce a duplicate assistant reply. Every failure is raised as
    ``UpstreamError``.
    """

    service = "completion"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.api_key = (settings.GEMINI_API_KEY or "").strip()
        self.model = settings.COMPLETION_MODEL
        self.api_base = settings.COMPLETION_API_BASE.rstrip("/")
        self.timeout = float(settings.COMPLETION_TIMEOUT_S)
        self.generation_config = {
            "temperature": float(settings.TEMPERATURE),
            "maxOutputTokens": int(settings.MAX_OUTPUT_TOKENS),
            "topP": float(settings.TOP_P),
            "topK": int(settings.TOP_K),
        }
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def build_payload(self, turns: Sequence[Turn]) -> Dict[str, Any]:
        return {
            "contents": [
                {"role": _WIRE_ROLES[t.role], "parts": [{"text": t.text}]} for t in turns
            ],
            "generationConfig": dict(self.generation_config),
            "safetySettings": [
                {"category": c, "threshold": SAFETY_THRESHOLD} for c in SAFETY_CATEGORIES
            ],
        }

    async def complete(self, turns: Sequence[Turn], timeout: Optional[float] = None) -> Completion:
        """Send ``turns`` and return the first candidate.

        An empty ``Completion.text`` means the provider answered without
        usable content (no candidates, blocked, or blank); callers decide on
        a fallback.
        """
        if not self.api_key:
            raise UpstreamError("completion API key is not configured", service=self.service)

        deadline = float(timeout or self.timeout)
        payload = self.build_payload(turns)
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=deadline, transport=self._transport) as client:
                resp = await asyncio.wait_for(
                    client.post(self.url, json=payload, headers=headers),
                    timeout=deadline,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error("Completion request timed out after %ss", deadline)
            raise UpstreamError(
                f"completion request timed out after {deadline}s", service=self.service
            ) from e
        except httpx.HTTPError as e:
            logger.error("Completion request failed: %s", e)
            raise UpstreamError(
                "completion request failed", service=self.service, detail=str(e)
            ) from e

        if not resp.is_success:
            body = resp.text[:1000]
            logger.error("Completion API returned status %s body=%s", resp.status_code, body)
            raise UpstreamError(
                f"completion API returned status {resp.status_code}",
                service=self.service,
                status_code=resp.status_code,
                detail=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(
                "completion response was not valid JSON",
                service=self.service,
                status_code=resp.status_code,
                detail=resp.text[:300],
            ) from e

        completion = self._parse(data)
        if completion.is_empty:
            logger.warning("Completion returned no text (finish_reason=%s)", completion.finish_reason)
        return completion

    def _parse(self, data: Any) -> Completion:
        try:
            candidates: List[Dict[str, Any]] = data.get("candidates") or []
            text = ""
            finish_reason = None
            if candidates:
                first = candidates[0] or {}
                finish_reason = first.get("finishReason")
                parts = (first.get("content") or {}).get("parts") or []
                if parts:
                    text = (parts[0].get("text") or "").strip()
            meta = data.get("usageMetadata") or {}
            usage = Usage(
                prompt_tokens=int(meta.get("promptTokenCount", 0) or 0),
                completion_tokens=int(meta.get("candidatesTokenCount", 0) or 0),
                total_tokens=int(meta.get("totalTokenCount", 0) or 0),
            )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise UpstreamError(
                "completion response had an unexpected shape", service=self.service, detail=str(e)
            ) from e
        return Completion(text=text, model=self.model, finish_reason=finish_reason, usage=usage)


def get_completion_gateway() -> CompletionGateway:
    """Dependency for getting the completion gateway."""
    return CompletionGateway()
