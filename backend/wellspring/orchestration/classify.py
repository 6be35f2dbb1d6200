import asyncio
import logging
from typing import Dict, Optional

import httpx

from ..config import Settings, get_settings
from ..errors import UpstreamError

logger = logging.getLogger(__name__)

# Classifier vocabulary -> intensity in [0, 1]
MOOD_INTENSITY: Dict[str, float] = {
    "joy": 1.0,
    "love": 0.9,
    "surprise": 0.7,
    "fear": 0.3,
    "sadness": 0.2,
    "anger": 0.1,
}
NEUTRAL_INTENSITY = 0.5


def intensity_for(label: str) -> float:
    """Map a classifier label to an intensity.

    Unknown labels get the neutral value so vocabulary drift on the model
    side never blocks journaling.
    """
    key = (label or "").strip().lower()
    if key in MOOD_INTENSITY:
        return MOOD_INTENSITY[key]
    logger.warning("Unknown mood label %r; assigning neutral intensity", label)
    return NEUTRAL_INTENSITY


class ClassifierGateway:
    """Client for the mood-classification model service.

    Request ``{"text": ...}``, response ``{"mood": label}``. Raises
    ``UpstreamError`` on network, timeout, status, or decode failures.
    """

    service = "classifier"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.url = settings.MOOD_MODEL_API_URL
        self.timeout = float(settings.MOOD_MODEL_TIMEOUT_S)
        self._transport = transport

    async def classify(self, text: str) -> str:
        if not self.url:
            raise UpstreamError("mood model API URL is not configured", service=self.service)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await asyncio.wait_for(
                    client.post(self.url, json={"text": text}),
                    timeout=self.timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error("Mood classifier at %s timed out after %ss", self.url, self.timeout)
            raise UpstreamError("mood classifier timed out", service=self.service) from e
        except httpx.HTTPError as e:
            logger.error("Mood classifier call to %s failed: %s", self.url, e)
            raise UpstreamError(
                "failed to call mood classifier", service=self.service, detail=str(e)
            ) from e

        if resp.status_code != 200:
            body = resp.text[:1000]
            logger.error("Mood classifier at %s returned status %s. Body: %s", self.url, resp.status_code, body)
            raise UpstreamError(
                f"mood classifier returned status {resp.status_code}",
                service=self.service,
                status_code=resp.status_code,
                detail=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(
                "failed to decode mood classifier response", service=self.service, detail=resp.text[:300]
            ) from e

        label = data.get("mood", data.get("label")) if isinstance(data, dict) else None
        if not isinstance(label, str) or not label.strip():
            raise UpstreamError(
                "mood classifier response has no label", service=self.service, detail=str(data)[:300]
            )
        return label.strip()


def get_classifier_gateway() -> ClassifierGateway:
    """Dependency for getting the classifier gateway."""
    return ClassifierGateway()
