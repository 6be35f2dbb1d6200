"""Error taxonomy shared by repositories, services and orchestration.

Lower layers raise these typed errors; the API layer maps them onto HTTP
responses in ``main.py``.
"""
from typing import Any, Optional


class WellspringError(Exception):
    """Base class for all domain errors."""

    code = "error"

    def __init__(self, message: str = "", *, detail: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.detail = detail


class NotFound(WellspringError):
    """Entity absent, or not owned by the requesting user."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any = None):
        msg = f"{entity} not found"
        super().__init__(msg)
        self.entity = entity
        self.entity_id = entity_id


class InvalidState(WellspringError):
    code = "invalid_state"


class AlreadyEnded(InvalidState):
    code = "session_already_ended"

    def __init__(self, session_id: int):
        super().__init__("session already ended")
        self.session_id = session_id


class SessionEnded(InvalidState):
    code = "session_ended"

    def __init__(self, session_id: int):
        super().__init__("cannot send message to ended session")
        self.session_id = session_id


class ValidationError(WellspringError):
    code = "validation_error"


class UpstreamError(WellspringError):
    """An external service (completion or classifier) failed.

    ``status_code`` is the upstream HTTP status when one was received.
    """

    code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        service: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message, detail=detail)
        self.service = service
        self.status_code = status_code


class ClassificationFailed(UpstreamError):
    code = "classification_failed"


class InfrastructureError(WellspringError):
    code = "store_unavailable"


class PipelineError(WellspringError):
    """A persistence step of the mood-analysis pipeline failed."""

    code = "pipeline_error"
    stage = ""


class JournalPersistFailed(PipelineError):
    code = "journal_persist_failed"
    stage = "journal"


class MoodEntryPersistFailed(PipelineError):
    """The journal was stored but its mood entry was not.

    The journal is kept (no compensation) and handed back to the caller so a
    client can retry the mood entry alone.
    """

    code = "mood_entry_persist_failed"
    stage = "mood_entry"

    def __init__(self, message: str, *, journal: Any):
        super().__init__(message)
        self.journal = journal
