"""Chat pipeline models: intents, handler envelopes and the HTTP contract."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.constants import DEFAULT_DAYS_BACK
from src.models.auth_models import CallerIdentity, DataAccessScope


class Intent(str, Enum):
    """Closed set of chat intents."""

    LIST_CALLS = "LIST_CALLS"
    AGENT_STATS = "AGENT_STATS"
    TEAM_SUMMARY = "TEAM_SUMMARY"
    GET_TRANSCRIPT = "GET_TRANSCRIPT"
    SEARCH_CALLS = "SEARCH_CALLS"
    COACHING = "COACHING"
    OBJECTION_ANALYSIS = "OBJECTION_ANALYSIS"
    GENERAL = "GENERAL"


class IntentClassification(BaseModel):
    """Classifier output: an intent plus the slots extracted from the message."""

    intent: Intent = Intent.GENERAL
    agent_name: Optional[str] = None
    days_back: int = Field(default=DEFAULT_DAYS_BACK, ge=0)
    call_id: Optional[str] = None
    search_query: Optional[str] = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @classmethod
    def fallback(cls) -> "IntentClassification":
        """Classification used whenever the classifier cannot answer."""
        return cls(intent=Intent.GENERAL, confidence=0.0)


class HandlerParams(BaseModel):
    """Everything a handler needs to answer one request."""

    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    days_back: int = Field(default=DEFAULT_DAYS_BACK, ge=0)
    call_id: Optional[str] = None
    search_query: Optional[str] = None
    department: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    limit: Optional[int] = None
    data_scope: DataAccessScope
    caller: CallerIdentity


class HandlerResult(BaseModel):
    """
    Uniform handler outcome.

    A failed result never carries data and always carries a user-safe error.
    """

    success: bool
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def check_envelope(self) -> "HandlerResult":
        if not self.success:
            if self.data is not None:
                raise ValueError("failed handler results must not carry data")
            if not self.error:
                raise ValueError("failed handler results must carry an error")
        return self

    @classmethod
    def ok(cls, data: dict[str, Any]) -> "HandlerResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "HandlerResult":
        return cls(success=False, data=None, error=error)


# =============================================================================
# HTTP contract
# =============================================================================


class ChatContext(BaseModel):
    """Optional context the client attaches to a chat message."""

    agent_user_id: Optional[str] = None
    call_id: Optional[str] = None
    department: Optional[str] = None


class ChatRequest(BaseModel):
    """Request body for POST /api/v1/chat."""

    message: str
    session_id: Optional[str] = None
    context: Optional[ChatContext] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Message cannot be empty")
        return value


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatResponse(BaseModel):
    """Response body for POST /api/v1/chat."""

    success: bool
    response: str
    data: Optional[dict[str, Any]] = None
    intent: Intent = Intent.GENERAL
    timestamp: str = Field(default_factory=_utc_now_iso)
    error: Optional[str] = None
