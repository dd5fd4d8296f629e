"""Intent classification for chat messages.

The LLM is asked for a typed ``ClassifierOutput``; its reply is normalized into
an ``IntentClassification``. Classification never raises: any failure
yields GENERAL with zero confidence.
"""

import logging
import re
from typing import Any, Optional

import logfire
from pydantic import BaseModel, field_validator

from src.constants import CLASSIFICATION_MAX_TOKENS, DEFAULT_DAYS_BACK
from src.models.chat_models import Intent, IntentClassification
from src.services.llm_service import LLMService
from src.services.prompt_loader import render_prompt

logger = logging.getLogger(__name__)

CLASSIFICATION_SYSTEM_PROMPT = (
    "You are an intent classifier. Your job is to analyze user messages and "
    "classify them into predefined categories.\n"
    "Return only the structured classification, with no explanations.\n"
    "Be accurate and consistent in your classifications."
)

INTENT_ALIASES: dict[str, Intent] = {
    "LISTCALLS": Intent.LIST_CALLS,
    "CALLS": Intent.LIST_CALLS,
    "SHOWCALLS": Intent.LIST_CALLS,
    "AGENTSTATS": Intent.AGENT_STATS,
    "STATS": Intent.AGENT_STATS,
    "PERFORMANCE": Intent.AGENT_STATS,
    "TEAMSUMMARY": Intent.TEAM_SUMMARY,
    "TEAM": Intent.TEAM_SUMMARY,
    "GETTRANSCRIPT": Intent.GET_TRANSCRIPT,
    "TRANSCRIPT": Intent.GET_TRANSCRIPT,
    "SEARCHCALLS": Intent.SEARCH_CALLS,
    "SEARCH": Intent.SEARCH_CALLS,
    "FIND": Intent.SEARCH_CALLS,
    "COACH": Intent.COACHING,
    "FEEDBACK": Intent.COACHING,
    "OBJECTIONANALYSIS": Intent.OBJECTION_ANALYSIS,
    "OBJECTIONS": Intent.OBJECTION_ANALYSIS,
    "OBJECTION": Intent.OBJECTION_ANALYSIS,
}

_GREETING_RE = re.compile(
    r"^\s*(hello|hi|hey|howdy|good\s+(morning|afternoon|evening))\b[\s!.,]*",
    re.IGNORECASE,
)
_HELP_RE = re.compile(
    r"^\s*(help|can you help( me)?|what can you do|what are your capabilities|capabilities)"
    r"[\s?!.]*$",
    re.IGNORECASE,
)


def normalize_intent(raw: Any) -> Intent:
    """Map a raw model label onto the closed intent set (unknown -> GENERAL)."""
    if not isinstance(raw, str):
        return Intent.GENERAL
    normalized = re.sub(r"[^A-Z_]", "", raw.upper())
    try:
        return Intent(normalized)
    except ValueError:
        return INTENT_ALIASES.get(normalized, Intent.GENERAL)


def is_greeting(message: str) -> bool:
    """Check whether a message is a short greeting with nothing else in it."""
    match = _GREETING_RE.match(message or "")
    return bool(match) and not message[match.end():].strip()


def is_help_request(message: str) -> bool:
    """Check whether a message only asks what the assistant can do."""
    return bool(_HELP_RE.match(message or ""))


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none"):
        return None
    return text


def _days_back(value: Any) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError):
        return DEFAULT_DAYS_BACK
    if days == 0:
        return DEFAULT_DAYS_BACK
    return max(0, days)


def _confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    return max(0.0, min(1.0, confidence))


class ClassifierOutput(BaseModel):
    """Structured reply requested from the model when classifying a message.

    Validation is lenient: unknown intents become GENERAL, "null" strings
    become None, and out-of-range numbers are clamped.
    """

    intent: Intent = Intent.GENERAL
    agent_name: Optional[str] = None
    days_back: int = DEFAULT_DAYS_BACK
    call_id: Optional[str] = None
    search_query: Optional[str] = None
    confidence: float = 0.5

    @field_validator("intent", mode="before")
    @classmethod
    def lenient_intent(cls, value: Any) -> Intent:
        return normalize_intent(value)

    @field_validator("agent_name", "call_id", "search_query", mode="before")
    @classmethod
    def lenient_text(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("days_back", mode="before")
    @classmethod
    def lenient_days_back(cls, value: Any) -> int:
        return _days_back(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def lenient_confidence(cls, value: Any) -> float:
        return _confidence(value)

    def to_classification(self) -> IntentClassification:
        return IntentClassification(**self.model_dump())


def classification_from_payload(payload: dict[str, Any]) -> IntentClassification:
    """Build a classification from a raw payload, filling defaults."""
    return ClassifierOutput.model_validate(payload).to_classification()


class IntentClassifier:
    """Classify chat messages into intents with extracted slots."""

    def __init__(self, llm_service: LLMService):
        self._llm = llm_service

    async def classify(self, message: str) -> IntentClassification:
        if is_greeting(message) or is_help_request(message):
            return IntentClassification(intent=Intent.GENERAL, confidence=1.0)

        prompt = render_prompt("intent_classification", message=message)
        try:
            output = await self._llm.run_structured(
                CLASSIFICATION_SYSTEM_PROMPT,
                prompt,
                ClassifierOutput,
                max_tokens=CLASSIFICATION_MAX_TOKENS,
            )
            classification = output.to_classification()
        except Exception as e:
            logger.error(f"Intent classification failed: {e}")
            logfire.warning(
                "Intent classification failed, defaulting to GENERAL",
                error=str(e),
                error_type=type(e).__name__,
            )
            return IntentClassification.fallback()

        logfire.info(
            "Intent classified",
            intent=classification.intent.value,
            confidence=classification.confidence,
            has_agent_name=classification.agent_name is not None,
            has_call_id=classification.call_id is not None,
        )
        return classification
