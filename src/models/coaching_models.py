"""Coaching and objection analysis models.

LLM output is validated through these models. Missing arrays default to
empty lists, missing red flags to empty severity buckets, and rubric
scores are clamped to the 1..5 range so downstream formatting never has
to guard against partial output.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.constants import (
    COACHING_CATEGORY_WEIGHTS,
    MAX_RUBRIC_SCORE,
    MIN_RUBRIC_SCORE,
)


def _clamp_score(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return max(float(MIN_RUBRIC_SCORE), min(float(MAX_RUBRIC_SCORE), score))


def _list_or_empty(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


_ITEM_TEXT_KEYS = ("flag", "text", "description", "item", "action", "title")


def _item_text(item: Any) -> str:
    if isinstance(item, dict):
        for key in _ITEM_TEXT_KEYS:
            if item.get(key) is not None:
                return str(item[key]).strip()
        return "; ".join(str(v) for v in item.values() if v is not None).strip()
    return str(item).strip()


def _text_list(value: Any) -> list[str]:
    """Coerce a model-supplied array into non-empty strings, dropping nulls."""
    texts = (_item_text(item) for item in _list_or_empty(value) if item is not None)
    return [text for text in texts if text]


def _text_or_empty(value: Any) -> str:
    return "" if value is None else str(value)


def performance_level_for(score: float | None) -> str:
    """Map an overall rubric score to its performance band."""
    if score is None:
        return "Unknown"
    if score >= 4.5:
        return "Top Performer"
    if score >= 3.5:
        return "Solid Performer"
    if score >= 2.5:
        return "Developing"
    if score >= 1.5:
        return "Needs Coaching"
    return "Performance Issue"


# =============================================================================
# Coaching
# =============================================================================


class CoachingScores(BaseModel):
    """Per-category rubric scores (1-5)."""

    opening_rapport: Optional[float] = None
    needs_discovery: Optional[float] = None
    product_presentation: Optional[float] = None
    objection_handling: Optional[float] = None
    compliance_disclosures: Optional[float] = None
    closing_enrollment: Optional[float] = None

    @field_validator("*", mode="before")
    @classmethod
    def clamp(cls, value: Any) -> float | None:
        return _clamp_score(value)

    def weighted_overall(self) -> float | None:
        """Weighted average over the categories that were scored."""
        total = 0.0
        weight_sum = 0.0
        for category, weight in COACHING_CATEGORY_WEIGHTS.items():
            score = getattr(self, category)
            if score is None:
                continue
            total += score * weight
            weight_sum += weight
        if weight_sum == 0:
            return None
        return round(total / weight_sum, 2)


class RedFlags(BaseModel):
    """Compliance red flags by severity."""

    critical: list[str] = Field(default_factory=list)
    high: list[str] = Field(default_factory=list)
    medium: list[str] = Field(default_factory=list)

    @field_validator("critical", "high", "medium", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> list:
        return _text_list(value)


class NotableMoment(BaseModel):
    """A positive or needs-work moment quoted from the call."""

    type: Literal["positive", "needs_work"] = "needs_work"
    category: str = ""
    description: str = ""
    quote: Optional[str] = None

    @field_validator("category", "description", mode="before")
    @classmethod
    def default_text(cls, value: Any) -> str:
        return _text_or_empty(value)

    @field_validator("quote", mode="before")
    @classmethod
    def stringify_quote(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> str:
        return "positive" if str(value).lower() == "positive" else "needs_work"


class CoachingAnalysis(BaseModel):
    """Structured coaching feedback for one call."""

    scores: CoachingScores = Field(default_factory=CoachingScores)
    overall_score: Optional[float] = None
    performance_level: str = ""
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    red_flags: RedFlags = Field(default_factory=RedFlags)
    notable_moments: list[NotableMoment] = Field(default_factory=list)

    @field_validator("scores", "red_flags", mode="before")
    @classmethod
    def default_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict | BaseModel) else {}

    @field_validator("strengths", "improvements", "action_items", mode="before")
    @classmethod
    def text_items(cls, value: Any) -> list[str]:
        return _text_list(value)

    @field_validator("notable_moments", mode="before")
    @classmethod
    def moment_items(cls, value: Any) -> list:
        return [m for m in _list_or_empty(value) if isinstance(m, dict | BaseModel)]

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_overall(cls, value: Any) -> float | None:
        return _clamp_score(value)

    @field_validator("performance_level", mode="before")
    @classmethod
    def default_level(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @model_validator(mode="after")
    def fill_derived(self) -> "CoachingAnalysis":
        if self.overall_score is None:
            self.overall_score = self.scores.weighted_overall()
        if not self.performance_level:
            self.performance_level = performance_level_for(self.overall_score)
        return self

    @property
    def has_critical_flags(self) -> bool:
        return bool(self.red_flags.critical)


# =============================================================================
# Objections
# =============================================================================


class ObjectionSnippet(BaseModel):
    """Verbatim transcript snippet for an objection."""

    objection_text: str = ""
    rebuttal_text: str = ""
    full_exchange: Optional[str] = None


class ObjectionFound(BaseModel):
    """One objection raised by the customer and how the agent handled it."""

    objection_type: str = "other"
    objection_text: str = ""
    customer_sentiment: Optional[Literal["mild", "moderate", "strong"]] = None
    agent_response: str = ""
    response_quality: float = Field(default=MIN_RUBRIC_SCORE)
    techniques_used: list[str] = Field(default_factory=list)
    techniques_missed: list[str] = Field(default_factory=list)
    was_resolved: bool = False
    improvement_suggestion: str = ""
    snippet: Optional[ObjectionSnippet] = None

    @field_validator(
        "objection_text", "agent_response", "improvement_suggestion", mode="before"
    )
    @classmethod
    def default_text(cls, value: Any) -> str:
        return _text_or_empty(value)

    @field_validator("objection_type", mode="before")
    @classmethod
    def default_type(cls, value: Any) -> str:
        return str(value) if value else "other"

    @field_validator("was_resolved", mode="before")
    @classmethod
    def default_resolved(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("response_quality", mode="before")
    @classmethod
    def clamp_quality(cls, value: Any) -> float:
        score = _clamp_score(value)
        return score if score is not None else float(MIN_RUBRIC_SCORE)

    @field_validator("customer_sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.lower() in ("mild", "moderate", "strong"):
            return value.lower()
        return None

    @field_validator("techniques_used", "techniques_missed", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> list:
        return _text_list(value)


class MissedObjection(BaseModel):
    description: str = ""
    where_in_call: Optional[Literal["early", "middle", "late"]] = None
    what_to_look_for: str = ""

    @field_validator("description", "what_to_look_for", mode="before")
    @classmethod
    def default_text(cls, value: Any) -> str:
        return _text_or_empty(value)

    @field_validator("where_in_call", mode="before")
    @classmethod
    def normalize_position(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.lower() in ("early", "middle", "late"):
            return value.lower()
        return None


class ObjectionPatterns(BaseModel):
    agent_tendencies: list[str] = Field(default_factory=list)
    customer_signals: list[str] = Field(default_factory=list)

    @field_validator("agent_tendencies", "customer_signals", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> list:
        return _text_list(value)


class ObjectionAnalysis(BaseModel):
    """Objection-focused analysis of one call."""

    objections_found: list[ObjectionFound] = Field(default_factory=list)
    overall_objection_handling_score: Optional[float] = None
    total_objections: int = 0
    resolved_count: int = 0
    missed_objections: list[MissedObjection] = Field(default_factory=list)
    strongest_moment: Optional[dict[str, str]] = None
    biggest_opportunity: Optional[dict[str, str]] = None
    patterns: ObjectionPatterns = Field(default_factory=ObjectionPatterns)
    no_objections_note: Optional[str] = None

    @field_validator("objections_found", "missed_objections", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> list:
        return [o for o in _list_or_empty(value) if isinstance(o, dict | BaseModel)]

    @field_validator("patterns", mode="before")
    @classmethod
    def default_patterns(cls, value: Any) -> Any:
        return value if isinstance(value, dict | BaseModel) else {}

    @field_validator("overall_objection_handling_score", mode="before")
    @classmethod
    def clamp_overall(cls, value: Any) -> float | None:
        return _clamp_score(value)

    @field_validator("strongest_moment", "biggest_opportunity", mode="before")
    @classmethod
    def stringify_moment(cls, value: Any) -> dict[str, str] | None:
        if not isinstance(value, dict):
            return None
        return {str(k): "" if v is None else str(v) for k, v in value.items()}

    @model_validator(mode="after")
    def fill_counts(self) -> "ObjectionAnalysis":
        if not self.total_objections and self.objections_found:
            self.total_objections = len(self.objections_found)
        if not self.resolved_count and self.objections_found:
            self.resolved_count = sum(1 for o in self.objections_found if o.was_resolved)
        return self


class RecordObjectionInput(BaseModel):
    """Parameters for the ``record_objection`` RPC."""

    agent_user_id: str
    call_id: str
    objection_type: str
    response_quality: float
    was_resolved: bool
    customer_sentiment: Optional[str] = None
    objection_snippet: Optional[str] = None
    rebuttal_snippet: Optional[str] = None
    full_exchange: Optional[str] = None

    @classmethod
    def from_objection(
        cls, objection: ObjectionFound, agent_user_id: str, call_id: str
    ) -> "RecordObjectionInput":
        snippet = objection.snippet
        return cls(
            agent_user_id=agent_user_id,
            call_id=call_id,
            objection_type=objection.objection_type,
            response_quality=objection.response_quality,
            was_resolved=objection.was_resolved,
            customer_sentiment=objection.customer_sentiment,
            objection_snippet=(snippet and snippet.objection_text)
            or objection.objection_text
            or None,
            rebuttal_snippet=(snippet and snippet.rebuttal_text)
            or objection.agent_response
            or None,
            full_exchange=snippet.full_exchange if snippet else None,
        )

    def to_rpc_params(self) -> dict[str, Any]:
        return {
            "p_agent_user_id": self.agent_user_id,
            "p_call_id": self.call_id,
            "p_objection_type": self.objection_type,
            "p_response_quality": self.response_quality,
            "p_was_resolved": self.was_resolved,
            "p_customer_sentiment": self.customer_sentiment,
            "p_objection_snippet": self.objection_snippet,
            "p_rebuttal_snippet": self.rebuttal_snippet,
            "p_full_exchange": self.full_exchange,
        }


class ObjectionStat(BaseModel):
    """Per-type objection stats for an agent."""

    objection_type: str
    total_occurrences: int = 0
    avg_score: float = 0
    resolved_count: int = 0
    unresolved_count: int = 0
    resolution_rate: float = 0
    first_seen_at: Optional[str] = None
    last_seen_at: Optional[str] = None


class ObjectionArea(BaseModel):
    """Weak or strong objection handling area."""

    objection_type: str
    total_occurrences: int = 0
    avg_score: float = 0
    resolution_rate: float = 0
    last_seen_at: Optional[str] = None


class AgentObjectionHistory(BaseModel):
    """Aggregated objection handling history used as coaching context."""

    agent_user_id: str
    stats: list[ObjectionStat] = Field(default_factory=list)
    weak_areas: list[ObjectionArea] = Field(default_factory=list)
    strong_areas: list[ObjectionArea] = Field(default_factory=list)
    total_analyzed: int = 0
    overall_avg_score: Optional[float] = None

    @classmethod
    def from_parts(
        cls,
        agent_user_id: str,
        stats: list[ObjectionStat],
        weak_areas: list[ObjectionArea],
        strong_areas: list[ObjectionArea],
    ) -> "AgentObjectionHistory":
        """Build history, weighting the overall average by occurrences."""
        total = sum(s.total_occurrences for s in stats)
        overall = None
        if total > 0:
            weighted = sum(s.avg_score * s.total_occurrences for s in stats)
            overall = round(weighted / total, 2)
        return cls(
            agent_user_id=agent_user_id,
            stats=stats,
            weak_areas=weak_areas,
            strong_areas=strong_areas,
            total_analyzed=total,
            overall_avg_score=overall,
        )
