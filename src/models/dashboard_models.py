"""Agent overview dashboard models."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _zero_if_none(value: Any) -> Any:
    return 0 if value is None else value


class DateRange(BaseModel):
    start_date: str
    end_date: str


class OverviewSummary(BaseModel):
    total_calls: int = 0
    total_duration_seconds: float = 0
    avg_duration_seconds: float = 0
    avg_talk_ratio: float = 0
    inbound_calls: int = 0
    outbound_calls: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def zero_if_none(cls, value: Any) -> Any:
        return _zero_if_none(value)


class ComplianceViolation(BaseModel):
    category: str = "unknown"
    severity: str = "medium"
    count: int = 0


class ComplianceMetrics(BaseModel):
    avg_score: float = 0
    total_analyzed: int = 0
    violations: list[ComplianceViolation] = Field(default_factory=list)

    @field_validator("avg_score", "total_analyzed", mode="before")
    @classmethod
    def zero_if_none(cls, value: Any) -> Any:
        return _zero_if_none(value)

    @field_validator("violations", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> list:
        return value or []


class PreviousPeriod(BaseModel):
    total_calls: int = 0
    avg_duration_seconds: float = 0
    avg_talk_ratio: float = 0
    avg_compliance_score: float = 0

    @field_validator("*", mode="before")
    @classmethod
    def zero_if_none(cls, value: Any) -> Any:
        return _zero_if_none(value)


class TeamComparison(BaseModel):
    team_avg_calls: float = 0
    team_avg_duration: float = 0
    team_avg_talk_ratio: float = 0
    team_avg_compliance: float = 0
    agent_percentile_calls: float = 0
    agent_percentile_compliance: float = 0

    @field_validator("*", mode="before")
    @classmethod
    def zero_if_none(cls, value: Any) -> Any:
        return _zero_if_none(value)


class TopObjection(BaseModel):
    objection_type: str
    total_occurrences: int = 0
    avg_score: float = 0
    resolution_rate: float = 0


class ObjectionOverallStats(BaseModel):
    total_objections: int = 0
    avg_response_quality: float = 0
    overall_resolution_rate: float = 0

    @field_validator("*", mode="before")
    @classmethod
    def zero_if_none(cls, value: Any) -> Any:
        return _zero_if_none(value)


class ObjectionSummary(BaseModel):
    """Objection handling summary from the ``get_objection_summary`` RPC."""

    top_objections: list[TopObjection] = Field(default_factory=list)
    overall_stats: ObjectionOverallStats = Field(default_factory=ObjectionOverallStats)

    @field_validator("top_objections", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> list:
        return value or []

    @field_validator("overall_stats", mode="before")
    @classmethod
    def default_stats(cls, value: Any) -> Any:
        return value or {}


class GoalProgress(BaseModel):
    """Row from the ``get_goals_progress`` RPC."""

    id: str
    goal_type: str
    target_value: float = 0
    actual_value: float = 0
    progress_percentage: float = 0
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    is_active: bool = True


class AgentOverview(BaseModel):
    """Agent overview metrics, optionally enriched with objections and goals."""

    agent_user_id: str
    period: DateRange
    summary: OverviewSummary = Field(default_factory=OverviewSummary)
    compliance: ComplianceMetrics = Field(default_factory=ComplianceMetrics)
    previous_period: PreviousPeriod = Field(default_factory=PreviousPeriod)
    team_comparison: Optional[TeamComparison] = None
    objections: Optional[ObjectionSummary] = None
    goals: Optional[list[GoalProgress]] = None

    @field_validator("summary", "compliance", "previous_period", mode="before")
    @classmethod
    def default_object(cls, value: Any) -> Any:
        return value or {}
