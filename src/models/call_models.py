"""Pydantic models for agents, calls, transcripts and search rows.

Rows come straight from Supabase tables and RPCs. Display fields carry
defaults so partially populated rows still load and format.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class Agent(BaseModel):
    """Sales agent row from the ``agents`` table."""

    agent_user_id: str
    first_name: str = "Unknown"
    email: Optional[str] = None
    department: Optional[str] = None
    extension: Optional[str] = None
    active: bool = True
    admin: bool = False
    created_at: Optional[str] = None


class ResolvedAgent(BaseModel):
    """Fuzzy name match returned by the ``resolve_agent_name`` RPC."""

    agent_user_id: str
    first_name: str = "Unknown"
    similarity_score: float = 0.0


class CallSummary(BaseModel):
    """Call list row from the ``get_agent_calls`` RPC."""

    call_id: str
    agent_user_id: Optional[str] = None
    agent_name: Optional[str] = None
    call_date: Optional[str] = None
    call_datetime: Optional[str] = None
    total_duration_seconds: Optional[int] = None
    total_duration_formatted: Optional[str] = None
    agent_talk_percentage: Optional[float] = None
    customer_talk_percentage: Optional[float] = None
    total_turns: Optional[int] = None
    is_inbound_call: Optional[bool] = None


class CallMetadata(BaseModel):
    """Row from the ``call_metadata`` table."""

    call_id: str
    agent_user_id: Optional[str] = None
    lead_id: Optional[str] = None
    call_date: Optional[str] = None
    call_datetime: Optional[str] = None
    department: Optional[str] = None
    total_duration_seconds: Optional[int] = None
    total_duration_formatted: Optional[str] = None
    total_turns: Optional[int] = None
    agent_turns: Optional[int] = None
    customer_turns: Optional[int] = None
    agent_talk_percentage: Optional[float] = None
    customer_talk_percentage: Optional[float] = None
    full_transcript: Optional[str] = None
    is_inbound_call: Optional[bool] = None
    is_redacted: bool = False


class CallTurn(BaseModel):
    """One speaker turn of a call."""

    id: Optional[str] = None
    call_id: Optional[str] = None
    agent_user_id: Optional[str] = None
    turn_number: int
    speaker: Literal["Agent", "Customer"]
    text: str
    timestamp_start: Optional[str] = None
    timestamp_end: Optional[str] = None
    duration_seconds: Optional[float] = None


class CallTranscript(BaseModel):
    """Row from the ``get_call_transcript`` RPC."""

    call_id: str
    agent_user_id: Optional[str] = None
    agent_name: Optional[str] = None
    call_date: Optional[str] = None
    full_transcript: Optional[str] = None
    total_duration_formatted: Optional[str] = None
    agent_talk_percentage: Optional[float] = None
    customer_talk_percentage: Optional[float] = None


class AgentPerformance(BaseModel):
    """Aggregate row from the ``get_agent_performance`` RPC."""

    agent_user_id: str
    agent_name: Optional[str] = None
    total_calls: int = 0
    total_duration_minutes: float = 0
    avg_duration_seconds: float = 0
    avg_agent_talk_percentage: float = 0
    avg_customer_talk_percentage: float = 0
    avg_turns_per_call: float = 0
    inbound_calls: int = 0
    outbound_calls: int = 0


class AgentDailyCalls(BaseModel):
    """Per-day row from the ``get_agent_daily_calls`` RPC."""

    call_date: str
    call_count: int = 0
    total_duration_minutes: float = 0
    avg_duration_seconds: float = 0


class TeamSummary(BaseModel):
    """Department aggregate from the ``get_team_summary`` RPC."""

    department: Optional[str] = None
    total_agents: int = 0
    total_calls: int = 0
    total_duration_minutes: float = 0
    avg_calls_per_agent: float = 0
    avg_duration_seconds: float = 0
    avg_agent_talk_percentage: float = 0
    top_performer_name: Optional[str] = None
    top_performer_calls: Optional[int] = None


class SearchResult(BaseModel):
    """Transcript chunk hit from semantic or text search."""

    call_id: str
    agent_user_id: Optional[str] = None
    agent_name: Optional[str] = None
    call_date: Optional[str] = None
    chunk_text: str = ""
    similarity: Optional[float] = Field(
        default=None, description="Cosine similarity, absent for text matches"
    )
    start_timestamp: Optional[str] = None
    end_timestamp: Optional[str] = None
