"""Supabase repository for agents, calls, transcripts and coaching data.

All reads go through one ``CoachingRepository`` built around the async
Supabase client stored on ``app.state``. Methods return typed rows and let
Supabase/PostgREST errors propagate; callers decide what is fatal.
"""

from typing import Any, Iterable

import logfire
from supabase import AsyncClient

from src.constants import OBJECTION_AREA_LIMIT, OBJECTION_AREA_MIN_OCCURRENCES
from src.db.query_executor import QueryTimer, timed_query
from src.models.auth_models import AgentRoster
from src.models.call_models import (
    Agent,
    AgentDailyCalls,
    AgentPerformance,
    CallMetadata,
    CallSummary,
    CallTranscript,
    CallTurn,
    ResolvedAgent,
    SearchResult,
    TeamSummary,
)
from src.models.coaching_models import (
    ObjectionArea,
    ObjectionStat,
    RecordObjectionInput,
)


def _first_row(data: Any) -> dict | None:
    """RPCs return either a row list or a single JSON object."""
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    if isinstance(data, dict):
        return data
    return None


def _rows(data: Any) -> list[dict]:
    if not data:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


class CoachingRepository:
    """Data access for the chat pipeline and dashboard."""

    def __init__(self, client: AsyncClient):
        self._client = client

    async def _rpc(self, name: str, params: dict[str, Any], /, **log_context: Any) -> Any:
        with timed_query(name, **log_context):
            result = await self._client.rpc(name, params).execute()
        return result.data

    # =========================================================================
    # Users, teams and roster
    # =========================================================================

    async def get_user_profile(self, user_id: str) -> dict | None:
        """Get the ``user_profiles`` row for an authenticated user."""
        with timed_query("get_user_profile", user_id=user_id):
            result = (
                await self._client.table("user_profiles")
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        return _first_row(result.data)

    async def get_agent_roster(self) -> AgentRoster:
        """
        Load every linked agent id and team membership.

        Agents are the ``agent_user_id`` values of user profiles that have
        one; team membership comes from the same profiles.
        """
        with timed_query("get_agent_roster"):
            profiles = (
                await self._client.table("user_profiles")
                .select("agent_user_id, team_id")
                .not_.is_("agent_user_id", "null")
                .execute()
            )
            teams = await self._client.table("teams").select("id, name").execute()

        all_ids: list[str] = []
        members: dict[str, list[str]] = {}
        for row in profiles.data or []:
            agent_id = row.get("agent_user_id")
            if not agent_id:
                continue
            if agent_id not in all_ids:
                all_ids.append(agent_id)
            team_id = row.get("team_id")
            if team_id:
                members.setdefault(team_id, [])
                if agent_id not in members[team_id]:
                    members[team_id].append(agent_id)

        team_names = {
            row["id"]: row.get("name") or ""
            for row in teams.data or []
            if row.get("id")
        }

        return AgentRoster(
            all_agent_ids=tuple(all_ids),
            team_members={k: tuple(v) for k, v in members.items()},
            team_names=team_names,
        )

    # =========================================================================
    # Agents
    # =========================================================================

    async def list_agents(self, agent_ids: Iterable[str] | None = None) -> list[Agent]:
        """List active agents ordered by first name, optionally restricted to ids."""
        query = self._client.table("agents").select("*").eq("active", True)
        if agent_ids is not None:
            query = query.in_("agent_user_id", list(agent_ids))
        with timed_query("list_agents"):
            result = await query.order("first_name").execute()
        return [Agent(**row) for row in result.data or []]

    async def get_agent_by_id(self, agent_user_id: str) -> Agent | None:
        with timed_query("get_agent_by_id", agent_user_id=agent_user_id):
            result = (
                await self._client.table("agents")
                .select("*")
                .eq("agent_user_id", agent_user_id)
                .limit(1)
                .execute()
            )
        row = _first_row(result.data)
        return Agent(**row) if row else None

    async def get_agent_names_by_ids(self, agent_ids: Iterable[str]) -> dict[str, str]:
        """Map agent ids to first names."""
        ids = list(agent_ids)
        if not ids:
            return {}
        with timed_query("get_agent_names_by_ids", id_count=len(ids)):
            result = (
                await self._client.table("agents")
                .select("agent_user_id, first_name")
                .in_("agent_user_id", ids)
                .execute()
            )
        return {
            row["agent_user_id"]: row.get("first_name") or "Unknown"
            for row in result.data or []
        }

    async def resolve_agent_name(self, name: str) -> list[ResolvedAgent]:
        """Fuzzy match an agent first name via the ``resolve_agent_name`` RPC."""
        data = await self._rpc("resolve_agent_name", {"p_name": name}, name=name)
        return [ResolvedAgent(**row) for row in _rows(data)]

    # =========================================================================
    # Calls
    # =========================================================================

    async def get_agent_calls(
        self,
        agent_user_id: str,
        start_date: str,
        end_date: str,
        limit: int,
    ) -> list[CallSummary]:
        data = await self._rpc(
            "get_agent_calls",
            {
                "p_agent_user_id": agent_user_id,
                "p_start_date": start_date,
                "p_end_date": end_date,
                "p_limit": limit,
            },
            agent_user_id=agent_user_id,
        )
        return [CallSummary(**row) for row in _rows(data)]

    async def get_recent_calls(
        self,
        agent_ids: Iterable[str],
        start_date: str,
        end_date: str,
        limit: int,
    ) -> list[CallSummary]:
        """Most recent calls across a set of agents."""
        ids = list(agent_ids)
        if not ids:
            return []
        with timed_query("get_recent_calls", agent_count=len(ids)):
            result = (
                await self._client.table("call_metadata")
                .select(
                    "call_id, agent_user_id, call_date, call_datetime, "
                    "total_duration_seconds, total_duration_formatted, "
                    "agent_talk_percentage, customer_talk_percentage, "
                    "total_turns, is_inbound_call"
                )
                .in_("agent_user_id", ids)
                .gte("call_date", start_date)
                .lte("call_date", end_date)
                .order("call_datetime", desc=True)
                .limit(limit)
                .execute()
            )
        return [CallSummary(**row) for row in result.data or []]

    async def get_agent_performance(
        self, agent_user_id: str, start_date: str, end_date: str
    ) -> AgentPerformance | None:
        data = await self._rpc(
            "get_agent_performance",
            {
                "p_agent_user_id": agent_user_id,
                "p_start_date": start_date,
                "p_end_date": end_date,
            },
            agent_user_id=agent_user_id,
        )
        row = _first_row(data)
        return AgentPerformance(**row) if row else None

    async def get_agent_daily_calls(
        self, agent_user_id: str, start_date: str, end_date: str
    ) -> list[AgentDailyCalls]:
        data = await self._rpc(
            "get_agent_daily_calls",
            {
                "p_agent_user_id": agent_user_id,
                "p_start_date": start_date,
                "p_end_date": end_date,
            },
            agent_user_id=agent_user_id,
        )
        return [AgentDailyCalls(**row) for row in _rows(data)]

    async def get_call_by_id(self, call_id: str) -> CallMetadata | None:
        with timed_query("get_call_by_id", call_id=call_id):
            result = (
                await self._client.table("call_metadata")
                .select("*")
                .eq("call_id", call_id)
                .limit(1)
                .execute()
            )
        row = _first_row(result.data)
        return CallMetadata(**row) if row else None

    async def get_team_summary(
        self,
        department: str,
        start_date: str,
        end_date: str,
        *,
        team_id: str | None = None,
        agent_ids: list[str] | None = None,
    ) -> TeamSummary | None:
        """
        Department aggregate, optionally narrowed to one team.

        With ``team_id`` or ``agent_ids`` set, the RPC only aggregates over
        that team's agents, including the top performer.
        """
        data = await self._rpc(
            "get_team_summary",
            {
                "p_department": department,
                "p_start_date": start_date,
                "p_end_date": end_date,
                "p_team_id": team_id,
                "p_agent_ids": agent_ids,
            },
            department=department,
            team_id=team_id,
        )
        row = _first_row(data)
        return TeamSummary(**row) if row else None

    # =========================================================================
    # Transcripts
    # =========================================================================

    async def get_call_transcript(self, call_id: str) -> CallTranscript | None:
        data = await self._rpc(
            "get_call_transcript", {"p_call_id": call_id}, call_id=call_id
        )
        row = _first_row(data)
        return CallTranscript(**row) if row else None

    async def get_call_turns(self, call_id: str) -> list[CallTurn]:
        with timed_query("get_call_turns", call_id=call_id):
            result = (
                await self._client.table("call_turns")
                .select("*")
                .eq("call_id", call_id)
                .order("turn_number")
                .execute()
            )
        return [CallTurn(**row) for row in result.data or []]

    # =========================================================================
    # Search
    # =========================================================================

    async def semantic_search_calls(
        self,
        query_embedding: list[float],
        *,
        agent_user_id: str | None = None,
        agent_ids: list[str] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        limit: int,
        similarity_threshold: float,
    ) -> list[SearchResult]:
        timer = QueryTimer(
            "semantic_search_calls",
            agent_user_id=agent_user_id,
            limit=limit,
            similarity_threshold=similarity_threshold,
        ).start()
        try:
            result = await self._client.rpc(
                "semantic_search_calls",
                {
                    "query_embedding": query_embedding,
                    "p_agent_user_id": agent_user_id,
                    "p_agent_ids": agent_ids,
                    "p_start_date": start_date,
                    "p_end_date": end_date,
                    "p_limit": limit,
                    "similarity_threshold": similarity_threshold,
                },
            ).execute()
        except Exception as e:
            timer.error(e)
            raise
        rows = _rows(result.data)
        timer.success(result_count=len(rows))
        return [SearchResult(**row) for row in rows]

    async def text_search_calls(
        self,
        search_text: str,
        *,
        agent_user_id: str | None = None,
        agent_ids: list[str] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        limit: int,
    ) -> list[SearchResult]:
        """Keyword search over transcript chunks (ILIKE)."""
        query = (
            self._client.table("call_transcript_chunks")
            .select(
                "call_id, agent_user_id, call_date, chunk_text, "
                "start_timestamp_formatted, end_timestamp_formatted"
            )
            .ilike("chunk_text", f"%{search_text}%")
        )
        if agent_user_id:
            query = query.eq("agent_user_id", agent_user_id)
        if agent_ids is not None:
            query = query.in_("agent_user_id", agent_ids)
        if start_date:
            query = query.gte("call_date", start_date)
        if end_date:
            query = query.lte("call_date", end_date)

        with timed_query("text_search_calls", agent_user_id=agent_user_id):
            result = await query.limit(limit).execute()

        return [
            SearchResult(
                call_id=row["call_id"],
                agent_user_id=row.get("agent_user_id"),
                call_date=row.get("call_date"),
                chunk_text=row.get("chunk_text") or "",
                similarity=None,
                start_timestamp=row.get("start_timestamp_formatted"),
                end_timestamp=row.get("end_timestamp_formatted"),
            )
            for row in result.data or []
        ]

    # =========================================================================
    # Objection stats
    # =========================================================================

    async def record_objection(self, objection: RecordObjectionInput) -> dict | None:
        data = await self._rpc(
            "record_objection",
            objection.to_rpc_params(),
            agent_user_id=objection.agent_user_id,
            call_id=objection.call_id,
        )
        return _first_row(data)

    async def get_agent_objection_stats(self, agent_user_id: str) -> list[ObjectionStat]:
        data = await self._rpc(
            "get_agent_objection_stats",
            {"p_agent_user_id": agent_user_id},
            agent_user_id=agent_user_id,
        )
        return [ObjectionStat(**row) for row in _rows(data)]

    async def get_agent_weak_areas(
        self,
        agent_user_id: str,
        min_occurrences: int = OBJECTION_AREA_MIN_OCCURRENCES,
        limit: int = OBJECTION_AREA_LIMIT,
    ) -> list[ObjectionArea]:
        data = await self._rpc(
            "get_agent_weak_areas",
            {
                "p_agent_user_id": agent_user_id,
                "p_min_occurrences": min_occurrences,
                "p_limit": limit,
            },
            agent_user_id=agent_user_id,
        )
        return [ObjectionArea(**row) for row in _rows(data)]

    async def get_agent_strong_areas(
        self,
        agent_user_id: str,
        min_occurrences: int = OBJECTION_AREA_MIN_OCCURRENCES,
        limit: int = OBJECTION_AREA_LIMIT,
    ) -> list[ObjectionArea]:
        data = await self._rpc(
            "get_agent_strong_areas",
            {
                "p_agent_user_id": agent_user_id,
                "p_min_occurrences": min_occurrences,
                "p_limit": limit,
            },
            agent_user_id=agent_user_id,
        )
        return [ObjectionArea(**row) for row in _rows(data)]

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def get_agent_overview_metrics(
        self, agent_user_id: str, start_date: str, end_date: str
    ) -> dict | None:
        data = await self._rpc(
            "get_agent_overview_metrics",
            {
                "p_agent_user_id": agent_user_id,
                "p_start_date": start_date,
                "p_end_date": end_date,
            },
            agent_user_id=agent_user_id,
        )
        return _first_row(data)

    async def get_objection_summary(
        self,
        agent_user_id: str | None,
        team_id: str | None,
        start_date: str,
        end_date: str,
    ) -> dict:
        data = await self._rpc(
            "get_objection_summary",
            {
                "p_agent_user_id": agent_user_id,
                "p_team_id": team_id,
                "p_start_date": start_date,
                "p_end_date": end_date,
            },
            agent_user_id=agent_user_id,
        )
        return _first_row(data) or {}

    async def get_goals_progress(
        self,
        agent_user_id: str | None,
        team_id: str | None,
        period_start: str,
        period_end: str,
    ) -> list[dict]:
        data = await self._rpc(
            "get_goals_progress",
            {
                "p_agent_user_id": agent_user_id,
                "p_team_id": team_id,
                "p_period_start": period_start,
                "p_period_end": period_end,
            },
            agent_user_id=agent_user_id,
        )
        rows = _rows(data)
        logfire.debug("Goals progress fetched", agent_user_id=agent_user_id, count=len(rows))
        return rows
