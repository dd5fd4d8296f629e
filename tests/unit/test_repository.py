"""Tests for the Supabase repository."""

import pytest

from src.db.repository import CoachingRepository
from src.models.coaching_models import RecordObjectionInput


@pytest.fixture
def repo(mock_supabase_client, mock_logfire):
    return CoachingRepository(mock_supabase_client)


@pytest.fixture
def rpc_returns(mock_supabase_client, query_builder):
    """Make the next ``client.rpc(...).execute()`` return ``data``."""

    def _set(data):
        builder = query_builder(data)
        mock_supabase_client.rpc.return_value = builder
        return builder

    return _set


@pytest.fixture
def table_returns(mock_supabase_client, query_builder):
    """Make ``client.table(...)`` queries return ``data``."""

    def _set(data):
        builder = query_builder(data)
        mock_supabase_client.table.return_value = builder
        return builder

    return _set


class TestRoster:
    """Test get_agent_roster()."""

    @pytest.mark.asyncio
    async def test_builds_roster_from_profiles_and_teams(
        self, repo, mock_supabase_client, query_builder
    ):
        profiles = query_builder(
            [
                {"agent_user_id": "agent-1", "team_id": "team-a"},
                {"agent_user_id": "agent-2", "team_id": "team-a"},
                {"agent_user_id": "agent-3", "team_id": None},
                {"agent_user_id": "agent-1", "team_id": "team-a"},
            ]
        )
        teams = query_builder([{"id": "team-a", "name": "Alpha"}])
        mock_supabase_client.table.side_effect = lambda name: (
            profiles if name == "user_profiles" else teams
        )

        roster = await repo.get_agent_roster()

        assert roster.all_agent_ids == ("agent-1", "agent-2", "agent-3")
        assert roster.team_members == {"team-a": ("agent-1", "agent-2")}
        assert roster.team_names == {"team-a": "Alpha"}


class TestAgents:
    """Test agent lookups."""

    @pytest.mark.asyncio
    async def test_get_agent_by_id(self, repo, mock_supabase_client, table_returns):
        builder = table_returns([{"agent_user_id": "agent-1", "first_name": "Sarah"}])

        agent = await repo.get_agent_by_id("agent-1")

        assert agent.first_name == "Sarah"
        mock_supabase_client.table.assert_called_with("agents")
        builder.eq.assert_called_with("agent_user_id", "agent-1")

    @pytest.mark.asyncio
    async def test_get_agent_by_id_missing(self, repo):
        assert await repo.get_agent_by_id("nobody") is None

    @pytest.mark.asyncio
    async def test_list_agents_restricted_to_ids(self, repo, table_returns):
        builder = table_returns([{"agent_user_id": "agent-1", "first_name": "Sarah"}])

        agents = await repo.list_agents(["agent-1"])

        assert [a.first_name for a in agents] == ["Sarah"]
        builder.eq.assert_called_with("active", True)
        builder.in_.assert_called_with("agent_user_id", ["agent-1"])

    @pytest.mark.asyncio
    async def test_names_by_ids_skips_query_for_empty(self, repo, mock_supabase_client):
        assert await repo.get_agent_names_by_ids([]) == {}
        mock_supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolve_agent_name_rpc(self, repo, mock_supabase_client, rpc_returns):
        rpc_returns(
            [{"agent_user_id": "agent-1", "first_name": "Sarah", "similarity_score": 0.9}]
        )

        matches = await repo.resolve_agent_name("Sara")

        assert matches[0].agent_user_id == "agent-1"
        mock_supabase_client.rpc.assert_called_once_with(
            "resolve_agent_name", {"p_name": "Sara"}
        )


class TestCalls:
    """Test call queries."""

    @pytest.mark.asyncio
    async def test_get_agent_calls_params(self, repo, mock_supabase_client, rpc_returns):
        rpc_returns([{"call_id": "call-1", "agent_user_id": "agent-1"}])

        calls = await repo.get_agent_calls("agent-1", "2025-01-01", "2025-01-31", 50)

        assert calls[0].call_id == "call-1"
        mock_supabase_client.rpc.assert_called_once_with(
            "get_agent_calls",
            {
                "p_agent_user_id": "agent-1",
                "p_start_date": "2025-01-01",
                "p_end_date": "2025-01-31",
                "p_limit": 50,
            },
        )

    @pytest.mark.asyncio
    async def test_recent_calls_empty_scope(self, repo, mock_supabase_client):
        assert await repo.get_recent_calls([], "2025-01-01", "2025-01-31", 10) == []
        mock_supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_recent_calls_filters_by_ids(self, repo, table_returns):
        builder = table_returns([{"call_id": "call-9", "agent_user_id": "agent-2"}])

        calls = await repo.get_recent_calls(["agent-2"], "2025-01-01", "2025-01-31", 10)

        assert calls[0].call_id == "call-9"
        builder.in_.assert_called_with("agent_user_id", ["agent-2"])
        builder.order.assert_called_with("call_datetime", desc=True)

    @pytest.mark.asyncio
    async def test_performance_accepts_single_object(self, repo, rpc_returns):
        rpc_returns({"agent_user_id": "agent-1", "total_calls": 7})

        performance = await repo.get_agent_performance("agent-1", "2025-01-01", "2025-01-31")

        assert performance.total_calls == 7

    @pytest.mark.asyncio
    async def test_performance_missing(self, repo, rpc_returns):
        rpc_returns([])

        assert await repo.get_agent_performance("agent-1", "a", "b") is None

    @pytest.mark.asyncio
    async def test_team_summary_team_filter(self, repo, mock_supabase_client, rpc_returns):
        rpc_returns([{"department": "Agent", "total_agents": 2, "top_performer_name": "Sarah"}])

        summary = await repo.get_team_summary(
            "Agent",
            "2025-01-01",
            "2025-01-31",
            team_id="team-a",
            agent_ids=["agent-1", "agent-2"],
        )

        assert summary.total_agents == 2
        name, params = mock_supabase_client.rpc.call_args[0]
        assert name == "get_team_summary"
        assert params["p_team_id"] == "team-a"
        assert params["p_agent_ids"] == ["agent-1", "agent-2"]

    @pytest.mark.asyncio
    async def test_team_summary_unfiltered_by_default(
        self, repo, mock_supabase_client, rpc_returns
    ):
        rpc_returns([])

        assert await repo.get_team_summary("Agent", "a", "b") is None
        params = mock_supabase_client.rpc.call_args[0][1]
        assert params["p_team_id"] is None
        assert params["p_agent_ids"] is None

    @pytest.mark.asyncio
    async def test_rpc_errors_propagate(self, repo, rpc_returns, mock_logfire):
        builder = rpc_returns(None)
        builder.execute.side_effect = RuntimeError("function does not exist")

        with pytest.raises(RuntimeError):
            await repo.get_team_summary("Agent", "a", "b")

        assert mock_logfire.error.call_args[1]["operation"] == "get_team_summary"


class TestSearch:
    """Test semantic and text search."""

    @pytest.mark.asyncio
    async def test_semantic_search_params(self, repo, mock_supabase_client, rpc_returns):
        rpc_returns(
            [{"call_id": "c1", "agent_user_id": "agent-1", "chunk_text": "price", "similarity": 0.8}]
        )

        results = await repo.semantic_search_calls(
            [0.1, 0.2], agent_ids=["agent-1"], limit=5, similarity_threshold=0.5
        )

        assert results[0].similarity == 0.8
        name, params = mock_supabase_client.rpc.call_args[0]
        assert name == "semantic_search_calls"
        assert params["query_embedding"] == [0.1, 0.2]
        assert params["similarity_threshold"] == 0.5
        assert params["p_agent_ids"] == ["agent-1"]
        assert params["p_agent_user_id"] is None

    @pytest.mark.asyncio
    async def test_text_search_maps_rows(self, repo, table_returns):
        builder = table_returns(
            [
                {
                    "call_id": "c2",
                    "agent_user_id": "agent-2",
                    "chunk_text": "too expensive",
                    "start_timestamp_formatted": "1:05",
                }
            ]
        )

        results = await repo.text_search_calls(
            "expensive", agent_user_id="agent-2", start_date="2025-01-01", limit=5
        )

        assert results[0].similarity is None
        assert results[0].start_timestamp == "1:05"
        builder.ilike.assert_called_with("chunk_text", "%expensive%")
        builder.eq.assert_called_with("agent_user_id", "agent-2")
        builder.lte.assert_not_called()
        builder.in_.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_search_limited_to_agent_ids(self, repo, table_returns):
        builder = table_returns([])

        await repo.text_search_calls("warranty", agent_ids=["agent-1", "agent-2"], limit=5)

        builder.in_.assert_called_once_with("agent_user_id", ["agent-1", "agent-2"])
        builder.eq.assert_not_called()


class TestObjections:
    """Test objection RPCs."""

    @pytest.mark.asyncio
    async def test_record_objection_params(self, repo, mock_supabase_client, rpc_returns):
        rpc_returns([{"id": "obj-1"}])
        objection = RecordObjectionInput(
            agent_user_id="agent-1",
            call_id="call-1",
            objection_type="price",
            response_quality=4,
            was_resolved=True,
        )

        row = await repo.record_objection(objection)

        assert row == {"id": "obj-1"}
        name, params = mock_supabase_client.rpc.call_args[0]
        assert name == "record_objection"
        assert params["p_objection_type"] == "price"
        assert params["p_was_resolved"] is True

    @pytest.mark.asyncio
    async def test_weak_areas_defaults(self, repo, mock_supabase_client, rpc_returns):
        rpc_returns([{"objection_type": "price", "avg_score": 2.1}])

        areas = await repo.get_agent_weak_areas("agent-1")

        assert areas[0].objection_type == "price"
        params = mock_supabase_client.rpc.call_args[0][1]
        assert params["p_min_occurrences"] == 2
        assert params["p_limit"] == 3

    @pytest.mark.asyncio
    async def test_objection_summary_defaults_to_empty(self, repo, rpc_returns):
        rpc_returns(None)

        assert await repo.get_objection_summary("agent-1", None, "a", "b") == {}


@pytest.mark.asyncio
async def test_user_profile_lookup(repo, mock_supabase_client, table_returns):
    table_returns([{"id": "user-1", "role": "manager"}])

    profile = await repo.get_user_profile("user-1")

    assert profile == {"id": "user-1", "role": "manager"}
    mock_supabase_client.table.assert_called_with("user_profiles")
