"""Tests for fuzzy agent name resolution."""

import pytest

from src.models.call_models import ResolvedAgent
from src.services.agent_resolver import AgentResolver, rank_matches


class TestRankMatches:
    """Test rank_matches() ordering."""

    def test_orders_by_similarity_then_name_then_id(self):
        matches = [
            ResolvedAgent(agent_user_id="b", first_name="Sam", similarity_score=0.9),
            ResolvedAgent(agent_user_id="a", first_name="Sam", similarity_score=0.9),
            ResolvedAgent(agent_user_id="c", first_name="alex", similarity_score=0.9),
            ResolvedAgent(agent_user_id="d", first_name="Zed", similarity_score=0.95),
        ]

        ranked = [m.agent_user_id for m in rank_matches(matches)]

        assert ranked == ["d", "c", "a", "b"]

    def test_order_is_independent_of_input_order(self):
        matches = [
            ResolvedAgent(agent_user_id=str(i), first_name="Jo", similarity_score=0.5)
            for i in range(5)
        ]

        assert rank_matches(matches) == rank_matches(list(reversed(matches)))


class TestAgentResolver:
    """Test AgentResolver lookups."""

    @pytest.mark.asyncio
    async def test_resolve_by_name_returns_best_match(self, mock_repository):
        resolver = AgentResolver(mock_repository)

        match = await resolver.resolve_by_name("Sarah")

        assert match.agent_user_id == "agent-1"

    @pytest.mark.asyncio
    async def test_blank_name_returns_none_without_lookup(self, mock_repository):
        resolver = AgentResolver(mock_repository)

        assert await resolver.resolve_by_name("   ") is None
        assert await resolver.resolve_by_name(None) is None
        mock_repository.resolve_agent_name.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scoped_skips_agents_outside_scope(self, mock_repository):
        resolver = AgentResolver(mock_repository)

        # "Sara" best-matches agent-3 (team B), but only team A is allowed
        match = await resolver.resolve_by_name_scoped("Sara", {"agent-1", "agent-2"})

        assert match.agent_user_id == "agent-1"

    @pytest.mark.asyncio
    async def test_scoped_with_empty_scope_returns_none(self, mock_repository):
        resolver = AgentResolver(mock_repository)

        assert await resolver.resolve_by_name_scoped("Sarah", set()) is None
        mock_repository.resolve_agent_name.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_repository_failure_is_no_match(self, mock_repository, mock_logfire):
        mock_repository.resolve_agent_name.side_effect = RuntimeError("db down")
        resolver = AgentResolver(mock_repository)

        assert await resolver.resolve_by_name("Sarah") is None
        mock_logfire.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_suggest_names_sorted_and_limited(self, mock_repository):
        resolver = AgentResolver(mock_repository)

        names = await resolver.suggest_names(
            ["agent-1", "agent-2", "agent-3", "agent-4"], limit=3
        )

        assert names == ["Dana", "Mike", "Sara"]

    @pytest.mark.asyncio
    async def test_suggest_names_empty_scope(self, mock_repository):
        assert await AgentResolver(mock_repository).suggest_names([]) == []
