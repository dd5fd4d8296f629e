"""Resolve agent names from chat messages to agent ids."""

from typing import Iterable

import logfire

from src.db.repository import CoachingRepository
from src.models.call_models import ResolvedAgent


def rank_matches(matches: Iterable[ResolvedAgent]) -> list[ResolvedAgent]:
    """Order matches by similarity (desc), then first name, then id."""
    return sorted(
        matches,
        key=lambda m: (-m.similarity_score, m.first_name.lower(), m.agent_user_id),
    )


class AgentResolver:
    """
    Fuzzy agent name resolution.

    Lookups never raise: repository failures are logged and treated as
    "no match" so callers can answer with a not-found message.
    """

    def __init__(self, repository: CoachingRepository):
        self._repository = repository

    async def resolve_matches(self, name: str | None) -> list[ResolvedAgent]:
        if not name or not name.strip():
            return []
        try:
            matches = await self._repository.resolve_agent_name(name.strip())
        except Exception as e:
            logfire.warning(
                "Agent name lookup failed",
                name=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []
        return rank_matches(matches)

    async def resolve_by_name(self, name: str | None) -> ResolvedAgent | None:
        matches = await self.resolve_matches(name)
        return matches[0] if matches else None

    async def resolve_by_name_scoped(
        self, name: str | None, allowed_ids: Iterable[str]
    ) -> ResolvedAgent | None:
        """Best match among agents the caller may access."""
        allowed = set(allowed_ids)
        if not allowed:
            return None
        for match in await self.resolve_matches(name):
            if match.agent_user_id in allowed:
                return match
        return None

    async def suggest_names(
        self, allowed_ids: Iterable[str], limit: int = 5
    ) -> list[str]:
        """First names of accessible agents, for "did you mean" replies."""
        allowed = list(allowed_ids)
        if not allowed:
            return []
        try:
            names = await self._repository.get_agent_names_by_ids(allowed)
        except Exception as e:
            logfire.warning(
                "Agent name suggestions failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return []
        return sorted(set(names.values()))[:limit]
