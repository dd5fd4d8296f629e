"""Data access scope resolution.

Every request computes which agents the caller may see:

- admin: every known agent (always floor-wide)
- manager: agents on the manager's team, or every agent when the message
  explicitly asks for a floor-wide view
- agent: only the agent id linked to the caller's profile
- anything else: nobody

An empty scope denies all data access. There is no fallback to "all".
"""

import re
from typing import Any, Mapping

import logfire

from src.db.repository import CoachingRepository
from src.models.auth_models import (
    AgentRoster,
    CallerIdentity,
    DataAccessScope,
    UserRole,
)
from src.services.chat.errors import ErrorMessages, PermissionDeniedError

# Multi-word phrases only; a bare "everyone" is too common in normal questions.
_FLOOR_WIDE_PATTERNS = [
    r"\bfloor[\s-]?wide\b",
    r"\ball\s+(?:the\s+)?(?:agents?|teams?|reps?)\b",
    r"\bentire\s+(?:floor|company|org|organization)\b",
    r"\bcompany[\s-]?wide\b",
    r"\borganization[\s-]?wide\b",
    r"\bacross\s+all\s+teams?\b",
    r"\ball\s+of\s+(?:the\s+)?sales\b",
    r"\beveryone\s+on\s+the\s+floor\b",
]
_FLOOR_WIDE_RE = re.compile("|".join(_FLOOR_WIDE_PATTERNS), re.IGNORECASE)


def detect_floor_wide_intent(text: str | None) -> bool:
    """Check whether a message explicitly asks for a floor-wide view."""
    if not text:
        return False
    return _FLOOR_WIDE_RE.search(text) is not None


def resolve_scope(
    identity: CallerIdentity,
    floor_wide_requested: bool,
    roster: AgentRoster,
) -> DataAccessScope:
    """
    Compute the data access scope for a caller.

    Pure function of its inputs; calling it twice with the same inputs
    returns equal scopes.
    """
    role = identity.user_role

    if role is UserRole.ADMIN:
        return DataAccessScope(
            allowed_agent_ids=frozenset(roster.all_agent_ids),
            is_floor_wide=True,
        )

    if role is UserRole.MANAGER:
        if floor_wide_requested:
            return DataAccessScope(
                allowed_agent_ids=frozenset(roster.all_agent_ids),
                is_floor_wide=True,
                team_id=identity.team_id,
                team_name=roster.team_names.get(identity.team_id or ""),
            )
        if not identity.team_id:
            return DataAccessScope()
        return DataAccessScope(
            allowed_agent_ids=frozenset(roster.team_members.get(identity.team_id, ())),
            is_team_scope=True,
            team_id=identity.team_id,
            team_name=roster.team_names.get(identity.team_id),
        )

    if role is UserRole.AGENT:
        if not identity.linked_agent_id:
            return DataAccessScope()
        return DataAccessScope(allowed_agent_ids=frozenset({identity.linked_agent_id}))

    return DataAccessScope()


class ScopeResolver:
    """Builds per-request scopes from the live roster."""

    def __init__(self, repository: CoachingRepository):
        self._repository = repository

    async def build_scope(
        self, identity: CallerIdentity, query_text: str | None = None
    ) -> DataAccessScope:
        floor_wide = detect_floor_wide_intent(query_text)
        roster = await self._repository.get_agent_roster()
        scope = resolve_scope(identity, floor_wide, roster)
        logfire.info(
            "Data access scope resolved",
            user_id=identity.id,
            role=identity.role,
            floor_wide_requested=floor_wide,
            is_floor_wide=scope.is_floor_wide,
            allowed_count=len(scope.allowed_agent_ids),
        )
        return scope


def extract_target_agent_id(
    path_params: Mapping[str, Any] | None = None,
    query_params: Mapping[str, Any] | None = None,
    body: Mapping[str, Any] | None = None,
) -> str | None:
    """
    Find the agent a request targets.

    Precedence: path ``agent_id`` / ``agent_user_id``, then query
    ``agent_user_id``, then body ``agent_user_id``.
    """
    path_params = path_params or {}
    for key in ("agent_id", "agent_user_id"):
        if path_params.get(key):
            return str(path_params[key])
    if query_params and query_params.get("agent_user_id"):
        return str(query_params["agent_user_id"])
    if isinstance(body, Mapping) and body.get("agent_user_id"):
        return str(body["agent_user_id"])
    return None


def check_agent_access(
    identity: CallerIdentity,
    scope: DataAccessScope,
    target_agent_id: str | None,
) -> None:
    """
    Ensure the caller may access a specific agent's data.

    Requests without a target pass. Admins always pass.

    Raises:
        PermissionDeniedError: With a role-specific message when denied
    """
    if not target_agent_id or identity.is_admin:
        return
    if scope.allows(target_agent_id):
        return
    message = ErrorMessages.agent_outside_scope(identity.role)
    logfire.warning(
        "Agent access denied",
        user_id=identity.id,
        role=identity.role,
        target_agent_id=target_agent_id,
    )
    raise PermissionDeniedError(
        f"Agent {target_agent_id} outside scope of user {identity.id}",
        user_message=message,
    )


def describe_scope(scope: DataAccessScope) -> str:
    """Human-readable label for a scope."""
    if scope.is_floor_wide:
        return "floor-wide (all agents)"
    if scope.is_team_scope and scope.team_name:
        return f"{scope.team_name} team"
    if scope.is_empty:
        return "no accessible agents"
    if len(scope.allowed_agent_ids) == 1 and not scope.is_team_scope:
        return "your calls"
    return "accessible agents"
