"""Shared handler types and helpers.

Every handler has the same shape::

    async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult

and receives its collaborators explicitly through ``HandlerDeps``.
Helpers here raise ``CoachingError`` subclasses carrying user-safe text;
handlers turn them into failed results with ``fail_from``.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Awaitable, Callable

from src.config import Settings
from src.db.repository import CoachingRepository
from src.models.call_models import CallMetadata
from src.models.chat_models import HandlerParams, HandlerResult
from src.services.agent_resolver import AgentResolver
from src.services.chat.errors import (
    ErrorMessages,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
    build_error_message,
)
from src.services.embedding_service import EmbeddingService
from src.services.llm_service import LLMService
from src.services.scope_resolver import check_agent_access


@dataclass
class HandlerDeps:
    """Collaborators available to every handler."""

    repository: CoachingRepository
    llm: LLMService
    agent_resolver: AgentResolver
    embedder: EmbeddingService
    settings: Settings


Handler = Callable[[HandlerParams, str, HandlerDeps], Awaitable[HandlerResult]]


def fail_from(error: BaseException, operation: str) -> HandlerResult:
    """Failed result with user-safe text for any exception."""
    return HandlerResult.fail(build_error_message(error, operation))


def resolve_date_range(params: HandlerParams) -> tuple[str, str]:
    """Explicit start/end if both given, else the last ``days_back`` days."""
    if params.start_date and params.end_date:
        return params.start_date, params.end_date
    end = date.today()
    start = end - timedelta(days=params.days_back)
    return start.isoformat(), end.isoformat()


async def resolve_target_agent(
    params: HandlerParams,
    deps: HandlerDeps,
    *,
    required: bool,
) -> tuple[str | None, str | None]:
    """
    Work out which agent a request is about.

    Returns:
        (agent_id, agent_name), or (None, None) when no agent was given
        and ``required`` is False

    Raises:
        InvalidRequestError: No agent given but one is required
        NotFoundError: The name matches nobody
        PermissionDeniedError: The agent exists but is outside the scope
    """
    scope = params.data_scope
    caller = params.caller

    if params.agent_id:
        check_agent_access(caller, scope, params.agent_id)
        name = params.agent_name
        if not name:
            agent = await deps.repository.get_agent_by_id(params.agent_id)
            name = agent.first_name if agent else "Unknown"
        return params.agent_id, name

    if params.agent_name:
        match = await deps.agent_resolver.resolve_by_name_scoped(
            params.agent_name, scope.allowed_agent_ids
        )
        if match:
            return match.agent_user_id, match.first_name

        unscoped = await deps.agent_resolver.resolve_by_name(params.agent_name)
        if unscoped:
            if caller.is_admin:
                return unscoped.agent_user_id, unscoped.first_name
            check_agent_access(caller, scope, unscoped.agent_user_id)

        suggestions = await deps.agent_resolver.suggest_names(scope.allowed_agent_ids)
        raise NotFoundError(
            f"No agent matches name {params.agent_name!r}",
            user_message=ErrorMessages.agent_not_found(params.agent_name, suggestions),
        )

    if required:
        raise InvalidRequestError(
            "Agent is required", user_message=ErrorMessages.agent_required()
        )
    return None, None


async def require_call_access(
    call_id: str, params: HandlerParams, deps: HandlerDeps
) -> CallMetadata:
    """
    Load a call and make sure its agent is inside the caller's scope.

    Raises:
        NotFoundError: The call does not exist
        PermissionDeniedError: The call belongs to an agent outside the scope
    """
    call = await deps.repository.get_call_by_id(call_id)
    if call is None:
        raise NotFoundError(
            f"Call {call_id} not found",
            user_message=ErrorMessages.call_not_found(call_id),
        )
    if not call.agent_user_id and not params.caller.is_admin:
        raise PermissionDeniedError(
            f"Call {call_id} has no agent",
            user_message=ErrorMessages.access_denied(),
        )
    check_agent_access(params.caller, params.data_scope, call.agent_user_id)
    return call


async def agent_name_for(deps: HandlerDeps, agent_user_id: str | None) -> str:
    if not agent_user_id:
        return "Unknown"
    agent = await deps.repository.get_agent_by_id(agent_user_id)
    return agent.first_name if agent else "Unknown"
