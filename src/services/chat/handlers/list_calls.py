"""LIST_CALLS: recent calls for one agent or for everyone in scope."""

import logfire

from src.models.chat_models import HandlerParams, HandlerResult
from src.models.auth_models import UserRole
from src.services.chat.errors import ErrorMessages, PermissionDeniedError
from src.services.chat.handlers.base import (
    HandlerDeps,
    fail_from,
    resolve_date_range,
    resolve_target_agent,
)


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    try:
        scope = params.data_scope
        if scope.is_empty and not params.caller.is_admin:
            raise PermissionDeniedError(
                "Empty data access scope",
                user_message=ErrorMessages.access_denied(),
            )

        agent_id, agent_name = await resolve_target_agent(params, deps, required=False)

        # Agents asking for "my calls" get their own list
        if agent_id is None and params.caller.user_role is UserRole.AGENT:
            agent_id = params.caller.linked_agent_id
            agent_name = await _own_name(deps, agent_id)

        start_date, end_date = resolve_date_range(params)
        limit = params.limit or deps.settings.call_list_limit

        if agent_id is None:
            calls = await deps.repository.get_recent_calls(
                scope.allowed_agent_ids, start_date, end_date, limit
            )
            names = await deps.repository.get_agent_names_by_ids(
                {c.agent_user_id for c in calls if c.agent_user_id}
            )
            rows = []
            for call in calls:
                row = call.model_dump()
                row["agent_name"] = call.agent_name or names.get(call.agent_user_id or "")
                rows.append(row)
            logfire.info(
                "Listed calls for all agents in scope",
                call_count=len(rows),
                is_floor_wide=scope.is_floor_wide,
            )
            return HandlerResult.ok(
                {
                    "type": "call_list",
                    "agent_name": None,
                    "agent_user_id": None,
                    "start_date": start_date,
                    "end_date": end_date,
                    "call_count": len(rows),
                    "calls": rows,
                    "view_type": "all_agents",
                    "is_floor_wide": scope.is_floor_wide,
                    "team_name": scope.team_name,
                }
            )

        calls = await deps.repository.get_agent_calls(agent_id, start_date, end_date, limit)
        return HandlerResult.ok(
            {
                "type": "call_list",
                "agent_name": agent_name,
                "agent_user_id": agent_id,
                "start_date": start_date,
                "end_date": end_date,
                "call_count": len(calls),
                "calls": [c.model_dump() for c in calls],
            }
        )
    except Exception as e:
        return fail_from(e, "fetch calls")


async def _own_name(deps: HandlerDeps, agent_id: str | None) -> str | None:
    if not agent_id:
        return None
    agent = await deps.repository.get_agent_by_id(agent_id)
    return agent.first_name if agent else None
