"""TEAM_SUMMARY: department-level aggregate within the caller's scope.

Admins and floor-wide requests get the whole department. Team-scoped
managers get aggregates over their own team only. Agents never see team
aggregates.
"""

from src.models.chat_models import HandlerParams, HandlerResult
from src.services.chat.errors import ErrorMessages, PermissionDeniedError
from src.services.chat.handlers.base import HandlerDeps, fail_from, resolve_date_range
from src.services.scope_resolver import describe_scope


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    try:
        scope = params.data_scope
        caller = params.caller
        if not caller.is_admin:
            if caller.role == "agent":
                raise PermissionDeniedError(
                    "Agents cannot view team summaries",
                    user_message=ErrorMessages.scope_limited(caller.role),
                )
            if scope.is_empty:
                raise PermissionDeniedError(
                    "Empty data access scope",
                    user_message=ErrorMessages.access_denied(),
                )

        start_date, end_date = resolve_date_range(params)
        department = params.department or deps.settings.default_department

        team_id = None
        agent_ids = None
        if not (caller.is_admin or scope.is_floor_wide):
            team_id = scope.team_id
            agent_ids = sorted(scope.allowed_agent_ids)

        base = {
            "type": "team_summary",
            "department": department,
            "start_date": start_date,
            "end_date": end_date,
            "is_floor_wide": scope.is_floor_wide,
            "team_name": scope.team_name,
            "scope_description": describe_scope(scope),
        }

        summary = await deps.repository.get_team_summary(
            department, start_date, end_date, team_id=team_id, agent_ids=agent_ids
        )
        if summary is None:
            return HandlerResult.ok(
                {
                    **base,
                    "summary": None,
                    "message": ErrorMessages.no_team_data(department, start_date, end_date),
                }
            )

        return HandlerResult.ok({**base, "summary": summary.model_dump()})
    except Exception as e:
        return fail_from(e, "fetch team summary")
