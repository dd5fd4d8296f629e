"""Agent overview dashboard endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from src.db.repository import CoachingRepository
from src.middleware.auth import get_current_user, get_repository
from src.models.auth_models import CallerIdentity
from src.services.chat.errors import (
    InvalidRequestError,
    PermissionDeniedError,
    build_error_message,
)
from src.services.dashboard_service import (
    NO_OVERVIEW_DATA_MESSAGE,
    DashboardService,
    get_dashboard_service,
    parse_period,
)
from src.services.scope_resolver import (
    ScopeResolver,
    check_agent_access,
    extract_target_agent_id,
)

router = APIRouter()


def get_scope_resolver(
    repository: CoachingRepository = Depends(get_repository),
) -> ScopeResolver:
    return ScopeResolver(repository)


def get_dashboard(
    repository: CoachingRepository = Depends(get_repository),
) -> DashboardService:
    return get_dashboard_service(repository)


@router.get("/dashboard/agents/{agent_id}/overview")
async def get_agent_overview(
    request: Request,
    agent_id: str,
    start_date: str | None = Query(default=None, description="YYYY-MM-DD"),
    end_date: str | None = Query(default=None, description="YYYY-MM-DD"),
    caller: CallerIdentity = Depends(get_current_user),
    scope_resolver: ScopeResolver = Depends(get_scope_resolver),
    dashboard: DashboardService = Depends(get_dashboard),
):
    """Overview metrics, objections and goals for one agent in the caller's scope."""
    try:
        scope = await scope_resolver.build_scope(caller)
        target = extract_target_agent_id(request.path_params, request.query_params)
        check_agent_access(caller, scope, target)
    except PermissionDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"success": False, "error": "Forbidden", "message": e.user_message},
        ) from e

    try:
        period = parse_period(start_date, end_date)
    except InvalidRequestError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"success": False, "error": "Bad Request", "message": e.user_message},
        ) from e

    try:
        overview = await dashboard.get_agent_overview(agent_id, period)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "success": False,
                "error": "Internal Server Error",
                "message": build_error_message(e, "load the agent overview"),
            },
        ) from e

    if overview is None:
        return {"success": True, "data": None, "message": NO_OVERVIEW_DATA_MESSAGE}
    return {"success": True, "data": overview.model_dump()}
