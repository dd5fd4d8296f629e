"""Agent overview dashboard.

The overview metrics row gates the response; objection summary and goal
progress are fetched concurrently and tolerated individually.
"""

import asyncio
import calendar
from datetime import date

import logfire

from src.db.repository import CoachingRepository
from src.models.dashboard_models import (
    AgentOverview,
    DateRange,
    GoalProgress,
    ObjectionSummary,
)
from src.services.chat.errors import InvalidRequestError

NO_OVERVIEW_DATA_MESSAGE = "No data found for this agent in the specified date range."


def current_month(today: date | None = None) -> DateRange:
    """First to last day of the month containing ``today``."""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return DateRange(
        start_date=today.replace(day=1).isoformat(),
        end_date=today.replace(day=last_day).isoformat(),
    )


def parse_period(
    start_date: str | None, end_date: str | None, today: date | None = None
) -> DateRange:
    """
    Date window for an overview request.

    Both bounds must be given to override the default (current month).

    Raises:
        InvalidRequestError: A bound is not ``YYYY-MM-DD`` or start is after end
    """
    if not (start_date and end_date):
        return current_month(today)
    try:
        start = date.fromisoformat(start_date)
        end = date.fromisoformat(end_date)
    except ValueError as e:
        raise InvalidRequestError(
            f"Invalid date range {start_date!r}..{end_date!r}",
            user_message="Invalid date format. Use YYYY-MM-DD",
        ) from e
    if start > end:
        raise InvalidRequestError(
            f"Start {start_date} after end {end_date}",
            user_message="start_date must be on or before end_date",
        )
    return DateRange(start_date=start.isoformat(), end_date=end.isoformat())


class DashboardService:
    """Builds agent overview payloads."""

    def __init__(self, repository: CoachingRepository):
        self._repository = repository

    async def get_agent_overview(
        self, agent_user_id: str, period: DateRange
    ) -> AgentOverview | None:
        """
        Overview metrics plus objections and goals for one agent.

        Returns:
            AgentOverview, or None when the metrics RPC has no row for the window
        """
        with logfire.span("agent_overview", agent_user_id=agent_user_id):
            row = await self._repository.get_agent_overview_metrics(
                agent_user_id, period.start_date, period.end_date
            )
            if not row:
                logfire.info("No overview metrics", agent_user_id=agent_user_id)
                return None

            overview = AgentOverview.model_validate(
                {**row, "agent_user_id": agent_user_id, "period": period}
            )

            objections, goals = await asyncio.gather(
                self._repository.get_objection_summary(
                    agent_user_id, None, period.start_date, period.end_date
                ),
                self._repository.get_goals_progress(
                    agent_user_id, None, period.start_date, period.end_date
                ),
                return_exceptions=True,
            )

        if isinstance(objections, BaseException):
            logfire.warning(
                "Objection summary unavailable",
                agent_user_id=agent_user_id,
                error=str(objections),
            )
        else:
            overview.objections = ObjectionSummary.model_validate(objections or {})

        if isinstance(goals, BaseException):
            logfire.warning(
                "Goal progress unavailable",
                agent_user_id=agent_user_id,
                error=str(goals),
            )
        else:
            overview.goals = [GoalProgress.model_validate(g) for g in goals or []]

        return overview


def get_dashboard_service(repository: CoachingRepository) -> DashboardService:
    """Get dashboard service instance."""
    return DashboardService(repository)
