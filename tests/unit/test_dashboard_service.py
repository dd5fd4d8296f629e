"""Tests for the agent overview dashboard service."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.db.repository import CoachingRepository
from src.models.dashboard_models import DateRange
from src.services.chat.errors import InvalidRequestError
from src.services.dashboard_service import DashboardService, current_month, parse_period

PERIOD = DateRange(start_date="2025-02-01", end_date="2025-02-28")


@pytest.fixture
def repository():
    repo = MagicMock(spec=CoachingRepository)
    repo.get_agent_overview_metrics = AsyncMock(
        return_value={
            "summary": {"total_calls": 12, "avg_duration_seconds": None},
            "compliance": None,
            "team_comparison": {"team_avg_calls": 9.5},
        }
    )
    repo.get_objection_summary = AsyncMock(
        return_value={
            "top_objections": [{"objection_type": "price", "total_occurrences": 4}],
            "overall_stats": None,
        }
    )
    repo.get_goals_progress = AsyncMock(
        return_value=[{"id": "goal-1", "goal_type": "calls", "target_value": 100}]
    )
    return repo


class TestPeriods:
    """Test current_month() and parse_period()."""

    def test_current_month_handles_leap_year(self):
        period = current_month(date(2024, 2, 10))

        assert period.start_date == "2024-02-01"
        assert period.end_date == "2024-02-29"

    def test_missing_bound_uses_current_month(self):
        period = parse_period("2025-01-01", None, today=date(2025, 3, 15))

        assert period == DateRange(start_date="2025-03-01", end_date="2025-03-31")

    def test_explicit_range(self):
        period = parse_period("2025-01-05", "2025-01-20")

        assert period.start_date == "2025-01-05"
        assert period.end_date == "2025-01-20"

    def test_bad_format_raises(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_period("01/05/2025", "2025-01-20")

        assert exc_info.value.user_message == "Invalid date format. Use YYYY-MM-DD"

    def test_start_after_end_raises(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_period("2025-02-01", "2025-01-01")

        assert "before" in exc_info.value.user_message


class TestGetAgentOverview:
    """Test DashboardService.get_agent_overview()."""

    @pytest.mark.asyncio
    async def test_full_overview(self, repository, mock_logfire):
        overview = await DashboardService(repository).get_agent_overview("agent-1", PERIOD)

        assert overview.agent_user_id == "agent-1"
        assert overview.period == PERIOD
        assert overview.summary.total_calls == 12
        assert overview.summary.avg_duration_seconds == 0
        assert overview.compliance.total_analyzed == 0
        assert overview.team_comparison.team_avg_calls == 9.5
        assert overview.objections.top_objections[0].objection_type == "price"
        assert overview.objections.overall_stats.total_objections == 0
        assert overview.goals[0].id == "goal-1"
        repository.get_agent_overview_metrics.assert_awaited_once_with(
            "agent-1", "2025-02-01", "2025-02-28"
        )

    @pytest.mark.asyncio
    async def test_no_metrics_returns_none(self, repository, mock_logfire):
        repository.get_agent_overview_metrics.return_value = None

        assert await DashboardService(repository).get_agent_overview("agent-1", PERIOD) is None
        repository.get_objection_summary.assert_not_called()
        repository.get_goals_progress.assert_not_called()

    @pytest.mark.asyncio
    async def test_enrichment_failures_are_tolerated(self, repository, mock_logfire):
        repository.get_objection_summary.side_effect = RuntimeError("rpc missing")
        repository.get_goals_progress.side_effect = RuntimeError("timeout")

        overview = await DashboardService(repository).get_agent_overview("agent-1", PERIOD)

        assert overview.summary.total_calls == 12
        assert overview.objections is None
        assert overview.goals is None
        assert mock_logfire.warning.call_count == 2

    @pytest.mark.asyncio
    async def test_metrics_failure_propagates(self, repository, mock_logfire):
        repository.get_agent_overview_metrics.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await DashboardService(repository).get_agent_overview("agent-1", PERIOD)
