"""End-to-end tests for the agent overview dashboard endpoint."""

import pytest

from src.main import app
from src.middleware.auth import get_current_user, get_repository
from src.services.dashboard_service import NO_OVERVIEW_DATA_MESSAGE

URL = "/api/v1/dashboard/agents/{agent_id}/overview"


@pytest.fixture
def dashboard_client(test_client, mock_repository, mock_logfire):
    app.dependency_overrides[get_repository] = lambda: mock_repository
    return test_client


def _sign_in(caller):
    app.dependency_overrides[get_current_user] = lambda: caller


class TestDashboardAccess:
    """Scope checks on the overview endpoint."""

    def test_agent_cannot_view_other_agent(self, dashboard_client, agent_caller):
        _sign_in(agent_caller)

        response = dashboard_client.get(URL.format(agent_id="agent-2"))

        assert response.status_code == 403
        assert response.json()["detail"]["message"] == "You can only access your own data."

    def test_manager_cannot_view_other_team(self, dashboard_client, manager_caller):
        _sign_in(manager_caller)

        response = dashboard_client.get(URL.format(agent_id="agent-4"))

        assert response.status_code == 403
        assert "not in your team" in response.json()["detail"]["message"]

    def test_admin_can_view_anyone(self, dashboard_client, admin_caller, mock_repository):
        _sign_in(admin_caller)
        mock_repository.get_agent_overview_metrics.return_value = {
            "summary": {"total_calls": 3}
        }

        response = dashboard_client.get(URL.format(agent_id="agent-4"))

        assert response.status_code == 200
        assert response.json()["data"]["summary"]["total_calls"] == 3

    def test_path_agent_wins_over_query_agent(
        self, dashboard_client, manager_caller, mock_repository
    ):
        _sign_in(manager_caller)

        response = dashboard_client.get(
            URL.format(agent_id="agent-4"), params={"agent_user_id": "agent-1"}
        )

        assert response.status_code == 403
        mock_repository.get_agent_overview_metrics.assert_not_awaited()


class TestDashboardPeriod:
    """Date window handling."""

    def test_bad_dates_are_400(self, dashboard_client, agent_caller):
        _sign_in(agent_caller)

        response = dashboard_client.get(
            URL.format(agent_id="agent-1"),
            params={"start_date": "2025-13-01", "end_date": "2025-01-31"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Invalid date format. Use YYYY-MM-DD"

    def test_explicit_period_is_passed_through(
        self, dashboard_client, agent_caller, mock_repository
    ):
        _sign_in(agent_caller)

        dashboard_client.get(
            URL.format(agent_id="agent-1"),
            params={"start_date": "2025-01-01", "end_date": "2025-01-31"},
        )

        mock_repository.get_agent_overview_metrics.assert_awaited_once_with(
            "agent-1", "2025-01-01", "2025-01-31"
        )


class TestDashboardData:
    """Overview payloads."""

    def test_no_data(self, dashboard_client, agent_caller):
        _sign_in(agent_caller)

        response = dashboard_client.get(URL.format(agent_id="agent-1"))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": None,
            "message": NO_OVERVIEW_DATA_MESSAGE,
        }

    def test_overview_with_enrichment(self, dashboard_client, agent_caller, mock_repository):
        _sign_in(agent_caller)
        mock_repository.get_agent_overview_metrics.return_value = {
            "summary": {"total_calls": 8, "avg_talk_ratio": 52.5}
        }
        mock_repository.get_goals_progress.return_value = [
            {"id": "goal-1", "goal_type": "calls", "target_value": 40, "actual_value": 8}
        ]

        data = dashboard_client.get(URL.format(agent_id="agent-1")).json()["data"]

        assert data["agent_user_id"] == "agent-1"
        assert data["summary"]["avg_talk_ratio"] == 52.5
        assert data["goals"][0]["goal_type"] == "calls"
        assert data["objections"]["top_objections"] == []

    def test_metrics_failure_is_500_without_details(
        self, dashboard_client, agent_caller, mock_repository
    ):
        _sign_in(agent_caller)
        mock_repository.get_agent_overview_metrics.side_effect = RuntimeError(
            "password=hunter2 connection refused"
        )

        response = dashboard_client.get(URL.format(agent_id="agent-1"))

        assert response.status_code == 500
        assert "hunter2" not in response.text
