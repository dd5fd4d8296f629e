"""Tests for bearer token authentication."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.db.repository import CoachingRepository
from src.services.auth_service import AuthService, identity_from_profile
from src.services.chat.errors import AuthenticationError

PROFILE = {
    "id": "user-1",
    "email": "manager@example.com",
    "role": " Manager ",
    "team_id": "team-a",
    "agent_user_id": None,
    "first_name": "Pat",
    "is_active": True,
}


@pytest.fixture
def repository():
    repo = MagicMock(spec=CoachingRepository)
    repo.get_user_profile = AsyncMock(return_value=dict(PROFILE))
    return repo


@pytest.fixture
def auth_service(mock_supabase_client, repository):
    mock_supabase_client.auth.get_user.return_value = MagicMock(
        user=MagicMock(id="user-1", email="auth@example.com")
    )
    with patch("src.services.auth_service.logfire"):
        yield AuthService(mock_supabase_client, repository)


class TestIdentityFromProfile:
    """Test identity_from_profile()."""

    def test_role_is_normalized(self):
        identity = identity_from_profile(PROFILE)

        assert identity.role == "manager"
        assert identity.team_id == "team-a"
        assert identity.linked_agent_id is None

    def test_email_falls_back_to_auth_user(self):
        identity = identity_from_profile({"id": "user-2", "role": "agent"}, email="a@b.co")

        assert identity.email == "a@b.co"
        assert identity.is_active is True

    def test_explicit_inactive(self):
        identity = identity_from_profile({"id": 7, "role": "agent", "is_active": False})

        assert identity.id == "7"
        assert identity.is_active is False


class TestAuthenticate:
    """Test AuthService.authenticate()."""

    @pytest.mark.asyncio
    async def test_valid_token(self, auth_service, mock_supabase_client, repository):
        identity = await auth_service.authenticate("token-abc")

        assert identity.id == "user-1"
        assert identity.role == "manager"
        mock_supabase_client.auth.get_user.assert_awaited_once_with("token-abc")
        repository.get_user_profile.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_missing_token(self, auth_service, mock_supabase_client):
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate("")

        assert exc_info.value.user_message == "Not authenticated"
        mock_supabase_client.auth.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_token(self, auth_service, mock_supabase_client):
        mock_supabase_client.auth.get_user.side_effect = Exception("JWT expired")

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate("expired")

        assert exc_info.value.user_message == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_token_without_user(self, auth_service, mock_supabase_client):
        mock_supabase_client.auth.get_user.return_value = MagicMock(user=None)

        with pytest.raises(AuthenticationError):
            await auth_service.authenticate("token-abc")

    @pytest.mark.asyncio
    async def test_missing_profile(self, auth_service, repository):
        repository.get_user_profile.return_value = None

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate("token-abc")

        assert exc_info.value.user_message == "User profile not found"

    @pytest.mark.asyncio
    async def test_inactive_user(self, auth_service, repository):
        repository.get_user_profile.return_value = {**PROFILE, "is_active": False}

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate("token-abc")

        assert exc_info.value.user_message == "User account is inactive"
