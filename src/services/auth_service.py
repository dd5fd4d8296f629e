"""Turn a Supabase access token into a verified caller identity."""

import logging

import logfire
from supabase import AsyncClient

from src.db.repository import CoachingRepository
from src.logging_config import mask_pii
from src.models.auth_models import CallerIdentity
from src.services.chat.errors import AuthenticationError

logger = logging.getLogger(__name__)


def identity_from_profile(profile: dict, email: str | None = None) -> CallerIdentity:
    """Build a caller identity from a ``user_profiles`` row."""
    return CallerIdentity(
        id=str(profile["id"]),
        email=profile.get("email") or email or "",
        role=(profile.get("role") or "").strip().lower(),
        team_id=profile.get("team_id"),
        linked_agent_id=profile.get("agent_user_id"),
        first_name=profile.get("first_name"),
        last_name=profile.get("last_name"),
        is_active=profile.get("is_active", True) is not False,
    )


class AuthService:
    """Verifies bearer tokens against Supabase Auth and loads the user's profile."""

    def __init__(self, client: AsyncClient, repository: CoachingRepository | None = None):
        self._client = client
        self._repository = repository or CoachingRepository(client)

    async def authenticate(self, token: str) -> CallerIdentity:
        """
        Verify a token and return the caller identity.

        Raises:
            AuthenticationError: Token invalid, profile missing, or user inactive
        """
        if not token:
            raise AuthenticationError("Missing bearer token", user_message="Not authenticated")

        try:
            response = await self._client.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError(
                f"Token verification failed: {e}",
                user_message="Invalid or expired token",
            ) from e

        user = getattr(response, "user", None)
        if user is None:
            raise AuthenticationError(
                "Token did not resolve to a user",
                user_message="Invalid or expired token",
            )

        profile = await self._repository.get_user_profile(user.id)
        if not profile:
            logfire.warning("No profile for authenticated user", user_id=user.id)
            raise AuthenticationError(
                f"No profile for user {user.id}",
                user_message="User profile not found",
            )

        identity = identity_from_profile(profile, email=getattr(user, "email", None))
        if not identity.is_active:
            raise AuthenticationError(
                f"User {user.id} is inactive",
                user_message="User account is inactive",
            )

        logfire.info(
            "Caller authenticated",
            user_id=identity.id,
            email=mask_pii(identity.email),
            role=identity.role,
        )
        return identity
