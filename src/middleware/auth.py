"""FastAPI dependencies for authentication and per-request collaborators."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.db.repository import CoachingRepository
from src.models.auth_models import CallerIdentity
from src.services.auth_service import AuthService
from src.services.chat.errors import AuthenticationError

_bearer = HTTPBearer(auto_error=False)


def get_repository(request: Request) -> CoachingRepository:
    """Repository bound to the Supabase client created at startup."""
    return CoachingRepository(request.app.state.supabase)


def get_auth_service(request: Request) -> AuthService:
    return AuthService(request.app.state.supabase)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    auth_service: AuthService = Depends(get_auth_service),
) -> CallerIdentity:
    """Verified caller identity; 401 when the bearer token is missing or invalid."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"success": False, "error": "Unauthorized", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await auth_service.authenticate(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "success": False,
                "error": "Unauthorized",
                "message": e.user_message or "Invalid or expired token",
            },
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
