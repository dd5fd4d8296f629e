"""Chat endpoint.

Security layers (in order):
1. Authentication - bearer token resolved to a caller identity
2. Input validation - message must be non-blank and within length limits
3. Rate limiting - per-caller sliding window

Everything past validation is delegated to the ChatOrchestrator, which
always answers with a ChatResponse; pipeline failures are reported in the
body with ``success=false`` and HTTP 200.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from src.config import Settings, get_settings
from src.db.repository import CoachingRepository
from src.middleware.auth import get_current_user, get_repository
from src.middleware.rate_limiter import ChatRateLimiter, get_rate_limiter
from src.models.auth_models import CallerIdentity
from src.models.chat_models import ChatRequest, ChatResponse
from src.services.chat.orchestrator import ChatOrchestrator, get_chat_orchestrator
from src.services.input_sanitizer import validate_message

logger = logging.getLogger(__name__)
router = APIRouter()


def get_orchestrator(
    repository: CoachingRepository = Depends(get_repository),
) -> ChatOrchestrator:
    return get_chat_orchestrator(repository)


def _bad_request(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"success": False, "error": error, "message": message},
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: dict[str, Any] = Body(...),
    caller: CallerIdentity = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
    limiter: ChatRateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
) -> ChatResponse:
    """Answer one chat message for the authenticated caller."""
    raw_message = payload.get("message")
    validation = validate_message(
        raw_message if isinstance(raw_message, str) else None,
        settings.max_message_length,
    )
    if not validation.is_valid:
        logger.info(f"Rejected chat message from {caller.id}: {validation.error_code}")
        raise _bad_request(validation.error_code or "invalid_message", validation.error_message or "")

    try:
        request = ChatRequest.model_validate(payload)
    except ValidationError as e:
        raise _bad_request("invalid_request", "Request body is invalid") from e

    if not limiter.allow(caller.id):
        retry_after = max(1, round(limiter.retry_after(caller.id)))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "success": False,
                "error": "rate_limited",
                "message": "Too many messages. Please wait a moment before trying again.",
            },
            headers={"Retry-After": str(retry_after)},
        )

    return await orchestrator.process(request.message, caller, request.context)
