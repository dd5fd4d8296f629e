"""Error taxonomy and user-safe error messages for the chat pipeline.

Raw exception text is logged, never returned. Handlers turn any exception
into a ``HandlerResult`` through ``build_error_message``.
"""

from enum import Enum

import logfire
from postgrest.exceptions import APIError
from pydantic import ValidationError
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION = "PERMISSION"
    UPSTREAM_SERVICE = "UPSTREAM_SERVICE"
    DATABASE = "DATABASE"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK = "NETWORK"
    UNKNOWN = "UNKNOWN"


# =============================================================================
# Exceptions
# =============================================================================


class CoachingError(Exception):
    """Base exception for the coaching service.

    ``user_message``, when set, is already safe to show to the caller.
    """

    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(message)
        self.user_message = user_message


class InvalidRequestError(CoachingError):
    """Raised when a required slot is missing or malformed."""

    category = ErrorCategory.VALIDATION


class NotFoundError(CoachingError):
    """Raised when a named agent or call does not exist."""

    category = ErrorCategory.NOT_FOUND


class PermissionDeniedError(CoachingError):
    """Raised when a target is outside the caller's data access scope."""

    category = ErrorCategory.PERMISSION


class AuthenticationError(CoachingError):
    """Raised when a bearer token cannot be turned into a caller identity."""

    category = ErrorCategory.PERMISSION


class LLMServiceError(CoachingError):
    """Raised when the LLM call fails or returns unusable output."""

    category = ErrorCategory.UPSTREAM_SERVICE


class AnalysisServiceError(LLMServiceError):
    """Raised when coaching or objection analysis cannot be produced."""


class EmbeddingServiceError(CoachingError):
    """Raised when a query embedding cannot be generated."""

    category = ErrorCategory.UPSTREAM_SERVICE


# =============================================================================
# Classification
# =============================================================================

_KEYWORDS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.RATE_LIMIT, ("rate limit", "quota", "too many requests")),
    (
        ErrorCategory.DATABASE,
        ("database", "supabase", "postgres", "relation", "column", "econnrefused"),
    ),
    (
        ErrorCategory.UPSTREAM_SERVICE,
        ("anthropic", "claude", "openai", "api key", "model", "embedding"),
    ),
    (
        ErrorCategory.PERMISSION,
        ("permission", "unauthorized", "forbidden", "access denied"),
    ),
    (
        ErrorCategory.NETWORK,
        ("network", "connection", "timeout", "enotfound", "socket"),
    ),
    (ErrorCategory.NOT_FOUND, ("not found", "does not exist", "no rows")),
    (ErrorCategory.VALIDATION, ("invalid", "required", "must be", "validation")),
]


def classify_error(error: BaseException) -> ErrorCategory:
    """Map an exception to a category: by type first, then by message keywords."""
    if isinstance(error, CoachingError):
        return error.category
    if isinstance(error, ModelHTTPError):
        if error.status_code == 429:
            return ErrorCategory.RATE_LIMIT
        return ErrorCategory.UPSTREAM_SERVICE
    if isinstance(error, AgentRunError):
        return ErrorCategory.UPSTREAM_SERVICE
    if isinstance(error, APIError):
        return ErrorCategory.DATABASE
    if isinstance(error, (TimeoutError, ConnectionError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValidationError):
        return ErrorCategory.UPSTREAM_SERVICE

    message = str(error).lower()
    for category, keywords in _KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return category
    return ErrorCategory.UNKNOWN


_CATEGORY_MESSAGES: dict[ErrorCategory, tuple[str, str]] = {
    ErrorCategory.NOT_FOUND: (
        "The requested data could not be found.",
        "Please verify the ID or name and try again.",
    ),
    ErrorCategory.VALIDATION: (
        "The request contains invalid data.",
        "Please check your input and try again.",
    ),
    ErrorCategory.DATABASE: (
        "We're having trouble accessing the data right now.",
        "Please try again in a moment. If the issue persists, the data may be temporarily unavailable.",
    ),
    ErrorCategory.UPSTREAM_SERVICE: (
        "The coaching analysis service is temporarily unavailable.",
        "Please try again in a few moments.",
    ),
    ErrorCategory.PERMISSION: (
        "You don't have permission to access this data.",
        "Please contact your administrator if you believe this is an error.",
    ),
    ErrorCategory.RATE_LIMIT: (
        "Too many requests. The service is temporarily limited.",
        "Please wait a moment before trying again.",
    ),
    ErrorCategory.NETWORK: (
        "A network error occurred while processing your request.",
        "Please check your connection and try again.",
    ),
    ErrorCategory.UNKNOWN: (
        "Something went wrong while processing your request.",
        "Please try again. If the issue persists, try rephrasing your question.",
    ),
}


def category_message(category: ErrorCategory, operation: str | None = None) -> str:
    """Generic user-safe text for a category."""
    message, suggestion = _CATEGORY_MESSAGES[category]
    if operation:
        message = f"Unable to {operation}. {message}"
    return f"{message} {suggestion}"


def build_error_message(error: BaseException, operation: str | None = None) -> str:
    """
    Turn any exception into user-safe text.

    Exceptions that carry a ``user_message`` return it unchanged; everything
    else gets the generic text for its category. The raw error is logged.

    Args:
        error: The exception that was caught
        operation: Short verb phrase for context (e.g. "list calls")

    Returns:
        Message safe to place in a response
    """
    category = classify_error(error)
    logfire.error(
        "Chat operation failed",
        category=category.value,
        operation=operation,
        error=str(error),
        error_type=type(error).__name__,
    )
    if isinstance(error, CoachingError) and error.user_message:
        return error.user_message
    return category_message(category, operation)


# =============================================================================
# Scenario messages
# =============================================================================


def _short_id(call_id: str) -> str:
    return f"{call_id[:8]}..." if len(call_id) > 8 else call_id


class ErrorMessages:
    """Fixed user-facing texts for common scenarios."""

    @staticmethod
    def agent_not_found(name: str, suggestions: list[str] | None = None) -> str:
        text = f'I couldn\'t find an agent named "{name}".'
        if suggestions:
            text += f" Did you mean {', '.join(suggestions)}?"
        return (
            text + ' Try checking the spelling, or you can say "show agents" '
            "to see the full list."
        )

    @staticmethod
    def agent_required() -> str:
        return (
            "Please specify which agent you'd like to see. You can use their name "
            '(e.g., "show calls for Sarah") or click an agent in the sidebar.'
        )

    @staticmethod
    def call_not_found(call_id: str) -> str:
        return (
            f'I couldn\'t find a call with ID "{_short_id(call_id)}". The call may '
            "have been removed, or the ID might be incorrect. Try asking to "
            '"list calls" to see recent calls.'
        )

    @staticmethod
    def call_required() -> str:
        return (
            "Please specify which call you'd like to see. You can provide a call ID, "
            "or first list an agent's calls by asking something like "
            '"show Sarah\'s calls."'
        )

    @staticmethod
    def coaching_call_required() -> str:
        return (
            "To provide coaching feedback, I need a specific call to analyze. You can "
            "provide a call ID, or first list an agent's calls and then ask for "
            "coaching on one of them."
        )

    @staticmethod
    def transcript_not_ready(call_id: str) -> str:
        return (
            f'The transcript for call "{_short_id(call_id)}" isn\'t available yet. '
            "It may still be processing. Try again in a few minutes."
        )

    @staticmethod
    def search_query_required() -> str:
        return (
            "Please tell me what you'd like to search for. For example: "
            '"search for calls about pricing" or "find calls where the customer '
            'mentioned competitors."'
        )

    @staticmethod
    def no_search_results(query: str) -> str:
        return (
            f'No calls matched "{query}". Try broadening your search terms, or check '
            "if the time period is correct. You can also search for specific "
            "phrases or topics."
        )

    @staticmethod
    def no_team_data(department: str, start_date: str, end_date: str) -> str:
        return (
            f"No call data found for the {department} team between {start_date} and "
            f"{end_date}. Try expanding the date range or checking if agents have "
            "been assigned to this department."
        )

    @staticmethod
    def no_agent_stats(agent_name: str, start_date: str, end_date: str) -> str:
        return (
            f"No calls found for {agent_name} between {start_date} and {end_date}. "
            f"Try expanding the date range, or check if {agent_name} has any "
            "recorded calls."
        )

    @staticmethod
    def coaching_analysis_failed() -> str:
        return (
            "I wasn't able to complete the coaching analysis right now. This is "
            "usually temporary. Please try again in a moment."
        )

    @staticmethod
    def access_denied() -> str:
        return (
            "You don't have permission to access this data. If you believe this is "
            "an error, please contact your administrator."
        )

    @staticmethod
    def agent_outside_scope(role: str) -> str:
        if role == "agent":
            return "You can only access your own data."
        if role == "manager":
            return (
                "Agent is not in your team. Use a floor-wide query to access all agents."
            )
        return ErrorMessages.access_denied()

    @staticmethod
    def scope_limited(role: str) -> str:
        article = "an" if role[:1].lower() in "aeiou" else "a"
        return (
            f"As {article} {role}, you can only view your own call data. Contact your "
            "manager for team-wide reports."
        )

    @staticmethod
    def generic_error() -> str:
        return (
            "Something went wrong while processing your request. Please try again. "
            "If the issue continues, try rephrasing your question or breaking it "
            "into smaller parts."
        )
