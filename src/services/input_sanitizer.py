"""Chat message validation and sanitization.

Messages are validated before they reach the classifier and sanitized so
the text sent to the LLM is free of control characters and runaway
whitespace.
"""

import re
import unicodedata
from typing import NamedTuple

import logfire

from src.constants import MAX_MESSAGE_LENGTH_CHARS


class ValidationResult(NamedTuple):
    """Result of input validation.

    Attributes:
        is_valid: Whether the input passed validation.
        error_code: Error code if validation failed, None otherwise.
        error_message: Human-readable error message if validation failed.
    """

    is_valid: bool
    error_code: str | None
    error_message: str | None


def sanitize_user_input(text: str, max_length: int = MAX_MESSAGE_LENGTH_CHARS) -> str:
    """Sanitize a chat message before classification.

    - Removes control characters (except newlines, carriage returns, tabs)
    - Normalizes Unicode to NFC
    - Collapses runs of spaces/tabs and more than two newlines
    - Strips and truncates to ``max_length``
    """
    if not text:
        return ""

    sanitized = "".join(char for char in text if ord(char) >= 32 or char in "\n\r\t")
    sanitized = unicodedata.normalize("NFC", sanitized)
    sanitized = re.sub(r"[ \t]+", " ", sanitized)
    sanitized = re.sub(r"\n{3,}", "\n\n", sanitized)
    sanitized = sanitized.strip()

    if len(sanitized) > max_length:
        logfire.warning(
            "Chat message truncated",
            original_length=len(sanitized),
            max_length=max_length,
        )
        sanitized = sanitized[:max_length]

    return sanitized


def validate_message(
    text: str | None, max_length: int = MAX_MESSAGE_LENGTH_CHARS
) -> ValidationResult:
    """Validate chat message text.

    Checks:
    - Not None, empty or whitespace-only
    - Not longer than ``max_length``
    """
    if text is None:
        return ValidationResult(
            is_valid=False,
            error_code="null_message",
            error_message="Message cannot be null",
        )

    if not text.strip():
        return ValidationResult(
            is_valid=False,
            error_code="empty_message",
            error_message="Message cannot be empty",
        )

    if len(text) > max_length:
        return ValidationResult(
            is_valid=False,
            error_code="message_too_long",
            error_message=f"Message exceeds maximum length of {max_length} characters",
        )

    if not re.search(r"[a-zA-Z0-9]", text):
        # Symbol-only messages still go through; the classifier maps them to GENERAL
        logfire.info(
            "Chat message contains no alphanumeric characters",
            text_preview=text.strip()[:50],
        )

    return ValidationResult(is_valid=True, error_code=None, error_message=None)
