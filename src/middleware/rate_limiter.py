"""Per-caller rate limiting for the chat endpoint.

Every chat message costs at least one LLM call, so each authenticated
caller gets a fixed number of messages per sliding window.
"""

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Callable

import logfire

from src.config import get_settings
from src.constants import MAX_CHAT_MESSAGES_PER_MINUTE, RATE_LIMIT_WINDOW_SECONDS


class ChatRateLimiter:
    """Thread-safe in-memory sliding-window limiter keyed by caller id."""

    def __init__(
        self,
        max_requests: int = MAX_CHAT_MESSAGES_PER_MINUTE,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Messages allowed per window.
            window_seconds: Size of the sliding window in seconds.
            clock: Monotonic time source, injectable for tests.
        """
        self._requests: dict[str, deque[float]] = defaultdict(deque)
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._lock = Lock()

    def _prune(self, caller_id: str, now: float) -> deque[float]:
        stamps = self._requests[caller_id]
        cutoff = now - self._window
        while stamps and stamps[0] <= cutoff:
            stamps.popleft()
        return stamps

    def allow(self, caller_id: str) -> bool:
        """Record a message for a caller; False if the caller is over the limit."""
        now = self._clock()
        with self._lock:
            stamps = self._prune(caller_id, now)
            if len(stamps) >= self._max_requests:
                logfire.warning(
                    "Chat rate limit exceeded",
                    user_id=caller_id,
                    request_count=len(stamps),
                    max_requests=self._max_requests,
                    window_seconds=self._window,
                )
                return False
            stamps.append(now)
            return True

    def remaining(self, caller_id: str) -> int:
        with self._lock:
            stamps = self._prune(caller_id, self._clock())
            return max(0, self._max_requests - len(stamps))

    def retry_after(self, caller_id: str) -> float:
        """Seconds until the oldest message in the window expires (0 if none)."""
        now = self._clock()
        with self._lock:
            stamps = self._prune(caller_id, now)
            if not stamps:
                return 0.0
            return max(0.0, stamps[0] + self._window - now)

    def reset(self, caller_id: str | None = None) -> None:
        with self._lock:
            if caller_id:
                self._requests.pop(caller_id, None)
            else:
                self._requests.clear()


_rate_limiter: ChatRateLimiter | None = None


def get_rate_limiter() -> ChatRateLimiter:
    """Get the process-wide chat rate limiter, sized from settings."""
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = ChatRateLimiter(
            max_requests=settings.rate_limit_max_messages,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the process-wide limiter (used by tests)."""
    global _rate_limiter
    _rate_limiter = None
