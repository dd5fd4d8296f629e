"""Timing and logging helpers for Supabase queries.

Every repository call runs inside ``timed_query`` so each table read and
RPC shows up in Logfire with its latency and, on failure, the error type.
"""

import time
from contextlib import contextmanager
from typing import Any, Generator

import logfire


@contextmanager
def timed_query(
    operation_name: str,
    **log_context: Any,
) -> Generator[None, None, None]:
    """
    Time a database operation and log its outcome.

    Works around awaited calls too; the context manager itself is sync.

    Args:
        operation_name: Name of the operation (usually the RPC or table name)
        **log_context: Extra attributes attached to both log events

    Example:
        with timed_query("get_agent_calls", agent_user_id=agent_id):
            result = await client.rpc("get_agent_calls", params).execute()
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logfire.error(
            f"{operation_name} failed",
            operation=operation_name,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=(time.perf_counter() - start) * 1000,
            **log_context,
        )
        raise
    logfire.debug(
        f"{operation_name} completed",
        operation=operation_name,
        response_time_ms=(time.perf_counter() - start) * 1000,
        **log_context,
    )


class QueryTimer:
    """
    Timer for operations whose completion log needs result details.

    Example:
        timer = QueryTimer("semantic_search_calls", agent_user_id=agent_id).start()
        try:
            result = await client.rpc(...).execute()
        except Exception as e:
            timer.error(e)
            raise
        timer.success(result_count=len(result.data or []))
    """

    def __init__(self, operation_name: str, **log_context: Any):
        self.operation_name = operation_name
        self.log_context = log_context
        self._start: float | None = None
        self._elapsed_ms: float | None = None

    def start(self) -> "QueryTimer":
        self._start = time.perf_counter()
        return self

    def _stop(self) -> float:
        if self._start is None:
            raise RuntimeError("Timer was not started. Call start() first.")
        self._elapsed_ms = (time.perf_counter() - self._start) * 1000
        return self._elapsed_ms

    def success(self, **extra_context: Any) -> float:
        """Log completion with extra result attributes; returns elapsed ms."""
        elapsed = self._stop()
        logfire.info(
            f"{self.operation_name} completed",
            operation=self.operation_name,
            response_time_ms=elapsed,
            **self.log_context,
            **extra_context,
        )
        return elapsed

    def error(self, exception: Exception, **extra_context: Any) -> float:
        """Log failure; returns elapsed ms."""
        elapsed = self._stop()
        logfire.error(
            f"{self.operation_name} failed",
            operation=self.operation_name,
            error=str(exception),
            error_type=type(exception).__name__,
            response_time_ms=elapsed,
            **self.log_context,
            **extra_context,
        )
        return elapsed

    @property
    def elapsed_ms(self) -> float | None:
        return self._elapsed_ms
