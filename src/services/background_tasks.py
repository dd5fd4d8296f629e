"""Fire-and-forget background tasks with graceful shutdown tracking."""

import asyncio
from typing import Any, Coroutine

import logfire

# Track pending background tasks for graceful shutdown
_pending_tasks: set[asyncio.Task] = set()


def track_background_task(task: asyncio.Task) -> None:
    """
    Track a background task so shutdown can wait for it.

    Example:
        task = asyncio.create_task(record_objections(...))
        track_background_task(task)
    """
    _pending_tasks.add(task)
    task.add_done_callback(_pending_tasks.discard)


def pending_tasks() -> set[asyncio.Task]:
    """Snapshot of tasks that have not finished yet."""
    return set(_pending_tasks)


async def _run_guarded(coro: Coroutine[Any, Any, Any], name: str) -> None:
    try:
        await coro
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logfire.warning(
            "Background task failed",
            task=name,
            error=str(e),
            error_type=type(e).__name__,
        )


def spawn_background_task(
    coro: Coroutine[Any, Any, Any], name: str
) -> asyncio.Task:
    """
    Run a coroutine without awaiting it.

    Failures are logged inside the task and never reach the caller.
    """
    task = asyncio.create_task(_run_guarded(coro, name), name=name)
    track_background_task(task)
    return task
