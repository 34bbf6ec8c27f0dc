"""
Fire-and-forget task helpers.

Aggregate recomputes and similar follow-up work run after the response has
been produced. Failures are logged and counted, never raised to the caller.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from engagement.utils.metrics import BACKGROUND_TASK_FAILURES_TOTAL

logger = logging.getLogger(__name__)

# Strong references so the event loop does not garbage-collect pending tasks
_background_tasks: set[asyncio.Task] = set()


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        BACKGROUND_TASK_FAILURES_TOTAL.labels(task=task.get_name()).inc()
        logger.error(f"Background task {task.get_name()} failed: {exc!r}", exc_info=exc)


def fire_and_forget(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
    """Schedule ``coro`` on the running loop without awaiting it."""
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def pending_background_tasks() -> int:
    return len(_background_tasks)


async def drain_background_tasks(timeout: float | None = None) -> None:
    """Wait for in-flight background tasks (shutdown and tests)."""
    while _background_tasks:
        pending = list(_background_tasks)
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        # Done callbacks run on the next loop iteration
        await asyncio.sleep(0)
        if not_done:
            logger.warning(f"{len(not_done)} background task(s) still running after {timeout}s")
            return
