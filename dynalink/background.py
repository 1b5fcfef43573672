"""Fire-and-forget tasks that must never block or fail a response.

The event loop only keeps weak references to tasks, so pending tasks are held
in ``_pending`` until they finish. Failures are logged and counted, never re-raised.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from prometheus_client import Counter

__all__ = ["drain", "pending_count", "spawn"]

logger = logging.getLogger(__name__)

BACKGROUND_TASK_FAILURES_TOTAL = Counter(
    "dynalink_background_task_failures_total",
    "Detached tasks that finished with an exception",
    ["name"],
)

_pending: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        logger.warning(f"Background task {task.get_name()} was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        BACKGROUND_TASK_FAILURES_TOTAL.labels(name=task.get_name()).inc()
        logger.error(f"Background task {task.get_name()} failed: {exc!r}")


def spawn(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _pending.add(task)
    task.add_done_callback(_on_done)
    return task


def pending_count() -> int:
    return len(_pending)


async def drain(timeout: float | None = None) -> None:
    """Wait for pending tasks, cancelling whatever is still running after ``timeout``."""
    if not _pending:
        return
    tasks = list(_pending)
    done, still_running = await asyncio.wait(tasks, timeout=timeout)
    for task in still_running:
        task.cancel()
    if still_running:
        logger.warning(f"Cancelled {len(still_running)} background task(s) still pending at drain")
        await asyncio.gather(*still_running, return_exceptions=True)
