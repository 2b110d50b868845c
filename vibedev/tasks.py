"""Detached background tasks.

Side effects that must not delay the caller (view recording) run as
detached tasks. Failures are logged and counted instead of vanishing;
callers that need the effect to land call :func:`drain`.

Example:
    >>> spawn(views.record_view(EntityKind.PROJECT, "p-1", "s-1"), name="record_view")
    >>> await drain()
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from vibedev.logging import logger
from vibedev.metrics import detached_task_failures_total, detached_tasks_in_flight

_tasks: set[asyncio.Task[Any]] = set()


def _on_done(task: asyncio.Task[Any]) -> None:
    _tasks.discard(task)
    detached_tasks_in_flight.dec()
    if task.cancelled():
        logger.debug(f"Detached task {task.get_name()} cancelled")
        return
    exc = task.exception()
    if exc is not None:
        detached_task_failures_total.labels(task=task.get_name()).inc()
        logger.opt(exception=exc).error(f"Detached task {task.get_name()} failed: {exc}")


def spawn(coro: Coroutine[Any, Any, Any], name: str = "detached") -> asyncio.Task[Any]:
    """Schedule ``coro`` without awaiting it.

    A strong reference is kept until the task finishes.

    Args:
        coro: Coroutine to run
        name: Task name used in logs and metrics

    Returns:
        The scheduled task
    """
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _tasks.add(task)
    detached_tasks_in_flight.inc()
    task.add_done_callback(_on_done)
    return task


def pending() -> int:
    """Number of detached tasks still running."""
    return len(_tasks)


async def drain() -> None:
    """Wait for every detached task, including ones spawned while waiting."""
    while _tasks:
        await asyncio.gather(*list(_tasks), return_exceptions=True)
        # Let done callbacks run before re-checking.
        await asyncio.sleep(0)


__all__ = ["spawn", "pending", "drain"]
