"""Detached background tasks for push processing.

Push callbacks are acknowledged before any synchronization work starts, so
Google never retries because of a slow response. The work runs as a
fire-and-forget task; completion is tracked only so failures get logged and
shutdown can wait for in-flight work.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

_active_tasks: set[asyncio.Task[Any]] = set()


def schedule_task(coroutine: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
    """Start ``coroutine`` detached from the current request."""
    task = asyncio.create_task(coroutine, name=name)
    _active_tasks.add(task)
    task.add_done_callback(_on_task_done)
    logger.debug(f"Scheduled {name} ({len(_active_tasks)} active)")
    return task


def active_task_count() -> int:
    return len(_active_tasks)


def _on_task_done(task: asyncio.Task[Any]) -> None:
    _active_tasks.discard(task)
    with contextlib.suppress(asyncio.CancelledError):
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} failed: {type(exc).__name__}: {exc}"
            )


async def drain_tasks(timeout_seconds: float = 30.0) -> None:
    """Wait for pending tasks during shutdown, cancelling stragglers."""
    if not _active_tasks:
        return

    pending_now = list(_active_tasks)
    logger.info(f"Waiting for {len(pending_now)} background task(s)")
    _, pending = await asyncio.wait(pending_now, timeout=timeout_seconds)
    if not pending:
        return

    logger.warning(f"Cancelling {len(pending)} background task(s) after {timeout_seconds}s")
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
