"""Detached background tasks"""

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)

# Strong references so running tasks are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning(f"Background task {task.get_name()} was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Background task {task.get_name()} failed: {error!r}")


def fire_and_forget(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
    """Schedule coro on the running loop; its outcome is only logged"""
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task
