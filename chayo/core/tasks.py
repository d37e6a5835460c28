"""Fire-and-forget helpers for best-effort side effects."""

import asyncio
from collections.abc import Awaitable
from typing import Any

from chayo.core.logging import get_logger

logger = get_logger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight
_background_tasks: set[asyncio.Task] = set()


async def run_best_effort(coro: Awaitable[Any], label: str) -> Any | None:
    """Await ``coro``; log and return None if it raises."""
    try:
        return await coro
    except Exception as e:
        logger.warning(f"Best-effort task '{label}' failed: {e}", exc_info=True)
        return None


def spawn_best_effort(coro: Awaitable[Any], label: str) -> asyncio.Task:
    """Schedule ``coro`` on the running loop without waiting for it."""
    task = asyncio.get_running_loop().create_task(run_best_effort(coro, label))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks() -> None:
    """Wait for every spawned task. Used on shutdown and in tests."""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
