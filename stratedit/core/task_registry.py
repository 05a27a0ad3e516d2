"""Task registry for background asyncio tasks.

Save requests are spawned as background tasks so that closing a tab or
re-arming a timer never cancels a request that is already on the wire. The
registry keeps a strong reference to each of them and lets the owner wait for
them to settle on shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Coroutine, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class TaskRegistry:
    """Registry for tracking background asyncio tasks.

    Example:
        registry = TaskRegistry()
        registry.spawn(client.save(path, content), name=f"save:{path}")
        await registry.drain(timeout=5.0)
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[object]] = set()

    def _on_task_done(self, task: asyncio.Task[object]) -> None:
        """Drop the finished task and log unexpected exceptions."""
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error("Background task failed", task=task.get_name(), error=str(exc), exc_info=exc)

    def spawn(self, coro: Coroutine[object, object, T], name: str | None = None) -> asyncio.Task[T]:
        """Spawn a tracked background task.

        Args:
            coro: Coroutine to execute as a background task
            name: Optional name for the task (useful for debugging)

        Returns:
            The created asyncio.Task that is being tracked
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)  # type: ignore[arg-type]
        task.add_done_callback(self._on_task_done)  # type: ignore[arg-type]
        logger.debug("Spawned tracked task", task=task.get_name(), total=len(self._tasks))
        return task

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for tracked tasks to finish on their own, without cancelling them.

        Args:
            timeout: Maximum time to wait (seconds)
        """
        if not self._tasks:
            return

        task_count = len(self._tasks)
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(
                "Drain timeout",
                pending=sorted(task.get_name() for task in pending),
                total=task_count,
                timeout=timeout,
            )
