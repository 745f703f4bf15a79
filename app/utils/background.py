import asyncio
from typing import Any, Coroutine

import structlog

logger = structlog.stdlib.get_logger(__name__)


class TaskSubmitter:
    """
    Runs coroutines as detached tasks whose outcome the caller never sees.

    Failures are logged here and not propagated. A strong reference is held
    until each task finishes so it cannot be garbage collected mid-flight.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def submit(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("Background task cancelled", task_name=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed",
                task_name=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all submitted tasks (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
