"""Fire-and-forget background tasks.

Submission returns a TaskHandle at once; completion is only observable
through the store's status fields and the log.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class TaskHandle:
    """Acknowledgement returned to the caller of a trigger."""

    task_id: str
    name: str
    status: str = "started"
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TaskRunner:
    """Schedules coroutines on the running loop and keeps them referenced until done."""

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def running(self) -> list[str]:
        return [task_id for task_id, task in self._tasks.items() if not task.done()]

    def submit(self, name: str, coro_factory: Callable[[], Awaitable[Any]]) -> TaskHandle:
        """
        Start ``coro_factory()`` in the background.

        Args:
            name: Label used in logs
            coro_factory: Zero-argument callable returning the coroutine to run

        Returns:
            TaskHandle with status "started"
        """
        handle = TaskHandle(task_id=uuid.uuid4().hex, name=name)
        task = asyncio.ensure_future(coro_factory())
        self._tasks[handle.task_id] = task
        task.add_done_callback(lambda t: self._finished(handle, t))
        logger.info("[TASKS] Started %s (%s)", name, handle.task_id)
        return handle

    def _finished(self, handle: TaskHandle, task: asyncio.Task) -> None:
        self._tasks.pop(handle.task_id, None)
        if task.cancelled():
            logger.warning("[TASKS] %s (%s) was cancelled", handle.name, handle.task_id)
            return
        error = task.exception()
        if error is not None:
            logger.error("[TASKS] %s (%s) failed: %r", handle.name, handle.task_id, error)
        else:
            logger.info("[TASKS] %s (%s) completed", handle.name, handle.task_id)

    async def shutdown(self) -> None:
        """Cancel anything still running and wait for it to unwind."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
