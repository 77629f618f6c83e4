"""Tracking of the asyncio tasks started by controllers."""

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

_LOGGER = logging.getLogger(__name__)

__all__ = ["TaskService"]


class TaskService:
    """Keeps references to long running background loops such as queue workers.

    The event loop only holds weak references to tasks, so a worker that is
    not referenced elsewhere could be collected while it waits on the queue.
    The loops are stopped by cancelling them.
    """

    def __init__(self) -> None:
        """Initialize the TaskService."""
        self._background: set[asyncio.Task[Any]] = set()

    def create_background_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Start a long running task."""
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        if (err := task.exception()) is not None:
            _LOGGER.error("Task %s failed: %s", task.get_name(), err)
