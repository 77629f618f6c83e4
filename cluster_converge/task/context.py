"""Per context TaskService instance."""

import contextlib
import contextvars
from collections.abc import Generator

from .service import TaskService

__all__ = ["get_task_service", "task_service_context"]

_task_service_ctx: contextvars.ContextVar[TaskService | None] = contextvars.ContextVar(
    "_task_service_ctx", default=None
)


def get_task_service() -> TaskService:
    """Return the TaskService of the current context, creating one if needed."""
    if (service := _task_service_ctx.get()) is None:
        service = TaskService()
        _task_service_ctx.set(service)
    return service


@contextlib.contextmanager
def task_service_context(
    service: TaskService | None = None,
) -> Generator[TaskService, None, None]:
    """Use the given or a new TaskService for the duration of the block."""
    service = service or TaskService()
    token = _task_service_ctx.set(service)
    try:
        yield service
    finally:
        _task_service_ctx.reset(token)
