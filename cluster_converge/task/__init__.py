"""Task scheduling for the controllers.

This module provides the work queue that serializes passes per tenant, the
backoff used to retry failed passes, and tracking of the asyncio tasks the
controllers start.
"""

from .context import get_task_service, task_service_context
from .queue import BackoffConfig, ExponentialBackoff, QueueShutdown, WorkQueue
from .service import TaskService

__all__ = [
    "get_task_service",
    "task_service_context",
    "BackoffConfig",
    "ExponentialBackoff",
    "QueueShutdown",
    "WorkQueue",
    "TaskService",
]
