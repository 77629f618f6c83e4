"""
Cluster Controller implementation.

This controller watches the store for tenant Cluster objects and runs reconcile
passes for them through the orchestrator. Passes are scheduled on a work queue
keyed by cluster name, so a tenant is never reconciled by two workers at once
while different tenants are reconciled concurrently.

Scheduling of the next pass depends on how a pass ended:
    - Converged: nothing is scheduled until the Cluster object changes.
    - Deferred: the pass is retried after the requeue delay of the result.
    - Failed: the pass is retried with exponential backoff per tenant.
"""

import asyncio
from dataclasses import dataclass, field
import logging

from cluster_converge.exceptions import ConvergeException, ObjectNotFoundError
from cluster_converge.manifest import BaseObject, Cluster, Kind, NamedResource
from cluster_converge.store import ObjectReader, ResourceStore, StoreEvent
from cluster_converge.task import (
    BackoffConfig,
    ExponentialBackoff,
    QueueShutdown,
    WorkQueue,
    get_task_service,
)

from .orchestrator import ClusterOrchestrator, PassResult

__all__ = ["ControllerConfig", "ReconcileStatus", "ClusterController"]

_LOGGER = logging.getLogger(__name__)


@dataclass
class ControllerConfig:
    """Configuration for the ClusterController."""

    workers: int = 2
    """Number of tenants reconciled concurrently."""

    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    """Retry delays after a failed pass."""


@dataclass
class ReconcileStatus:
    """Outcome of the last pass for a tenant."""

    result: PassResult | None = None
    """The result of the last pass, unset when it failed."""

    error: str | None = None
    """The error of the last pass, unset when it did not fail."""

    failures: int = 0
    """Number of consecutive failed passes."""

    def __str__(self) -> str:
        """Return a string representation of the status."""
        if self.error:
            return f"Failed ({self.failures}): {self.error}"
        if self.result is None:
            return "Pending"
        if self.result.reason:
            return f"{self.result.outcome}: {self.result.reason}"
        return str(self.result.outcome)


class ClusterController:
    """Controller for reconciling tenant Cluster objects."""

    def __init__(
        self,
        store: ResourceStore,
        orchestrator: ClusterOrchestrator | None = None,
        config: ControllerConfig | None = None,
        reader: ObjectReader | None = None,
    ) -> None:
        """Initialize the controller and start its workers.

        Args:
            store: The store holding the Cluster objects and their children.
            orchestrator: Runs the passes, one for the store by default.
            config: The configuration for the controller.
            reader: Read cache used by the default orchestrator.
        """
        self._store = store
        self._orchestrator = orchestrator or ClusterOrchestrator(store, reader)
        self._config = config or ControllerConfig()
        self._queue: WorkQueue[str] = WorkQueue()
        self._backoff: ExponentialBackoff[str] = ExponentialBackoff(
            self._config.backoff
        )
        self._status: dict[str, ReconcileStatus] = {}
        self._remove_listeners = [
            store.add_listener(StoreEvent.OBJECT_CREATED, self._on_object),
            store.add_listener(StoreEvent.OBJECT_UPDATED, self._on_object),
        ]
        for obj in store.list_objects(Kind.CLUSTER):
            self._queue.add(obj.name)

        task_service = get_task_service()
        self._tasks: list[asyncio.Task[None]] = [
            task_service.create_background_task(
                self._worker(), name=f"cluster-worker-{i}"
            )
            for i in range(self._config.workers)
        ]

    async def close(self) -> None:
        """Stop the workers, waiting for passes in flight to be cancelled."""
        _LOGGER.info("Closing ClusterController, cancelling tasks")
        for remove in self._remove_listeners:
            remove()
        self._remove_listeners.clear()
        self._queue.shutdown()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    def status(self, name: str) -> ReconcileStatus | None:
        """Return the status of the last pass of the cluster, if any."""
        return self._status.get(name)

    def _on_object(self, resource_id: NamedResource, obj: BaseObject) -> None:
        if resource_id.kind != Kind.CLUSTER:
            return
        self._queue.add(resource_id.name)
        _LOGGER.debug(
            "Cluster %s changed, %d clusters queued", resource_id.name, len(self._queue)
        )

    async def _worker(self) -> None:
        while True:
            try:
                name = await self._queue.get()
            except QueueShutdown:
                return
            try:
                await self.reconcile(name)
            finally:
                self._queue.done(name)

    async def reconcile(self, name: str) -> None:
        """Run a pass for the named cluster and schedule the next one."""
        resource_id = NamedResource(Kind.CLUSTER, None, name)
        try:
            cluster = await self._store.get(resource_id, Cluster)
        except ObjectNotFoundError:
            _LOGGER.debug("Cluster %s no longer exists", name)
            self._backoff.forget(name)
            self._status.pop(name, None)
            return

        try:
            result = await self._orchestrator.reconcile(cluster)
        except ConvergeException as err:
            _LOGGER.error("Failed to reconcile cluster %s: %s", name, err)
            self._retry(name, str(err))
            return
        except Exception as err:
            _LOGGER.exception("Unexpected error reconciling cluster %s", name)
            self._retry(name, f"{type(err).__name__}: {err}")
            return

        self._backoff.forget(name)
        self._status[name] = ReconcileStatus(result=result)
        if result.requeue_after is not None:
            _LOGGER.debug(
                "Cluster %s requeued after %.3fs", name, result.requeue_after
            )
            self._queue.add_after(name, result.requeue_after)

    def _retry(self, name: str, error: str) -> None:
        delay = self._backoff.when(name)
        failures = self._backoff.num_failures(name)
        _LOGGER.info("Retrying cluster %s in %.3fs (failure %d)", name, delay, failures)
        self._status[name] = ReconcileStatus(error=error, failures=failures)
        self._queue.add_after(name, delay)
