"""Tests for the cluster controller."""

import asyncio
from collections.abc import AsyncGenerator, Callable
import logging
from typing import Any, cast

import pytest

from cluster_converge.exceptions import CreatorError
from cluster_converge.manifest import Cluster, ClusterStatus, ConfigMap, Kind
from cluster_converge.orchestrator import (
    ClusterController,
    ClusterOrchestrator,
    ControllerConfig,
    OrchestratorConfig,
    PassOutcome,
    PassResult,
)
from cluster_converge.store import CachedReader, InMemoryStore
from cluster_converge.task import BackoffConfig

READY = ClusterStatus.from_dict({"health": {"cloudProviderInfrastructure": True}})

ControllerFactory = Callable[..., ClusterController]


async def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Wait until the predicate holds, polling the event loop."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


class FakeOrchestrator:
    """Orchestrator that records passes and returns scripted outcomes."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.errors: list[Exception] = []
        self.release = asyncio.Event()
        self.release.set()
        self.in_flight: dict[str, int] = {}
        self.max_in_flight: dict[str, int] = {}
        self.max_total = 0

    async def reconcile(self, cluster: Cluster) -> PassResult:
        name = cluster.name
        self.calls.append(name)
        self.in_flight[name] = self.in_flight.get(name, 0) + 1
        self.max_in_flight[name] = max(
            self.max_in_flight.get(name, 0), self.in_flight[name]
        )
        self.max_total = max(self.max_total, sum(self.in_flight.values()))
        try:
            await self.release.wait()
            if self.errors:
                raise self.errors.pop(0)
            return PassResult(PassOutcome.CONVERGED)
        finally:
            self.in_flight[name] -= 1


@pytest.fixture(name="make_controller")
async def make_controller_fixture(
    store: InMemoryStore,
) -> AsyncGenerator[ControllerFactory, None]:
    """Return a factory for controllers that are closed after the test."""
    controllers: list[ClusterController] = []

    def make(orchestrator: Any = None, **kwargs: Any) -> ClusterController:
        controller = ClusterController(
            store, cast(ClusterOrchestrator | None, orchestrator), **kwargs
        )
        controllers.append(controller)
        return controller

    yield make

    for controller in controllers:
        await controller.close()


async def test_deferred_then_converged(
    store: InMemoryStore,
    reader: CachedReader,
    make_cluster: Callable[..., Cluster],
    make_controller: ControllerFactory,
) -> None:
    """Test that a tenant waiting on a gate converges once it becomes ready."""
    cluster = await store.create(make_cluster(ready=False))
    orchestrator = ClusterOrchestrator(
        store, reader, config=OrchestratorConfig(gate_requeue_after=0.01)
    )
    controller = make_controller(orchestrator)

    def outcome() -> PassOutcome | None:
        status = controller.status("tenant")
        if status is None or status.result is None:
            return None
        return status.result.outcome

    await wait_for(lambda: outcome() == PassOutcome.DEFERRED)
    assert not store.list_objects(Kind.DEPLOYMENT)
    assert str(controller.status("tenant")) == (
        "Deferred: Waiting for cloud provider infrastructure"
    )

    store.set_status(cluster.resource_id, READY)
    await wait_for(lambda: outcome() == PassOutcome.CONVERGED)
    assert store.list_objects(Kind.DEPLOYMENT)
    assert str(controller.status("tenant")) == "Converged"


async def test_existing_clusters_reconciled(
    store: InMemoryStore,
    make_cluster: Callable[..., Cluster],
    make_controller: ControllerFactory,
) -> None:
    """Test that clusters in the store before the controller starts are queued."""
    await store.create(make_cluster("a"))
    await store.create(make_cluster("b"))
    orchestrator = FakeOrchestrator()
    make_controller(orchestrator)

    await wait_for(lambda: len(orchestrator.calls) == 2)
    assert sorted(orchestrator.calls) == ["a", "b"]


async def test_new_cluster_reconciled(
    store: InMemoryStore,
    make_cluster: Callable[..., Cluster],
    make_controller: ControllerFactory,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that creating a cluster schedules a pass."""
    caplog.set_level(logging.DEBUG, logger="cluster_converge.orchestrator.controller")
    orchestrator = FakeOrchestrator()
    controller = make_controller(orchestrator)
    await store.create(make_cluster())
    assert "Cluster tenant changed, 1 clusters queued" in caplog.text

    await wait_for(lambda: controller.status("tenant") is not None)
    assert orchestrator.calls == ["tenant"]


async def test_failure_retried_with_backoff(
    store: InMemoryStore,
    cluster: Cluster,
    make_controller: ControllerFactory,
) -> None:
    """Test that failed passes are retried until they succeed."""
    orchestrator = FakeOrchestrator()
    orchestrator.errors = [
        CreatorError("Deployment/cluster-tenant/apiserver", "first"),
        CreatorError("Deployment/cluster-tenant/apiserver", "second"),
    ]
    controller = make_controller(
        orchestrator,
        config=ControllerConfig(backoff=BackoffConfig(base_delay=0.2)),
    )

    def status() -> str:
        return str(controller.status("tenant"))

    await wait_for(lambda: status().startswith("Failed (1): "))
    assert status().endswith("first")
    await wait_for(lambda: status().startswith("Failed (2): "))
    assert status().endswith("second")
    await wait_for(lambda: status() == "Converged")
    assert orchestrator.calls == ["tenant", "tenant", "tenant"]

    final = controller.status("tenant")
    assert final is not None
    assert final.failures == 0
    assert final.error is None


async def test_unexpected_error_retried(
    store: InMemoryStore,
    cluster: Cluster,
    make_controller: ControllerFactory,
) -> None:
    """Test that an unexpected error fails the pass without stopping the worker."""
    orchestrator = FakeOrchestrator()
    orchestrator.errors = [RuntimeError("bug")]
    controller = make_controller(
        orchestrator,
        config=ControllerConfig(workers=1, backoff=BackoffConfig(base_delay=0.2)),
    )

    await wait_for(lambda: controller.status("tenant") is not None)
    assert str(controller.status("tenant")) == "Failed (1): RuntimeError: bug"
    await wait_for(lambda: str(controller.status("tenant")) == "Converged")
    assert orchestrator.calls == ["tenant", "tenant"]


async def test_single_flight(
    store: InMemoryStore,
    make_cluster: Callable[..., Cluster],
    make_controller: ControllerFactory,
) -> None:
    """Test that a tenant is never reconciled by two workers at once."""
    cluster = await store.create(make_cluster())
    orchestrator = FakeOrchestrator()
    orchestrator.release.clear()
    make_controller(orchestrator, config=ControllerConfig(workers=4))

    await wait_for(lambda: orchestrator.calls == ["tenant"])
    for _ in range(3):
        store.set_status(cluster.resource_id, READY)
    await asyncio.sleep(0.02)
    assert orchestrator.calls == ["tenant"]

    orchestrator.release.set()
    await wait_for(lambda: len(orchestrator.calls) == 2)
    await asyncio.sleep(0.02)
    assert orchestrator.calls == ["tenant", "tenant"]
    assert orchestrator.max_in_flight == {"tenant": 1}


async def test_concurrent_tenants(
    store: InMemoryStore,
    make_cluster: Callable[..., Cluster],
    make_controller: ControllerFactory,
) -> None:
    """Test that different tenants are reconciled concurrently."""
    await store.create(make_cluster("a"))
    await store.create(make_cluster("b"))
    orchestrator = FakeOrchestrator()
    orchestrator.release.clear()
    make_controller(orchestrator, config=ControllerConfig(workers=2))

    await wait_for(lambda: orchestrator.max_total == 2)
    orchestrator.release.set()
    await wait_for(lambda: sum(orchestrator.in_flight.values()) == 0)


async def test_ignores_other_kinds(
    store: InMemoryStore,
    cluster: Cluster,
    make_controller: ControllerFactory,
) -> None:
    """Test that writes to child objects don't schedule passes."""
    orchestrator = FakeOrchestrator()
    make_controller(orchestrator)
    await wait_for(lambda: orchestrator.calls == ["tenant"])

    child = ConfigMap.new("child", "cluster-tenant")
    child.data = {"key": "value"}
    await store.create(child)
    await asyncio.sleep(0.02)
    assert orchestrator.calls == ["tenant"]


async def test_reconcile_missing_cluster(
    store: InMemoryStore, make_controller: ControllerFactory
) -> None:
    """Test that a pass for a removed cluster does nothing."""
    orchestrator = FakeOrchestrator()
    controller = make_controller(orchestrator)
    await controller.reconcile("missing")
    assert orchestrator.calls == []
    assert controller.status("missing") is None
