"""Test fixtures shared by all tests."""

from collections.abc import Callable, Generator
import copy
from typing import Any

import pytest

from cluster_converge.manifest import EXTERNAL_CONTROL_PLANE_ANNOTATION, Cluster
from cluster_converge.store import CachedReader, InMemoryStore
from cluster_converge.task import TaskService, task_service_context

CLUSTER_DOC: dict[str, Any] = {
    "apiVersion": "cluster-converge.io/v1",
    "kind": "Cluster",
    "metadata": {"name": "tenant"},
    "spec": {
        "version": "1.29.2",
        "cloud": {"dc": "europe-west3-c"},
        "clusterNetwork": {
            "pods": {"cidrBlocks": ["172.25.0.0/16"]},
            "services": {"cidrBlocks": ["10.240.16.0/20"]},
        },
        "address": {"url": "https://tenant.example.com:6443"},
    },
    "status": {"health": {"cloudProviderInfrastructure": True}},
}

ClusterFactory = Callable[..., Cluster]


@pytest.fixture(name="task_service", autouse=True)
def task_service_fixture() -> Generator[TaskService, None, None]:
    """Create a task service for testing."""
    with task_service_context() as service:
        yield service


@pytest.fixture(name="store")
def store_fixture() -> InMemoryStore:
    """Create an in-memory store for testing."""
    return InMemoryStore()


@pytest.fixture(name="reader")
def reader_fixture(store: InMemoryStore) -> Generator[CachedReader, None, None]:
    """Create a read cache in front of the store."""
    reader = CachedReader(store)
    yield reader
    reader.close()


@pytest.fixture(name="make_cluster")
def make_cluster_fixture() -> ClusterFactory:
    """Return a factory for tenant Cluster objects."""

    def make(
        name: str = "tenant",
        *,
        ready: bool = True,
        external: bool = False,
        pods: list[str] | None = None,
        services: list[str] | None = None,
    ) -> Cluster:
        doc = copy.deepcopy(CLUSTER_DOC)
        doc["metadata"]["name"] = name
        doc["status"]["health"]["cloudProviderInfrastructure"] = ready
        if external:
            doc["metadata"]["annotations"] = {
                EXTERNAL_CONTROL_PLANE_ANNOTATION: "true"
            }
        if pods is not None:
            doc["spec"]["clusterNetwork"]["pods"]["cidrBlocks"] = pods
        if services is not None:
            doc["spec"]["clusterNetwork"]["services"]["cidrBlocks"] = services
        return Cluster.parse_doc(doc)

    return make


@pytest.fixture(name="cluster")
async def cluster_fixture(store: InMemoryStore, make_cluster: ClusterFactory) -> Cluster:
    """Create a tenant cluster that is ready for all stages."""
    return await store.create(make_cluster())
