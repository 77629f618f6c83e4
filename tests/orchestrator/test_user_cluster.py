"""Tests for the objects reconciled inside the tenant cluster."""

from collections.abc import Callable

from cluster_converge.manifest import Cluster, Kind
from cluster_converge.orchestrator import PassOutcome, reconcile_user_cluster
from cluster_converge.store import InMemoryStore


async def test_reconcile_user_cluster(cluster: Cluster) -> None:
    """Test the custom resource definitions and cluster roles of a tenant."""
    user_store = InMemoryStore()

    result = await reconcile_user_cluster(user_store, cluster)
    assert result.outcome == PassOutcome.CONVERGED

    assert [obj.name for obj in user_store.list_objects(Kind.CLUSTER_ROLE)] == [
        "system:cluster-converge:kubelet-dnat-controller",
        "system:metrics-server",
    ]
    assert [
        obj.name for obj in user_store.list_objects(Kind.CUSTOM_RESOURCE_DEFINITION)
    ] == [
        "clusters.cluster.k8s.io",
        "machinedeployments.cluster.k8s.io",
        "machines.cluster.k8s.io",
        "machinesets.cluster.k8s.io",
    ]
    for obj in user_store.list_objects():
        assert obj.namespace is None
        assert obj.metadata.owner_references == []
    assert not user_store.list_objects(Kind.NAMESPACE)


async def test_user_cluster_idempotent(cluster: Cluster) -> None:
    """Test that a second pass leaves the objects untouched."""
    user_store = InMemoryStore()
    await reconcile_user_cluster(user_store, cluster)
    versions = {
        str(obj.resource_id): obj.metadata.resource_version
        for obj in user_store.list_objects()
    }

    await reconcile_user_cluster(user_store, cluster)
    assert {
        str(obj.resource_id): obj.metadata.resource_version
        for obj in user_store.list_objects()
    } == versions


async def test_user_cluster_ignores_readiness(
    make_cluster: Callable[..., Cluster], store: InMemoryStore
) -> None:
    """Test that the tenant objects don't wait for the infrastructure."""
    cluster = await store.create(make_cluster(ready=False))
    user_store = InMemoryStore()
    result = await reconcile_user_cluster(user_store, cluster)
    assert result.converged
    assert user_store.list_objects(Kind.CLUSTER_ROLE)
