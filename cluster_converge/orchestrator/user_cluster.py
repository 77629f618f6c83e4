"""Stages for the objects created inside the tenant cluster itself.

These objects live in the store of the tenant cluster, where the tenant
object does not exist, so they carry no owner reference and no namespace is
created for them.
"""

from cluster_converge.manifest import Cluster, ClusterRole, CustomResourceDefinition
from cluster_converge.registry import CreatorRegistry
from cluster_converge.store import ObjectReader, ResourceStore

from .orchestrator import ClusterOrchestrator, OrchestratorConfig, PassResult
from .stages import ReconcileGroup, Stage, StagePlan

__all__ = ["UserClusterStagePlan", "reconcile_user_cluster"]


class UserClusterStagePlan(StagePlan):
    """Custom resource definitions followed by cluster roles."""

    owned_by_cluster = False

    def __init__(self, registry: CreatorRegistry | None = None) -> None:
        """Initialize UserClusterStagePlan."""
        registry = registry or CreatorRegistry()
        self._stages: list[Stage] = [
            ReconcileGroup(
                "custom resource definitions",
                CustomResourceDefinition,
                registry.custom_resource_definitions,
            ),
            ReconcileGroup("cluster roles", ClusterRole, registry.cluster_roles),
        ]

    def stages(self, cluster: Cluster) -> list[Stage]:
        return list(self._stages)


async def reconcile_user_cluster(
    store: ResourceStore,
    cluster: Cluster,
    reader: ObjectReader | None = None,
    registry: CreatorRegistry | None = None,
    config: OrchestratorConfig | None = None,
) -> PassResult:
    """Run one pass over the objects inside the tenant cluster."""
    orchestrator = ClusterOrchestrator(
        store,
        reader=reader,
        config=config,
        plan=UserClusterStagePlan(registry),
    )
    return await orchestrator.reconcile(cluster)
