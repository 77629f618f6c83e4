"""Orchestrator for the control plane of a tenant cluster.

The orchestrator runs one reconcile pass for a tenant: it makes sure the
namespace of the tenant exists and then walks the stages of its stage plan,
reconciling every kind in order. A gate stage ends the pass early with a
deferred result when the tenant is not ready for the stages after it. The
first error ends the pass and is raised to the caller; objects reconciled
before the error stay as they are and the next pass picks up from there.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import logging

from cluster_converge.manifest import (
    CLUSTER_SCOPED,
    Cluster,
    Namespace,
    VerticalPodAutoscaler,
)
from cluster_converge.reconciling import (
    Creator,
    ObjectModifier,
    Reconciler,
    cluster_owner_ref,
    disable_autoscaler_wrapper,
    owner_ref_wrapper,
)
from cluster_converge.registry import CreatorRegistry
from cluster_converge.resources.common import CLUSTER_LABEL
from cluster_converge.resources.data import (
    DEFAULT_ETCD_DISK_SIZE,
    DEFAULT_NODE_ACCESS_NETWORK,
    TemplateData,
)
from cluster_converge.store import ObjectReader, ResourceStore

from .stages import GateCondition, GateStage, StagePlan, FixedStagePlan, infrastructure_ready

__all__ = [
    "OrchestratorConfig",
    "PassOutcome",
    "PassResult",
    "ClusterOrchestrator",
    "ensure_namespace",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_GATE_REQUEUE_AFTER = 1.0


class PassOutcome(StrEnum):
    """How a reconcile pass ended."""

    CONVERGED = "Converged"
    DEFERRED = "Deferred"


@dataclass(frozen=True)
class PassResult:
    """Result of a reconcile pass that did not fail."""

    outcome: PassOutcome
    requeue_after: float | None = None
    """Seconds after which the tenant should be reconciled again."""

    reason: str | None = None

    @property
    def converged(self) -> bool:
        return self.outcome == PassOutcome.CONVERGED


@dataclass
class OrchestratorConfig:
    """Configuration for the orchestrator."""

    enable_vpa: bool = True
    """Autoscalers are still created when disabled, but with updates turned off."""

    gate_requeue_after: float = DEFAULT_GATE_REQUEUE_AFTER
    """Seconds to wait before the next pass when a gate is not met."""

    gate: GateCondition = infrastructure_ready
    """Readiness condition of the default stage plan."""

    node_access_network: str = DEFAULT_NODE_ACCESS_NETWORK
    image_registry: str | None = None
    etcd_disk_size: str = DEFAULT_ETCD_DISK_SIZE
    ca_bundle: bytes = field(default=b"", repr=False)
    docker_pull_config_json: bytes = field(default=b"", repr=False)


def namespace_creator(cluster: Cluster) -> Creator[Namespace]:
    """Return the creator for the namespace holding the tenant control plane."""

    def create(ns: Namespace) -> Namespace:
        ns.metadata.labels[CLUSTER_LABEL] = cluster.name
        return ns

    return owner_ref_wrapper(cluster_owner_ref(cluster))(create)


async def ensure_namespace(reconciler: Reconciler, cluster: Cluster) -> None:
    """Create the namespace of the tenant if it does not exist yet."""
    await reconciler.ensure_object(
        Namespace, cluster.namespace_name, namespace_creator(cluster), None
    )


class ClusterOrchestrator:
    """Runs reconcile passes for tenant clusters."""

    def __init__(
        self,
        store: ResourceStore,
        reader: ObjectReader | None = None,
        registry: CreatorRegistry | None = None,
        config: OrchestratorConfig | None = None,
        plan: StagePlan | None = None,
        reconciler: Reconciler | None = None,
    ) -> None:
        """Initialize the ClusterOrchestrator.

        Args:
            store: The resource store that objects are written to.
            reader: Read cache for the store, the store itself when not set.
            registry: Creator factories used by the default stage plan.
            config: The configuration of the orchestrator.
            plan: The stages of a pass, the control plane stages by default.
            reconciler: The reconciler applying the creators of each stage.
        """
        self._store = store
        self._reader = reader or store
        self._config = config or OrchestratorConfig()
        self._plan = plan or FixedStagePlan(registry, self._config.gate)
        self._reconciler = reconciler or Reconciler(store, self._reader)

    def template_data(self, cluster: Cluster) -> TemplateData:
        """Return the inputs shared by all creators of a pass."""
        return TemplateData(
            cluster=cluster,
            reader=self._reader,
            node_access_network=self._config.node_access_network,
            image_registry=self._config.image_registry,
            etcd_disk_size=self._config.etcd_disk_size,
            ca_bundle=self._config.ca_bundle,
            docker_pull_config_json=self._config.docker_pull_config_json,
        )

    async def reconcile(self, cluster: Cluster) -> PassResult:
        """Run one reconcile pass for the cluster.

        Raises:
            CreatorError: If the desired state of an object can't be computed.
            StoreException: If the store rejects or fails a read or a write.
        """
        _LOGGER.info("Reconciling cluster %s", cluster.name)
        data = self.template_data(cluster)
        modifiers: list[ObjectModifier] = []
        namespace: str | None = None
        if self._plan.owned_by_cluster:
            namespace = data.namespace
            await ensure_namespace(self._reconciler, cluster)
            modifiers.append(owner_ref_wrapper(cluster_owner_ref(cluster)))

        for stage in self._plan.stages(cluster):
            if isinstance(stage, GateStage):
                if not stage.condition(cluster):
                    _LOGGER.debug(
                        "Cluster %s is waiting for %s", cluster.name, stage.name
                    )
                    return PassResult(
                        PassOutcome.DEFERRED,
                        requeue_after=self._config.gate_requeue_after,
                        reason=f"Waiting for {stage.name}",
                    )
                continue
            if stage.skip(cluster):
                _LOGGER.debug("Skipping %s for cluster %s", stage.name, cluster.name)
                continue

            creators = await stage.named_creators(data)
            stage_modifiers = list(modifiers)
            if stage.cls is VerticalPodAutoscaler and not self._config.enable_vpa:
                stage_modifiers.insert(0, disable_autoscaler_wrapper)
            stage_namespace = None if stage.cls.kind in CLUSTER_SCOPED else namespace
            _LOGGER.debug(
                "Reconciling %d %s for cluster %s", len(creators), stage.name, cluster.name
            )
            await self._reconciler.reconcile(
                stage.cls, creators, stage_namespace, *stage_modifiers
            )

        _LOGGER.info("Cluster %s converged", cluster.name)
        return PassResult(PassOutcome.CONVERGED)
