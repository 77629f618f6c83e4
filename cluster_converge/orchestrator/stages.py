"""Stages of a reconcile pass.

A pass is a sequence of stages. Each stage either reconciles all objects of
one kind or is a gate that ends the pass early when a readiness condition of
the tenant does not hold yet.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import inspect

from cluster_converge.manifest import (
    BaseObject,
    Cluster,
    ConfigMap,
    CronJob,
    Deployment,
    PodDisruptionBudget,
    Secret,
    Service,
    StatefulSet,
    VerticalPodAutoscaler,
)
from cluster_converge.reconciling import NamedCreator
from cluster_converge.registry import CreatorRegistry
from cluster_converge.resources.data import TemplateData

__all__ = [
    "GateCondition",
    "ReconcileGroup",
    "GateStage",
    "Stage",
    "StagePlan",
    "FixedStagePlan",
    "infrastructure_ready",
    "externally_managed",
]

GateCondition = Callable[[Cluster], bool]
"""Returns True when the tenant is ready for the stages after the gate."""

SkipCondition = Callable[[Cluster], bool]
"""Returns True when a stage does not apply to the tenant."""

CreatorsFactory = Callable[
    [TemplateData], list[NamedCreator] | Awaitable[list[NamedCreator]]
]
"""Returns the named creators of a stage, possibly as an awaitable."""


def infrastructure_ready(cluster: Cluster) -> bool:
    """Return True once the cloud provider infrastructure of the tenant is ready."""
    return cluster.status.health.cloud_provider_infrastructure


def externally_managed(cluster: Cluster) -> bool:
    """Return True when the control plane of the tenant is managed elsewhere."""
    return cluster.externally_managed


def _never(cluster: Cluster) -> bool:
    return False


@dataclass
class ReconcileGroup:
    """Reconciles every object of one kind registered for the tenant."""

    name: str
    """Name of the stage used in log messages."""

    cls: type[BaseObject]
    """The object class of the kind reconciled by the stage."""

    creators: CreatorsFactory
    """Factory returning the named creators of the stage."""

    skip: SkipCondition = _never
    """Predicate that leaves the stage out for a tenant."""

    async def named_creators(self, data: TemplateData) -> list[NamedCreator]:
        """Return the creators of the stage for the current pass."""
        result = self.creators(data)
        if inspect.isawaitable(result):
            result = await result
        return list(result)


@dataclass
class GateStage:
    """Ends the pass early unless the condition holds for the tenant."""

    name: str
    condition: GateCondition


Stage = ReconcileGroup | GateStage


class StagePlan(ABC):
    """Decides which stages run for a tenant and in which order."""

    owned_by_cluster: bool = True
    """Whether objects live next to the tenant object and are owned by it.

    Plans for objects in another store (e.g. inside the tenant cluster) set
    this to False: no namespace is ensured and no owner reference is set.
    """

    @abstractmethod
    def stages(self, cluster: Cluster) -> list[Stage]:
        """Return the stages of a pass for the cluster, in execution order."""


class FixedStagePlan(StagePlan):
    """The control plane stages in a fixed total order.

    Services, secrets and stateful sets come first since the infrastructure
    gate can only be passed once they exist. Everything after the gate
    depends on the cloud provider infrastructure being ready.
    """

    def __init__(
        self,
        registry: CreatorRegistry | None = None,
        gate: GateCondition = infrastructure_ready,
    ) -> None:
        """Initialize FixedStagePlan."""
        registry = registry or CreatorRegistry()
        self._stages: list[Stage] = [
            ReconcileGroup("services", Service, registry.services, externally_managed),
            ReconcileGroup("secrets", Secret, registry.secrets, externally_managed),
            ReconcileGroup("stateful sets", StatefulSet, registry.stateful_sets),
            GateStage("cloud provider infrastructure", gate),
            ReconcileGroup(
                "config maps", ConfigMap, registry.config_maps, externally_managed
            ),
            ReconcileGroup("deployments", Deployment, registry.deployments),
            ReconcileGroup("cron jobs", CronJob, registry.cron_jobs),
            ReconcileGroup(
                "pod disruption budgets",
                PodDisruptionBudget,
                registry.pod_disruption_budgets,
            ),
            ReconcileGroup(
                "vertical pod autoscalers",
                VerticalPodAutoscaler,
                registry.vertical_pod_autoscalers,
            ),
        ]

    def stages(self, cluster: Cluster) -> list[Stage]:
        """Return the same stages for every cluster."""
        return list(self._stages)

