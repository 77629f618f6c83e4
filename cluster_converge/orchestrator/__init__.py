"""Sequencing of reconcile passes for tenant clusters.

The orchestrator runs a single pass over the stages of a stage plan. The
controller watches the store for tenants and schedules passes for them.
"""

from .controller import ClusterController, ControllerConfig, ReconcileStatus
from .orchestrator import (
    ClusterOrchestrator,
    OrchestratorConfig,
    PassOutcome,
    PassResult,
    ensure_namespace,
)
from .stages import (
    FixedStagePlan,
    GateCondition,
    GateStage,
    ReconcileGroup,
    Stage,
    StagePlan,
    externally_managed,
    infrastructure_ready,
)
from .user_cluster import UserClusterStagePlan, reconcile_user_cluster

__all__ = [
    "ClusterController",
    "ControllerConfig",
    "ReconcileStatus",
    "ClusterOrchestrator",
    "OrchestratorConfig",
    "PassOutcome",
    "PassResult",
    "ensure_namespace",
    "FixedStagePlan",
    "GateCondition",
    "GateStage",
    "ReconcileGroup",
    "Stage",
    "StagePlan",
    "externally_managed",
    "infrastructure_ready",
    "UserClusterStagePlan",
    "reconcile_user_cluster",
]
