"""Creators for cluster roles in the tenant cluster."""

from cluster_converge.manifest import ClusterRole, PolicyRule
from cluster_converge.reconciling import NamedCreator

from .common import base_app_label
from .names import DNAT_CONTROLLER_CLUSTER_ROLE


def dnat_controller_cluster_role_creator() -> NamedCreator[ClusterRole]:
    """Return the creator for the role of the kubelet dnat controller.

    The controller watches the nodes of the tenant to route traffic to the
    kubelets over the vpn.
    """

    def create(cr: ClusterRole) -> ClusterRole:
        cr.metadata.labels = base_app_label("kubelet-dnat-controller")
        cr.rules = [
            PolicyRule(
                api_groups=[""],
                resources=["nodes"],
                verbs=["list", "get", "watch"],
            )
        ]
        return cr

    return NamedCreator(DNAT_CONTROLLER_CLUSTER_ROLE, create)
