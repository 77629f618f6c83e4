"""Creators for the metrics-server serving resource metrics of the tenant."""

from cluster_converge.manifest import (
    ClusterRole,
    Deployment,
    PodDisruptionBudget,
    PolicyRule,
    Service,
)
from cluster_converge.reconciling import NamedCreator

from .common import (
    base_app_label,
    container,
    deployment_spec,
    pod_disruption_budget_spec,
    pod_template,
    service_spec,
)
from .data import TemplateData
from .names import (
    METRICS_SERVER,
    METRICS_SERVER_CLUSTER_ROLE,
    METRICS_SERVER_KUBECONFIG,
)

METRICS_SERVER_IMAGE = "registry.k8s.io/metrics-server/metrics-server:v0.7.0"
SECURE_PORT = 4443
KUBECONFIG_PATH = "/etc/kubernetes/kubeconfig"


def service_creator() -> NamedCreator[Service]:
    """Return the creator for the metrics-server service."""

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(METRICS_SERVER)
        svc.spec = service_spec(METRICS_SERVER, {"https": (443, SECURE_PORT)})
        return svc

    return NamedCreator(METRICS_SERVER, create)


def deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the metrics-server deployment."""
    image = data.image(METRICS_SERVER_IMAGE)

    def create(dep: Deployment) -> Deployment:
        dep.metadata.labels = base_app_label(METRICS_SERVER)
        dep.spec = deployment_spec(
            METRICS_SERVER,
            pod_template(
                METRICS_SERVER,
                [
                    container(
                        METRICS_SERVER,
                        image,
                        args=[
                            f"--kubeconfig={KUBECONFIG_PATH}/kubeconfig",
                            f"--authentication-kubeconfig={KUBECONFIG_PATH}/kubeconfig",
                            f"--authorization-kubeconfig={KUBECONFIG_PATH}/kubeconfig",
                            f"--secure-port={SECURE_PORT}",
                            "--kubelet-insecure-tls",
                        ],
                        ports={"https": SECURE_PORT},
                        volume_mounts={METRICS_SERVER_KUBECONFIG: KUBECONFIG_PATH},
                    )
                ],
                secret_volumes={METRICS_SERVER_KUBECONFIG: METRICS_SERVER_KUBECONFIG},
            ),
            replicas=2,
        )
        return dep

    return NamedCreator(METRICS_SERVER, create)


def pod_disruption_budget_creator() -> NamedCreator[PodDisruptionBudget]:
    """Return the creator for the metrics-server disruption budget."""

    def create(pdb: PodDisruptionBudget) -> PodDisruptionBudget:
        pdb.metadata.labels = base_app_label(METRICS_SERVER)
        pdb.spec = pod_disruption_budget_spec(METRICS_SERVER, 1)
        return pdb

    return NamedCreator(METRICS_SERVER, create)


def cluster_role_creator() -> NamedCreator[ClusterRole]:
    """Return the creator for the permissions of the metrics-server."""

    def create(cr: ClusterRole) -> ClusterRole:
        cr.metadata.labels = base_app_label(METRICS_SERVER)
        cr.rules = [
            PolicyRule(
                api_groups=[""],
                resources=["pods", "nodes", "nodes/stats", "namespaces"],
                verbs=["get", "list", "watch"],
            ),
            PolicyRule(
                api_groups=["apps"],
                resources=["deployments"],
                verbs=["get", "list", "watch"],
            ),
        ]
        return cr

    return NamedCreator(METRICS_SERVER_CLUSTER_ROLE, create)
