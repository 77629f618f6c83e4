"""Creators for the controller-manager and scheduler deployments."""

from cluster_converge.exceptions import CreatorError
from cluster_converge.manifest import Deployment
from cluster_converge.reconciling import NamedCreator

from .common import base_app_label, container, deployment_spec, first_network, pod_template
from .data import TemplateData
from .names import (
    CONTROLLER_MANAGER,
    CONTROLLER_MANAGER_KUBECONFIG,
    SCHEDULER,
    SCHEDULER_KUBECONFIG,
    SERVICE_ACCOUNT_KEY,
)

CONTROLLER_MANAGER_IMAGE = "registry.k8s.io/kube-controller-manager"
SCHEDULER_IMAGE = "registry.k8s.io/kube-scheduler"
KUBECONFIG_PATH = "/etc/kubernetes/kubeconfig"


def _version(name: str, data: TemplateData) -> str:
    if not (version := data.cluster.spec.version):
        raise CreatorError(name, "cluster has no spec.version")
    return version


def controller_manager_deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the controller-manager deployment."""
    cluster = data.cluster

    def create(dep: Deployment) -> Deployment:
        version = _version(CONTROLLER_MANAGER, data)
        pods = first_network(
            CONTROLLER_MANAGER,
            cluster.spec.cluster_network.pods.cidr_blocks,
            "spec.clusterNetwork.pods.cidrBlocks",
        )
        dep.metadata.labels = base_app_label(CONTROLLER_MANAGER)
        dep.spec = deployment_spec(
            CONTROLLER_MANAGER,
            pod_template(
                CONTROLLER_MANAGER,
                [
                    container(
                        CONTROLLER_MANAGER,
                        data.image(f"{CONTROLLER_MANAGER_IMAGE}:v{version}"),
                        command=["/usr/local/bin/kube-controller-manager"],
                        args=[
                            f"--kubeconfig={KUBECONFIG_PATH}/kubeconfig",
                            f"--cluster-cidr={pods}",
                            "--allocate-node-cidrs=true",
                            "--service-account-private-key-file=/etc/kubernetes/service-account-key/sa.key",
                            "--leader-elect=true",
                        ],
                        cpu="100m",
                        memory="256Mi",
                        volume_mounts={
                            CONTROLLER_MANAGER_KUBECONFIG: KUBECONFIG_PATH,
                            SERVICE_ACCOUNT_KEY: "/etc/kubernetes/service-account-key",
                        },
                    )
                ],
                secret_volumes={
                    CONTROLLER_MANAGER_KUBECONFIG: CONTROLLER_MANAGER_KUBECONFIG,
                    SERVICE_ACCOUNT_KEY: SERVICE_ACCOUNT_KEY,
                },
            ),
        )
        return dep

    return NamedCreator(CONTROLLER_MANAGER, create)


def scheduler_deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the scheduler deployment."""

    def create(dep: Deployment) -> Deployment:
        version = _version(SCHEDULER, data)
        dep.metadata.labels = base_app_label(SCHEDULER)
        dep.spec = deployment_spec(
            SCHEDULER,
            pod_template(
                SCHEDULER,
                [
                    container(
                        SCHEDULER,
                        data.image(f"{SCHEDULER_IMAGE}:v{version}"),
                        command=["/usr/local/bin/kube-scheduler"],
                        args=[
                            f"--kubeconfig={KUBECONFIG_PATH}/kubeconfig",
                            "--leader-elect=true",
                        ],
                        volume_mounts={SCHEDULER_KUBECONFIG: KUBECONFIG_PATH},
                    )
                ],
                secret_volumes={SCHEDULER_KUBECONFIG: SCHEDULER_KUBECONFIG},
            ),
        )
        return dep

    return NamedCreator(SCHEDULER, create)
