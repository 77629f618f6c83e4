"""Creators for the machine-controller and the types it serves."""

from cluster_converge.manifest import (
    CustomResourceDefinition,
    Deployment,
    ResourceScope,
    Service,
)
from cluster_converge.reconciling import NamedCreator

from .common import base_app_label, container, deployment_spec, pod_template, service_spec
from .data import TemplateData
from .names import (
    CLUSTER_CRD,
    MACHINE_CONTROLLER,
    MACHINE_CONTROLLER_KUBECONFIG,
    MACHINE_CONTROLLER_WEBHOOK,
    MACHINE_CRD,
    MACHINE_DEPLOYMENT_CRD,
    MACHINE_SET_CRD,
)

MACHINE_CONTROLLER_IMAGE = "docker.io/kubermatic/machine-controller:v1.8.0"
WEBHOOK_PORT = 9876
CLUSTER_API_GROUP = "cluster.k8s.io"
CLUSTER_API_VERSION = "v1alpha1"
KUBECONFIG_PATH = "/etc/kubernetes/kubeconfig"


def _deployment(name: str, image: str, args: list[str], ports: dict[str, int] | None = None) -> dict:
    return deployment_spec(
        name,
        pod_template(
            name,
            [
                container(
                    name,
                    image,
                    command=["/usr/local/bin/machine-controller"],
                    args=[f"-kubeconfig={KUBECONFIG_PATH}/kubeconfig", *args],
                    ports=ports,
                    volume_mounts={MACHINE_CONTROLLER_KUBECONFIG: KUBECONFIG_PATH},
                )
            ],
            secret_volumes={MACHINE_CONTROLLER_KUBECONFIG: MACHINE_CONTROLLER_KUBECONFIG},
        ),
    )


def deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the machine-controller deployment."""
    image = data.image(MACHINE_CONTROLLER_IMAGE)
    cluster_dns = data.cluster.spec.cluster_network.dns_domain

    def create(dep: Deployment) -> Deployment:
        dep.metadata.labels = base_app_label(MACHINE_CONTROLLER)
        dep.spec = _deployment(
            MACHINE_CONTROLLER,
            image,
            ["-logtostderr", "-v=4", f"-cluster-dns-domain={cluster_dns}"],
        )
        return dep

    return NamedCreator(MACHINE_CONTROLLER, create)


def webhook_deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the admission webhook of the machine-controller."""
    image = data.image(MACHINE_CONTROLLER_IMAGE)

    def create(dep: Deployment) -> Deployment:
        dep.metadata.labels = base_app_label(MACHINE_CONTROLLER_WEBHOOK)
        dep.spec = _deployment(
            MACHINE_CONTROLLER_WEBHOOK,
            image,
            ["-logtostderr", f"-listen-address=0.0.0.0:{WEBHOOK_PORT}"],
            ports={"webhook": WEBHOOK_PORT},
        )
        dep.spec["template"]["spec"]["containers"][0]["command"] = [
            "/usr/local/bin/webhook"
        ]
        return dep

    return NamedCreator(MACHINE_CONTROLLER_WEBHOOK, create)


def webhook_service_creator() -> NamedCreator[Service]:
    """Return the creator for the service of the admission webhook."""

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(MACHINE_CONTROLLER_WEBHOOK)
        svc.spec = service_spec(
            MACHINE_CONTROLLER_WEBHOOK, {"webhook": (443, WEBHOOK_PORT)}
        )
        return svc

    return NamedCreator(MACHINE_CONTROLLER_WEBHOOK, create)


def _crd_creator(
    name: str,
    kind: str,
    short_name: str,
    with_status: bool,
) -> NamedCreator[CustomResourceDefinition]:
    plural = f"{kind.lower()}s"

    def create(crd: CustomResourceDefinition) -> CustomResourceDefinition:
        crd.spec.group = CLUSTER_API_GROUP
        crd.spec.version = CLUSTER_API_VERSION
        crd.spec.scope = ResourceScope.NAMESPACED
        crd.spec.names.kind = kind
        crd.spec.names.list_kind = f"{kind}List"
        crd.spec.names.plural = plural
        crd.spec.names.singular = kind.lower()
        crd.spec.names.short_names = [short_name]
        if with_status:
            crd.spec.subresources = {"status": {}}
        return crd

    return NamedCreator(name, create)


def machine_crd_creator() -> NamedCreator[CustomResourceDefinition]:
    """Return the creator for the Machine type."""
    return _crd_creator(MACHINE_CRD, "Machine", "ma", with_status=False)


def machine_set_crd_creator() -> NamedCreator[CustomResourceDefinition]:
    """Return the creator for the MachineSet type."""
    return _crd_creator(MACHINE_SET_CRD, "MachineSet", "ms", with_status=True)


def machine_deployment_crd_creator() -> NamedCreator[CustomResourceDefinition]:
    """Return the creator for the MachineDeployment type."""
    return _crd_creator(
        MACHINE_DEPLOYMENT_CRD, "MachineDeployment", "md", with_status=True
    )


def cluster_crd_creator() -> NamedCreator[CustomResourceDefinition]:
    """Return the creator for the Cluster type."""
    return _crd_creator(CLUSTER_CRD, "Cluster", "cl", with_status=True)
