"""Creators for the tenant apiserver."""

import secrets

from cluster_converge.exceptions import CreatorError
from cluster_converge.manifest import (
    Deployment,
    PodDisruptionBudget,
    Secret,
    Service,
)
from cluster_converge.reconciling import NamedCreator

from .common import (
    base_app_label,
    container,
    deployment_spec,
    first_network,
    pod_disruption_budget_spec,
    pod_template,
    service_spec,
)
from .data import TemplateData
from .names import (
    APISERVER,
    APISERVER_EXTERNAL_SERVICE,
    ETCD_CLIENT_SERVICE,
    SERVICE_ACCOUNT_KEY,
    SERVICE_ACCOUNT_KEY_DATA,
)

APISERVER_IMAGE = "registry.k8s.io/kube-apiserver"
SECURE_PORT = 6443
SERVICE_ACCOUNT_KEY_BYTES = 64


def internal_service_creator() -> NamedCreator[Service]:
    """Return the creator for the service used by the control plane components."""

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(APISERVER)
        svc.spec = service_spec(APISERVER, {"secure": (443, SECURE_PORT)})
        return svc

    return NamedCreator(APISERVER, create)


def external_service_creator(data: TemplateData) -> NamedCreator[Service]:
    """Return the creator for the service exposing the apiserver to users."""
    port = data.cluster.spec.address.port

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(APISERVER)
        svc.spec = service_spec(
            APISERVER,
            {"secure": (port, SECURE_PORT)},
            service_type="NodePort",
        )
        return svc

    return NamedCreator(APISERVER_EXTERNAL_SERVICE, create)


def deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the apiserver deployment."""
    cluster = data.cluster
    namespace = data.namespace

    def create(dep: Deployment) -> Deployment:
        if not cluster.spec.version:
            raise CreatorError(APISERVER, "cluster has no spec.version")
        service_network = first_network(
            APISERVER,
            cluster.spec.cluster_network.services.cidr_blocks,
            "spec.clusterNetwork.services.cidrBlocks",
        )
        args = [
            f"--secure-port={SECURE_PORT}",
            f"--etcd-servers=https://{ETCD_CLIENT_SERVICE}.{namespace}.svc:2379",
            f"--service-cluster-ip-range={service_network}",
            "--service-account-key-file=/etc/kubernetes/service-account-key/sa.key",
            "--authorization-mode=Node,RBAC",
        ]
        if cluster.spec.address.url:
            args.append(f"--external-hostname={cluster.spec.address.url}")
        dep.metadata.labels = base_app_label(APISERVER)
        dep.spec = deployment_spec(
            APISERVER,
            pod_template(
                APISERVER,
                [
                    container(
                        APISERVER,
                        data.image(f"{APISERVER_IMAGE}:v{cluster.spec.version}"),
                        command=["/usr/local/bin/kube-apiserver"],
                        args=args,
                        ports={"secure": SECURE_PORT},
                        cpu="100m",
                        memory="512Mi",
                        volume_mounts={
                            SERVICE_ACCOUNT_KEY: "/etc/kubernetes/service-account-key",
                        },
                    )
                ],
                secret_volumes={SERVICE_ACCOUNT_KEY: SERVICE_ACCOUNT_KEY},
            ),
            replicas=2,
        )
        return dep

    return NamedCreator(APISERVER, create)


def pod_disruption_budget_creator() -> NamedCreator[PodDisruptionBudget]:
    """Return the creator for the apiserver disruption budget."""

    def create(pdb: PodDisruptionBudget) -> PodDisruptionBudget:
        pdb.metadata.labels = base_app_label(APISERVER)
        pdb.spec = pod_disruption_budget_spec(APISERVER, 1)
        return pdb

    return NamedCreator(APISERVER, create)


def service_account_key_creator() -> NamedCreator[Secret]:
    """Return the creator for the key signing service account tokens.

    The key is generated once and kept on every later pass, since replacing
    it would invalidate all tokens issued in the tenant cluster.
    """

    def create(secret: Secret) -> Secret:
        secret.type = "Opaque"
        if not secret.data.get(SERVICE_ACCOUNT_KEY_DATA):
            secret.data[SERVICE_ACCOUNT_KEY_DATA] = secrets.token_bytes(
                SERVICE_ACCOUNT_KEY_BYTES
            )
        return secret

    return NamedCreator(SERVICE_ACCOUNT_KEY, create)
