"""Creators for the OpenVPN server connecting the control plane to the nodes."""

import ipaddress

from cluster_converge.manifest import ConfigMap, Deployment, Service
from cluster_converge.reconciling import NamedCreator

from .common import (
    base_app_label,
    container,
    deployment_spec,
    first_network,
    parse_network,
    pod_template,
    service_spec,
)
from .data import TemplateData
from .names import OPENVPN_CLIENT_CONFIGS, OPENVPN_SERVER

OPENVPN_IMAGE = "docker.io/kubermatic/openvpn:v2.4.8"
OPENVPN_PORT = 1194
USER_CLUSTER_CLIENT = "user-cluster-client"


def _iroute(network: ipaddress.IPv4Network) -> str:
    return f"iroute {network.network_address} {network.netmask}"


def service_creator() -> NamedCreator[Service]:
    """Return the creator for the service the node side clients connect to."""

    def create(svc: Service) -> Service:
        svc.metadata.labels = base_app_label(OPENVPN_SERVER)
        svc.spec = service_spec(
            OPENVPN_SERVER,
            {"secure": (OPENVPN_PORT, OPENVPN_PORT)},
            service_type="NodePort",
        )
        return svc

    return NamedCreator(OPENVPN_SERVER, create)


def deployment_creator(data: TemplateData) -> NamedCreator[Deployment]:
    """Return the creator for the OpenVPN server deployment."""
    image = data.image(OPENVPN_IMAGE)

    def create(dep: Deployment) -> Deployment:
        dep.metadata.labels = base_app_label(OPENVPN_SERVER)
        dep.spec = deployment_spec(
            OPENVPN_SERVER,
            pod_template(
                OPENVPN_SERVER,
                [
                    container(
                        OPENVPN_SERVER,
                        image,
                        command=["/usr/sbin/openvpn"],
                        args=[
                            "--proto",
                            "tcp",
                            "--port",
                            str(OPENVPN_PORT),
                            "--client-config-dir",
                            "/etc/openvpn/clients",
                        ],
                        ports={"secure": OPENVPN_PORT},
                        volume_mounts={
                            OPENVPN_CLIENT_CONFIGS: "/etc/openvpn/clients",
                        },
                    )
                ],
            ),
        )
        dep.spec["template"]["spec"]["volumes"] = [
            {
                "name": OPENVPN_CLIENT_CONFIGS,
                "configMap": {"name": OPENVPN_CLIENT_CONFIGS, "defaultMode": 420},
            }
        ]
        return dep

    return NamedCreator(OPENVPN_SERVER, create)


def client_configs_config_map_creator(data: TemplateData) -> NamedCreator[ConfigMap]:
    """Return the creator for the client configuration of the OpenVPN server.

    The configuration routes the pod, service and node access networks of the
    tenant cluster through the client running in the tenant cluster.
    """
    cluster = data.cluster
    node_access_network = data.node_access_network

    def create(cm: ConfigMap) -> ConfigMap:
        network = cluster.spec.cluster_network
        pods = first_network(
            OPENVPN_CLIENT_CONFIGS,
            network.pods.cidr_blocks,
            "spec.clusterNetwork.pods.cidrBlocks",
        )
        services = first_network(
            OPENVPN_CLIENT_CONFIGS,
            network.services.cidr_blocks,
            "spec.clusterNetwork.services.cidrBlocks",
        )
        nodes = parse_network(OPENVPN_CLIENT_CONFIGS, node_access_network)
        cm.metadata.labels = base_app_label(OPENVPN_SERVER)
        # trailing newline
        iroutes = [_iroute(pods), _iroute(services), _iroute(nodes), ""]
        cm.data[USER_CLUSTER_CLIENT] = "\n".join(iroutes)
        return cm

    return NamedCreator(OPENVPN_CLIENT_CONFIGS, create)
