"""Helpers shared by the resource creators."""

import ipaddress
from typing import Any

from cluster_converge.exceptions import CreatorError
from cluster_converge.manifest import Cluster

from .names import IMAGE_PULL_SECRET

APP_LABEL = "app"
CLUSTER_LABEL = "cluster"


def base_app_label(name: str, extra: dict[str, str] | None = None) -> dict[str, str]:
    """Return the labels identifying the pods of one component."""
    labels = {APP_LABEL: name}
    if extra:
        labels.update(extra)
    return labels


def parse_network(resource_name: str, cidr: str) -> ipaddress.IPv4Network:
    """Parse a network block in CIDR notation, as a creator error on failure."""
    try:
        return ipaddress.IPv4Network(cidr, strict=False)
    except ValueError as err:
        raise CreatorError(resource_name, f"invalid network {cidr!r}: {err}") from err


def first_network(resource_name: str, blocks: list[str], field_name: str) -> ipaddress.IPv4Network:
    """Return the first network of a list of CIDR blocks."""
    if not blocks:
        raise CreatorError(resource_name, f"{field_name} must contain at least one entry")
    return parse_network(resource_name, blocks[0])


def dns_service_ip(resource_name: str, cluster: Cluster) -> str:
    """Return the address of the dns service in the tenant service network."""
    network = first_network(
        resource_name,
        cluster.spec.cluster_network.services.cidr_blocks,
        "spec.clusterNetwork.services.cidrBlocks",
    )
    return str(network.network_address + 10)


def container(
    name: str,
    image: str,
    *,
    command: list[str] | None = None,
    args: list[str] | None = None,
    ports: dict[str, int] | None = None,
    cpu: str = "50m",
    memory: str = "128Mi",
    volume_mounts: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Return a container entry of a pod template."""
    result: dict[str, Any] = {"name": name, "image": image}
    if command:
        result["command"] = command
    if args:
        result["args"] = args
    if ports:
        result["ports"] = [
            {"name": port_name, "containerPort": port, "protocol": "TCP"}
            for port_name, port in ports.items()
        ]
    result["resources"] = {
        "requests": {"cpu": cpu, "memory": memory},
        "limits": {"memory": memory},
    }
    if volume_mounts:
        result["volumeMounts"] = [
            {"name": volume, "mountPath": path, "readOnly": True}
            for volume, path in volume_mounts.items()
        ]
    return result


def pod_template(
    name: str,
    containers: list[dict[str, Any]],
    *,
    secret_volumes: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Return a pod template for the pods of one component."""
    spec: dict[str, Any] = {
        "containers": containers,
        "imagePullSecrets": [{"name": IMAGE_PULL_SECRET}],
    }
    if secret_volumes:
        spec["volumes"] = [
            {"name": volume, "secret": {"secretName": secret, "defaultMode": 420}}
            for volume, secret in secret_volumes.items()
        ]
    metadata: dict[str, Any] = {"labels": base_app_label(name)}
    if annotations:
        metadata["annotations"] = annotations
    return {"metadata": metadata, "spec": spec}


def deployment_spec(
    name: str, template: dict[str, Any], replicas: int = 1
) -> dict[str, Any]:
    """Return the spec of a deployment running the given pod template."""
    return {
        "replicas": replicas,
        "selector": {"matchLabels": base_app_label(name)},
        "strategy": {
            "type": "RollingUpdate",
            "rollingUpdate": {"maxSurge": 1, "maxUnavailable": 0},
        },
        "template": template,
    }


def service_spec(
    name: str,
    ports: dict[str, tuple[int, int]],
    *,
    service_type: str = "ClusterIP",
    headless: bool = False,
) -> dict[str, Any]:
    """Return the spec of a service selecting the pods of one component.

    Ports map a port name to the service port and the target port.
    """
    spec: dict[str, Any] = {
        "type": service_type,
        "selector": base_app_label(name),
        "ports": [
            {"name": port_name, "port": port, "targetPort": target, "protocol": "TCP"}
            for port_name, (port, target) in ports.items()
        ],
    }
    if headless:
        spec["clusterIP"] = "None"
        spec["publishNotReadyAddresses"] = True
    return spec


def pod_disruption_budget_spec(name: str, min_available: int) -> dict[str, Any]:
    """Return the spec of a disruption budget for the pods of one component."""
    return {
        "minAvailable": min_available,
        "selector": {"matchLabels": base_app_label(name)},
    }
