"""Tests for the machine-controller creators."""

import pytest

from cluster_converge.manifest import CustomResourceDefinition, Deployment, ResourceScope
from cluster_converge.resources import TemplateData
from cluster_converge.resources import machine_controller


@pytest.mark.parametrize(
    ("factory", "name", "kind", "short_name", "status"),
    [
        (machine_controller.machine_crd_creator, "machines.cluster.k8s.io", "Machine", "ma", False),
        (machine_controller.machine_set_crd_creator, "machinesets.cluster.k8s.io", "MachineSet", "ms", True),
        (
            machine_controller.machine_deployment_crd_creator,
            "machinedeployments.cluster.k8s.io",
            "MachineDeployment",
            "md",
            True,
        ),
        (machine_controller.cluster_crd_creator, "clusters.cluster.k8s.io", "Cluster", "cl", True),
    ],
)
def test_custom_resource_definitions(
    factory, name: str, kind: str, short_name: str, status: bool  # type: ignore[no-untyped-def]
) -> None:
    """Test the types served in the tenant cluster."""
    named = factory()
    assert named.name == name
    crd = named.creator(CustomResourceDefinition.new(name))
    assert crd.spec.group == "cluster.k8s.io"
    assert crd.spec.version == "v1alpha1"
    assert crd.spec.scope == ResourceScope.NAMESPACED
    assert crd.spec.names.kind == kind
    assert crd.spec.names.plural == f"{kind.lower()}s"
    assert crd.spec.names.short_names == [short_name]
    assert (crd.spec.subresources == {"status": {}}) == status
    assert name == f"{crd.spec.names.plural}.{crd.spec.group}"


def test_webhook_deployment(data: TemplateData) -> None:
    """Test that the webhook runs the webhook binary of the same image."""
    named = machine_controller.webhook_deployment_creator(data)
    dep = named.creator(Deployment.new(named.name, data.namespace))
    container = dep.spec["template"]["spec"]["containers"][0]
    assert container["command"] == ["/usr/local/bin/webhook"]
    assert container["ports"][0]["containerPort"] == machine_controller.WEBHOOK_PORT
    assert dep.spec["selector"]["matchLabels"] == {"app": "machine-controller-webhook"}


def test_image_registry(data: TemplateData) -> None:
    """Test that images are pulled from the configured registry."""
    data.image_registry = "registry.internal"
    named = machine_controller.deployment_creator(data)
    dep = named.creator(Deployment.new(named.name, data.namespace))
    assert dep.spec["template"]["spec"]["containers"][0]["image"] == (
        "registry.internal/kubermatic/machine-controller:v1.8.0"
    )
