"""Tests for the registry of named creators."""

from collections.abc import Callable

import pytest

from cluster_converge.manifest import Cluster
from cluster_converge.registry import (
    CreatorRegistry,
    control_plane_deployment_names,
    get_deployment_creators,
    get_pod_disruption_budget_creators,
)
from cluster_converge.resources import TemplateData
from cluster_converge.store import InMemoryStore


@pytest.mark.parametrize(
    ("external", "expected"),
    [
        (
            False,
            [
                "dns-resolver",
                "machine-controller",
                "machine-controller-webhook",
                "openvpn-server",
                "apiserver",
                "controller-manager",
                "scheduler",
                "metrics-server",
            ],
        ),
        (
            True,
            [
                "dns-resolver",
                "machine-controller",
                "machine-controller-webhook",
                "openvpn-server",
            ],
        ),
    ],
)
def test_deployments(
    store: InMemoryStore,
    make_cluster: Callable[..., Cluster],
    external: bool,
    expected: list[str],
) -> None:
    """Test the deployments registered for managed and external control planes."""
    data = TemplateData(cluster=make_cluster(external=external), reader=store)
    assert [named.name for named in get_deployment_creators(data)] == expected
    assert control_plane_deployment_names(data) == expected


def test_pod_disruption_budgets(
    store: InMemoryStore, make_cluster: Callable[..., Cluster]
) -> None:
    """Test that budgets follow the deployments that are registered."""
    data = TemplateData(cluster=make_cluster(external=True), reader=store)
    assert [named.name for named in get_pod_disruption_budget_creators(data)] == ["etcd"]


def test_unique_names(store: InMemoryStore, make_cluster: Callable[..., Cluster]) -> None:
    """Test that names are unique within every kind."""
    registry = CreatorRegistry()
    data = TemplateData(cluster=make_cluster(), reader=store)
    for factory in (
        registry.services,
        registry.secrets,
        registry.config_maps,
        registry.stateful_sets,
        registry.deployments,
        registry.cron_jobs,
        registry.pod_disruption_budgets,
        registry.cluster_roles,
        registry.custom_resource_definitions,
    ):
        names = [named.name for named in factory(data)]
        assert names
        assert len(names) == len(set(names))
