"""Registry of the named creators that make up a tenant control plane.

The registry maps each kind to a factory returning the ordered list of named
creators for that kind. Factories take the TemplateData of the current pass,
so every creator captures its inputs when it is registered.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .manifest import (
    ClusterRole,
    ConfigMap,
    CronJob,
    CustomResourceDefinition,
    Deployment,
    PodDisruptionBudget,
    Secret,
    Service,
    StatefulSet,
    VerticalPodAutoscaler,
)
from .reconciling import NamedCreator
from .resources import (
    apiserver,
    control_plane,
    dns,
    etcd,
    kubeconfig,
    machine_controller,
    metrics_server,
    openvpn,
    rbac,
    vpa,
)
from .resources.data import TemplateData
from .resources.names import (
    APISERVER,
    CONTROLLER_MANAGER,
    CONTROLLER_MANAGER_KUBECONFIG,
    CONTROLLER_MANAGER_USERNAME,
    DNAT_CONTROLLER_KUBECONFIG,
    DNAT_CONTROLLER_USERNAME,
    DNS_RESOLVER,
    ETCD,
    INTERNAL_ADMIN_KUBECONFIG,
    INTERNAL_ADMIN_USERNAME,
    MACHINE_CONTROLLER,
    MACHINE_CONTROLLER_KUBECONFIG,
    MACHINE_CONTROLLER_USERNAME,
    MACHINE_CONTROLLER_WEBHOOK,
    METRICS_SERVER,
    METRICS_SERVER_KUBECONFIG,
    METRICS_SERVER_USERNAME,
    OPENVPN_SERVER,
    SCHEDULER,
    SCHEDULER_KUBECONFIG,
    SCHEDULER_USERNAME,
    SYSTEM_MASTERS_GROUP,
)

__all__ = [
    "CreatorRegistry",
    "CreatorsFactory",
    "control_plane_deployment_names",
]

CreatorsFactory = Callable[[TemplateData], list[NamedCreator]]
AsyncCreatorsFactory = Callable[[TemplateData], Awaitable[list[NamedCreator]]]

# Deployments that run for every tenant
BASE_DEPLOYMENTS = [
    DNS_RESOLVER,
    MACHINE_CONTROLLER,
    MACHINE_CONTROLLER_WEBHOOK,
    OPENVPN_SERVER,
]

# Deployments that only run when this engine manages the control plane
MANAGED_DEPLOYMENTS = [
    APISERVER,
    CONTROLLER_MANAGER,
    SCHEDULER,
    METRICS_SERVER,
]


def control_plane_deployment_names(data: TemplateData) -> list[str]:
    """Return the names of the deployments that make up the control plane."""
    if data.cluster.externally_managed:
        return list(BASE_DEPLOYMENTS)
    return [*BASE_DEPLOYMENTS, *MANAGED_DEPLOYMENTS]


def get_service_creators(data: TemplateData) -> list[NamedCreator[Service]]:
    """Return the creators for all services of the control plane."""
    return [
        apiserver.internal_service_creator(),
        apiserver.external_service_creator(data),
        etcd.service_creator(),
        openvpn.service_creator(),
        dns.service_creator(),
        machine_controller.webhook_service_creator(),
        metrics_server.service_creator(),
    ]


def get_secret_creators(data: TemplateData) -> list[NamedCreator[Secret]]:
    """Return the creators for all secrets of the control plane."""
    return [
        kubeconfig.image_pull_secret_creator(data.docker_pull_config_json),
        apiserver.service_account_key_creator(),
        kubeconfig.admin_kubeconfig_creator(data),
        kubeconfig.internal_kubeconfig_creator(
            INTERNAL_ADMIN_KUBECONFIG,
            INTERNAL_ADMIN_USERNAME,
            [SYSTEM_MASTERS_GROUP],
            data,
        ),
        kubeconfig.internal_kubeconfig_creator(
            SCHEDULER_KUBECONFIG, SCHEDULER_USERNAME, [], data
        ),
        kubeconfig.internal_kubeconfig_creator(
            CONTROLLER_MANAGER_KUBECONFIG, CONTROLLER_MANAGER_USERNAME, [], data
        ),
        kubeconfig.internal_kubeconfig_creator(
            MACHINE_CONTROLLER_KUBECONFIG, MACHINE_CONTROLLER_USERNAME, [], data
        ),
        kubeconfig.internal_kubeconfig_creator(
            METRICS_SERVER_KUBECONFIG, METRICS_SERVER_USERNAME, [], data
        ),
        kubeconfig.internal_kubeconfig_creator(
            DNAT_CONTROLLER_KUBECONFIG, DNAT_CONTROLLER_USERNAME, [], data
        ),
    ]


def get_config_map_creators(data: TemplateData) -> list[NamedCreator[ConfigMap]]:
    """Return the creators for all config maps of the control plane."""
    return [
        openvpn.client_configs_config_map_creator(data),
        dns.config_map_creator(data),
    ]


def get_stateful_set_creators(data: TemplateData) -> list[NamedCreator[StatefulSet]]:
    """Return the creators for all stateful sets of the control plane."""
    return [etcd.stateful_set_creator(data)]


def get_deployment_creators(data: TemplateData) -> list[NamedCreator[Deployment]]:
    """Return the creators for the deployments of the control plane.

    The apiserver and the components talking to it directly are left out
    when the control plane is managed externally.
    """
    creators: list[NamedCreator[Deployment]] = [
        dns.deployment_creator(data),
        machine_controller.deployment_creator(data),
        machine_controller.webhook_deployment_creator(data),
        openvpn.deployment_creator(data),
    ]
    if data.cluster.externally_managed:
        return creators
    creators.extend(
        [
            apiserver.deployment_creator(data),
            control_plane.controller_manager_deployment_creator(data),
            control_plane.scheduler_deployment_creator(data),
            metrics_server.deployment_creator(data),
        ]
    )
    return creators


def get_cron_job_creators(data: TemplateData) -> list[NamedCreator[CronJob]]:
    """Return the creators for all cron jobs of the control plane."""
    return [etcd.cron_job_creator(data)]


def get_pod_disruption_budget_creators(
    data: TemplateData,
) -> list[NamedCreator[PodDisruptionBudget]]:
    """Return the creators for all disruption budgets of the control plane."""
    creators = [etcd.pod_disruption_budget_creator()]
    if not data.cluster.externally_managed:
        creators.extend(
            [
                apiserver.pod_disruption_budget_creator(),
                metrics_server.pod_disruption_budget_creator(),
            ]
        )
    return creators


async def get_vertical_pod_autoscaler_creators(
    data: TemplateData,
) -> list[NamedCreator[VerticalPodAutoscaler]]:
    """Return the creators for the autoscalers of the control plane workloads."""
    return await vpa.vertical_pod_autoscaler_creators(
        control_plane_deployment_names(data),
        [ETCD],
        data.namespace,
        data.reader,
    )


def get_cluster_role_creators(data: TemplateData) -> list[NamedCreator[ClusterRole]]:
    """Return the creators for the cluster roles of the tenant cluster."""
    return [
        rbac.dnat_controller_cluster_role_creator(),
        metrics_server.cluster_role_creator(),
    ]


def get_custom_resource_definition_creators(
    data: TemplateData,
) -> list[NamedCreator[CustomResourceDefinition]]:
    """Return the creators for the types served in the tenant cluster."""
    return [
        machine_controller.machine_crd_creator(),
        machine_controller.machine_set_crd_creator(),
        machine_controller.machine_deployment_crd_creator(),
        machine_controller.cluster_crd_creator(),
    ]


@dataclass
class CreatorRegistry:
    """Factories returning the named creators of each kind.

    Every field may be replaced to register a different set of creators,
    e.g. in tests.
    """

    services: CreatorsFactory = get_service_creators
    secrets: CreatorsFactory = get_secret_creators
    config_maps: CreatorsFactory = get_config_map_creators
    stateful_sets: CreatorsFactory = get_stateful_set_creators
    deployments: CreatorsFactory = get_deployment_creators
    cron_jobs: CreatorsFactory = get_cron_job_creators
    pod_disruption_budgets: CreatorsFactory = get_pod_disruption_budget_creators
    vertical_pod_autoscalers: AsyncCreatorsFactory = (
        get_vertical_pod_autoscaler_creators
    )
    cluster_roles: CreatorsFactory = get_cluster_role_creators
    custom_resource_definitions: CreatorsFactory = (
        get_custom_resource_definition_creators
    )
