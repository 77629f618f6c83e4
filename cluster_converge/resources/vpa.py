"""Creators for the autoscalers of the control plane workloads."""

import logging
from typing import Any

from cluster_converge.exceptions import CreatorError, ObjectNotFoundError
from cluster_converge.manifest import (
    BaseObject,
    CrossVersionObjectReference,
    Deployment,
    NamedResource,
    PodUpdatePolicy,
    StatefulSet,
    UpdateMode,
    VerticalPodAutoscaler,
)
from cluster_converge.reconciling import NamedCreator
from cluster_converge.store import ObjectReader

from .common import base_app_label

_LOGGER = logging.getLogger(__name__)


def _container_policies(obj: Deployment | StatefulSet) -> list[dict[str, Any]]:
    """Return autoscaler bounds derived from the resources of each container.

    Requests are the lower bound and limits, when set, the upper bound.
    """
    containers = obj.spec.get("template", {}).get("spec", {}).get("containers", [])
    policies = []
    for container in containers:
        resources = container.get("resources", {})
        if not (name := container.get("name")):
            raise CreatorError(obj.name, "container without name")
        policy: dict[str, Any] = {"containerName": name}
        if requests := resources.get("requests"):
            policy["minAllowed"] = dict(requests)
        if limits := resources.get("limits"):
            policy["maxAllowed"] = dict(limits)
        policies.append(policy)
    return policies


def _creator(
    target: BaseObject, policies: list[dict[str, Any]]
) -> NamedCreator[VerticalPodAutoscaler]:
    def create(vpa: VerticalPodAutoscaler) -> VerticalPodAutoscaler:
        vpa.metadata.labels = base_app_label(target.name)
        vpa.spec.target_ref = CrossVersionObjectReference(
            api_version=target.api_version,
            kind=str(target.kind),
            name=target.name,
        )
        vpa.spec.update_policy = PodUpdatePolicy(update_mode=UpdateMode.AUTO)
        vpa.spec.resource_policy = {"containerPolicies": policies}
        return vpa

    return NamedCreator(target.name, create)


async def vertical_pod_autoscaler_creators(
    deployment_names: list[str],
    stateful_set_names: list[str],
    namespace: str,
    reader: ObjectReader,
) -> list[NamedCreator[VerticalPodAutoscaler]]:
    """Return autoscaler creators for the named workloads of a namespace.

    The workloads are looked up once, when the creators are built, so the
    creators themselves stay pure. Workloads that do not exist yet are left
    out and get their autoscaler on a later pass.
    """
    targets: list[tuple[type[Deployment] | type[StatefulSet], str]] = [
        (Deployment, name) for name in deployment_names
    ]
    targets.extend((StatefulSet, name) for name in stateful_set_names)

    creators = []
    for cls, name in targets:
        resource_id = NamedResource(cls.kind, namespace, name)
        try:
            obj = await reader.get(resource_id, cls)
        except ObjectNotFoundError:
            _LOGGER.debug("Skipping autoscaler for missing %s", resource_id)
            continue
        creators.append(_creator(obj, _container_policies(obj)))
    return creators
