"""Kind specific semantic equality of stored and desired objects.

Only the fields managed by the engine take part in the comparison. Fields
written by other actors (status, identity assigned by the store, addresses
allocated by the store) are ignored, so a desired object computed from a
copy of the stored one compares equal when the creator changed nothing that
it owns.
"""

from collections.abc import Callable
import logging
from typing import Any

from cluster_converge.manifest import BaseObject, Kind

_LOGGER = logging.getLogger(__name__)

ManagedView = Callable[[dict[str, Any]], dict[str, Any]]


def _metadata(data: dict[str, Any]) -> dict[str, Any]:
    metadata = data.get("metadata", {})
    return {
        "labels": metadata.get("labels", {}),
        "annotations": metadata.get("annotations", {}),
        "ownerReferences": metadata.get("ownerReferences", []),
    }


def _without(*keys: str) -> ManagedView:
    """Return a view of every top level field except the named ones."""

    def view(data: dict[str, Any]) -> dict[str, Any]:
        result = {
            key: value
            for key, value in data.items()
            if key not in keys and key != "metadata"
        }
        result["metadata"] = _metadata(data)
        return result

    return view


def _service_view(data: dict[str, Any]) -> dict[str, Any]:
    result = _without("status")(data)
    spec = dict(result.get("spec", {}))
    spec.pop("clusterIP", None)
    spec.pop("clusterIPs", None)
    result["spec"] = spec
    return result


MANAGED_VIEWS: dict[Kind, ManagedView] = {
    Kind.NAMESPACE: _without(),
    Kind.SERVICE: _service_view,
    Kind.SECRET: _without(),
    Kind.CONFIG_MAP: _without(),
    Kind.STATEFUL_SET: _without("status"),
    Kind.DEPLOYMENT: _without("status"),
    Kind.CRON_JOB: _without("status"),
    Kind.POD_DISRUPTION_BUDGET: _without("status"),
    Kind.VERTICAL_POD_AUTOSCALER: _without("status"),
    Kind.CLUSTER_ROLE: _without(),
    Kind.CUSTOM_RESOURCE_DEFINITION: _without("status"),
    Kind.CLUSTER: _without("status"),
}


def managed_view(obj: BaseObject) -> dict[str, Any]:
    """Return the fields of the object that are managed by the engine."""
    return MANAGED_VIEWS[obj.kind](obj.to_dict())


def semantically_equal(current: BaseObject, desired: BaseObject) -> bool:
    """Return True if the desired object requires no update of the current one."""
    if current.kind != desired.kind:
        raise ValueError(f"Can't compare {current.kind} with {desired.kind}")
    return managed_view(current) == managed_view(desired)
