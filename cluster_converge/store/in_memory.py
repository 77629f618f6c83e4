"""Module for in memory object store."""

import copy
from collections import defaultdict
from collections.abc import Callable
import logging
from typing import Any, DefaultDict, TypeVar
import uuid

from cluster_converge.manifest import (
    BaseObject,
    NamedResource,
    Kind,
    CLUSTER_SCOPED,
)
from cluster_converge.exceptions import (
    AlreadyExistsError,
    InputException,
    ObjectNotFoundError,
    StoreConflictError,
)

from .store import ResourceStore, StoreEvent

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)

# Service fields that are allocated by the store and survive updates that omit them
SERVICE_ALLOCATED_FIELDS = ("clusterIP", "clusterIPs")


class InMemoryStore(ResourceStore):
    """In-memory implementation of the ResourceStore interface.

    Objects are keyed by NamedResource and copied on the way in and out so
    callers never share state with the store. The store assigns a uid and a
    monotonically increasing resource version and rejects updates based on a
    stale resource version, like an API server would.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryStore."""
        self._objects: dict[NamedResource, BaseObject] = {}
        self._listeners: DefaultDict[StoreEvent, list[Callable[..., None]]] = (
            defaultdict(list)
        )
        self._version = 0
        self._service_ips = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _check_scope(self, obj: BaseObject) -> None:
        if not obj.metadata.name:
            raise InputException(f"{obj.kind} object is missing metadata.name")
        if obj.kind in CLUSTER_SCOPED and obj.metadata.namespace:
            raise InputException(
                f"{obj.kind} {obj.metadata.name} is cluster scoped but has namespace "
                f"{obj.metadata.namespace}"
            )
        if obj.kind not in CLUSTER_SCOPED and not obj.metadata.namespace:
            raise InputException(
                f"{obj.kind} {obj.metadata.name} is namespaced but has no namespace"
            )

    async def get(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object by resource identity and type."""
        obj = self._objects.get(resource_id)
        if obj is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if not isinstance(obj, cls):
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {cls.__name__} (was {obj.__class__.__name__})"
            )
        return copy.deepcopy(obj)

    async def create(self, obj: T) -> T:
        """Create a new object in the store."""
        self._check_scope(obj)
        resource_id = obj.resource_id
        if resource_id in self._objects:
            raise AlreadyExistsError(f"Object {resource_id} already exists")
        stored = copy.deepcopy(obj)
        stored.metadata.uid = str(uuid.uuid4())
        stored.metadata.resource_version = self._next_version()
        stored.metadata.generation = 1
        if stored.kind == Kind.SERVICE:
            self._allocate_service_ip(stored)
        _LOGGER.debug("Creating object %s in store", resource_id)
        self._objects[resource_id] = stored
        self._fire_event(StoreEvent.OBJECT_CREATED, resource_id, stored)
        return copy.deepcopy(stored)

    async def update(self, obj: T) -> T:
        """Replace an existing object in the store."""
        self._check_scope(obj)
        resource_id = obj.resource_id
        if (existing := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if not isinstance(existing, obj.__class__):
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {obj.__class__.__name__} (was {existing.__class__.__name__})"
            )
        requested = obj.metadata.resource_version
        if requested is not None and requested != existing.metadata.resource_version:
            raise StoreConflictError(
                f"Object {resource_id} has been modified; resource version "
                f"{requested} does not match {existing.metadata.resource_version}"
            )

        stored = copy.deepcopy(obj)
        stored.metadata.uid = existing.metadata.uid
        stored.metadata.resource_version = self._next_version()
        stored.metadata.generation = existing.metadata.generation or 1
        if _spec(stored) != _spec(existing):
            stored.metadata.generation += 1
        # The status subresource is only written by the owners of the status
        if hasattr(existing, "status"):
            stored.status = copy.deepcopy(existing.status)  # type: ignore[attr-defined]
        if stored.kind == Kind.SERVICE:
            for key in SERVICE_ALLOCATED_FIELDS:
                if key in existing.spec and key not in stored.spec:  # type: ignore[attr-defined]
                    stored.spec[key] = copy.deepcopy(existing.spec[key])  # type: ignore[attr-defined]

        _LOGGER.debug("Updating object %s in store", resource_id)
        self._objects[resource_id] = stored
        self._fire_event(StoreEvent.OBJECT_UPDATED, resource_id, stored)
        return copy.deepcopy(stored)

    def set_status(self, resource_id: NamedResource, status: Any) -> None:
        """Overwrite the status of an object, as the owner of the status would."""
        if (existing := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if not hasattr(existing, "status"):
            raise ValueError(f"Object kind {resource_id.kind} has no status")
        existing.status = copy.deepcopy(status)  # type: ignore[attr-defined]
        existing.metadata.resource_version = self._next_version()
        _LOGGER.debug("Updated status of %s", resource_id)
        self._fire_event(StoreEvent.OBJECT_UPDATED, resource_id, existing)

    def _allocate_service_ip(self, service: BaseObject) -> None:
        spec: dict[str, Any] = service.spec  # type: ignore[attr-defined]
        if "clusterIP" in spec:
            return
        self._service_ips += 1
        ip = f"10.96.{self._service_ips // 250}.{self._service_ips % 250 + 1}"
        spec["clusterIP"] = ip
        spec["clusterIPs"] = [ip]

    def list_objects(self, kind: str | None = None) -> list[BaseObject]:
        """List all objects in the store, optionally filtered by kind."""
        return [
            copy.deepcopy(obj)
            for resource_id, obj in sorted(self._objects.items())
            if kind is None or resource_id.kind == kind
        ]

    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[[NamedResource, BaseObject], None],
    ) -> Callable[[], None]:
        """Register a callback for a specific event (object created or updated)."""

        def remove() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        self._listeners[event].append(callback)
        return remove

    def _fire_event(self, event: StoreEvent, *args: Any) -> None:
        for cb in list(self._listeners[event]):  # Iterate over a copy for safe removal
            try:
                cb(*args)
            except Exception:
                _LOGGER.exception("Store listener callback failed for event %s", event)


def _spec(obj: BaseObject) -> Any:
    """Return the part of an object that counts towards its generation."""
    data = obj.to_dict()
    data.pop("metadata", None)
    data.pop("status", None)
    return data
