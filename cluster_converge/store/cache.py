"""Read-through cache in front of the resource store."""

import copy
import logging
from collections.abc import Callable
from typing import TypeVar

from cluster_converge.manifest import BaseObject, NamedResource

from .store import ObjectReader, ResourceStore, StoreEvent

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)


class CachedReader(ObjectReader):
    """Serves reads from a local copy of the objects seen in the store.

    A miss is read through to the store and remembered. Objects written to
    the store are refreshed via store listeners, so the cache only lags the
    store when writes happen outside of the listener's view. Absent objects
    are never cached.
    """

    def __init__(self, store: ResourceStore) -> None:
        """Initialize the CachedReader."""
        self._store = store
        self._objects: dict[NamedResource, BaseObject] = {}
        self._remove_listeners: list[Callable[[], None]] = [
            store.add_listener(StoreEvent.OBJECT_CREATED, self._on_object),
            store.add_listener(StoreEvent.OBJECT_UPDATED, self._on_object),
        ]

    def _on_object(self, resource_id: NamedResource, obj: BaseObject) -> None:
        self._objects[resource_id] = copy.deepcopy(obj)

    async def get(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object from the cache, reading through on a miss."""
        if (obj := self._objects.get(resource_id)) is not None:
            if not isinstance(obj, cls):
                raise ValueError(
                    f"Object {resource_id.namespaced_name} is not of type {cls.__name__} (was {obj.__class__.__name__})"
                )
            return copy.deepcopy(obj)
        _LOGGER.debug("Cache miss for %s", resource_id)
        result = await self._store.get(resource_id, cls)
        self._objects[resource_id] = copy.deepcopy(result)
        return result

    def close(self) -> None:
        """Stop following changes in the store."""
        for remove in self._remove_listeners:
            remove()
        self._remove_listeners.clear()
        self._objects.clear()
