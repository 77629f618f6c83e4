"""
The store module is the interface between the engine and the resource store
that holds every managed object.

- Uses NamedResource as the key for all objects.
- Stores values as dataclass instances from manifest.py for type safety.
- The engine only ever calls `get`, `create` and `update`; reads may be served
  by a read-through cache with the same `get` semantics.

This abstract interface allows for various implementations (in-memory, a real
API server client, etc.).
"""

from .store import ObjectReader, ResourceStore, StoreEvent
from .in_memory import InMemoryStore
from .cache import CachedReader

__all__ = [
    "ObjectReader",
    "ResourceStore",
    "StoreEvent",
    "InMemoryStore",
    "CachedReader",
]
