"""Store module for reading and writing objects in the resource store."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from cluster_converge.manifest import BaseObject, NamedResource

T = TypeVar("T", bound=BaseObject)


class StoreEvent(str, Enum):
    """Enum for store events."""

    OBJECT_CREATED = "object_created"
    OBJECT_UPDATED = "object_updated"


class ObjectReader(ABC):
    """Read access to objects in the store."""

    @abstractmethod
    async def get(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object by resource identity and type.

        The returned object is owned by the caller and may be modified freely.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StoreUnavailableError: If the store can't be reached.
        """


class ResourceStore(ObjectReader):
    """Abstract base class for the declarative store holding all objects."""

    @abstractmethod
    async def create(self, obj: T) -> T:
        """Create a new object in the store.

        Returns the object as stored, including the fields assigned by the store.

        Raises:
            AlreadyExistsError: If an object with the same identity exists.
        """

    @abstractmethod
    async def update(self, obj: T) -> T:
        """Replace an existing object in the store.

        The update is rejected if the object carries a resource version that
        no longer matches the stored one. Store owned fields such as the
        status are preserved.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StoreConflictError: If the object was modified concurrently.
        """

    @abstractmethod
    def list_objects(self, kind: str | None = None) -> list[BaseObject]:
        """List all objects in the store, optionally filtered by kind."""

    @abstractmethod
    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[[NamedResource, BaseObject], None],
    ) -> Callable[[], None]:
        """Register a callback for a specific event (object created or updated).

        Returns a callable that can be called to remove the listener.
        """
