"""
Reconciler implementation.

The reconciler is the convergence primitive used for every kind of object.
Given the registry of creators for one kind and a target namespace it visits
each entry in registration order, fetches the object through the read cache
and either creates it, updates it, or leaves it alone when the stored object
already matches the desired state.

Key Concepts:
    - Creator: Pure function computing the desired state of one object.
    - ObjectModifier: Wrapper composed around every creator, e.g. the owner
      reference wrapper.
    - Semantic equality: Only fields managed by the engine are compared, so
      re-applying a creator to its own output never issues a write.

The reconciler never retries. Any error stops processing of the remaining
entries and is raised to the caller; objects that were already written stay
written and are picked up again on the next pass.
"""

import copy
from collections.abc import Iterable
import logging
from typing import TypeVar

from cluster_converge.exceptions import CreatorError, ObjectNotFoundError
from cluster_converge.manifest import BaseObject, NamedResource
from cluster_converge.store import ObjectReader, ResourceStore

from .creator import Creator, NamedCreator, ObjectModifier, apply_modifiers
from .equality import semantically_equal

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)


def _run_creator(creator: Creator[T], obj: T, resource_id: NamedResource) -> T:
    """Invoke a creator, turning unexpected failures into a CreatorError."""
    try:
        result = creator(obj)
    except CreatorError:
        raise
    except Exception as err:
        raise CreatorError(str(resource_id), f"{type(err).__name__}: {err}") from err
    if not isinstance(result, obj.__class__):
        raise CreatorError(
            str(resource_id),
            f"creator returned {type(result).__name__}, expected {obj.__class__.__name__}",
        )
    if result.resource_id != resource_id:
        raise CreatorError(
            str(resource_id), f"creator changed the object identity to {result.resource_id}"
        )
    return result


class Reconciler:
    """Converges objects of any kind in the store to their desired state."""

    def __init__(self, store: ResourceStore, reader: ObjectReader | None = None) -> None:
        """Initialize the Reconciler.

        Args:
            store: The resource store that objects are written to.
            reader: Read cache used to look up the current objects. Reads go
                to the store directly when not set.
        """
        self._store = store
        self._reader = reader or store

    async def reconcile(
        self,
        cls: type[T],
        creators: Iterable[NamedCreator[T]],
        namespace: str | None,
        *modifiers: ObjectModifier[T],
    ) -> None:
        """Reconcile every object in the registry, in registration order.

        Args:
            cls: The object class for the kind being reconciled.
            creators: The registry of named creators for the kind.
            namespace: The namespace of the objects, None for cluster scoped kinds.
            modifiers: Wrappers composed around every creator, e.g. the owner
                reference wrapper.

        Raises:
            CreatorError: If the desired state of an object can't be computed.
            StoreException: If the store rejects or fails a read or a write.
        """
        for named in creators:
            await self.ensure_object(
                cls, named.name, apply_modifiers(named.creator, modifiers), namespace
            )

    async def ensure_object(
        self,
        cls: type[T],
        name: str,
        creator: Creator[T],
        namespace: str | None,
    ) -> None:
        """Create or update a single object using its creator."""
        resource_id = NamedResource(cls.kind, namespace, name)
        try:
            existing = await self._reader.get(resource_id, cls)
        except ObjectNotFoundError:
            _LOGGER.debug("Object %s does not exist yet", resource_id)
            desired = _run_creator(creator, cls.new(name, namespace), resource_id)
            await self._store.create(desired)
            _LOGGER.info("Created %s", resource_id)
            return

        desired = _run_creator(creator, copy.deepcopy(existing), resource_id)
        if semantically_equal(existing, desired):
            _LOGGER.debug("Object %s is up to date", resource_id)
            return
        await self._store.update(desired)
        _LOGGER.info("Updated %s", resource_id)
