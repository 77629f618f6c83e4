"""Creators and the wrappers composed around them.

A creator computes the desired state of one object from the currently stored
object, or from an empty object of the same kind when nothing is stored yet.
Creators must be pure: all of their inputs are captured when they are
registered, so applying a creator to its own output yields an equal object.

Cross-cutting policy is layered on top of a creator with modifiers, functions
that take a creator and return a new one (e.g. stamping the owner reference
or forcing an autoscaler off) without any branching inside the creator.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import functools
import logging
from typing import Generic, TypeVar

from cluster_converge.manifest import (
    BaseObject,
    Cluster,
    OwnerReference,
    PodUpdatePolicy,
    UpdateMode,
    VerticalPodAutoscaler,
)

__all__ = [
    "Creator",
    "ObjectModifier",
    "NamedCreator",
    "wrap",
    "compose",
    "apply_modifiers",
    "owner_ref_wrapper",
    "cluster_owner_ref",
    "disable_autoscaler_wrapper",
]

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)

Creator = Callable[[T], T]
"""Computes the desired object from the existing one; raises CreatorError."""

ObjectModifier = Callable[[Creator[T]], Creator[T]]
"""Returns a creator that post-processes the result of another creator."""


@dataclass(frozen=True)
class NamedCreator(Generic[T]):
    """A registry entry: the name of an object and the creator for it."""

    name: str
    """The name of the object in the store."""

    creator: Creator[T]
    """Computes the desired state of the object."""


def wrap(creator: Creator[T], transform: Callable[[T], T]) -> Creator[T]:
    """Return a creator that applies `transform` to the output of `creator`.

    Errors raised by `creator` propagate as is and `transform` is not called.
    """

    @functools.wraps(creator)
    def wrapped(obj: T) -> T:
        return transform(creator(obj))

    return wrapped


def compose(*modifiers: ObjectModifier[T]) -> ObjectModifier[T]:
    """Combine modifiers into one, applying them in the order given.

    The first modifier wraps the creator directly, so its transform runs
    first on the creator output. Grouping does not change the result.
    """

    def composed(creator: Creator[T]) -> Creator[T]:
        return functools.reduce(lambda c, modifier: modifier(c), modifiers, creator)

    return composed


def apply_modifiers(creator: Creator[T], modifiers: Iterable[ObjectModifier[T]]) -> Creator[T]:
    """Return the creator wrapped by each of the modifiers, in order."""
    return compose(*modifiers)(creator)


def cluster_owner_ref(cluster: Cluster) -> OwnerReference:
    """Return the controller owner reference pointing at a tenant cluster."""
    if not cluster.metadata.uid:
        raise ValueError(f"Cluster {cluster.name} has no uid assigned by the store")
    return OwnerReference(
        api_version=cluster.api_version,
        kind=str(cluster.kind),
        name=cluster.name,
        uid=cluster.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )


def owner_ref_wrapper(ref: OwnerReference) -> ObjectModifier[T]:
    """Return a modifier that makes `ref` the controller of the created object.

    Any other controller reference is replaced so the object has exactly one
    controller. References that are not controllers are left alone.
    """

    def set_owner(obj: T) -> T:
        refs = [
            existing
            for existing in obj.metadata.owner_references
            if not existing.controller
        ]
        refs.append(
            OwnerReference(
                api_version=ref.api_version,
                kind=ref.kind,
                name=ref.name,
                uid=ref.uid,
                controller=True,
                block_owner_deletion=True,
            )
        )
        obj.metadata.owner_references = refs
        return obj

    def modifier(creator: Creator[T]) -> Creator[T]:
        return wrap(creator, set_owner)

    return modifier


def _update_mode_off(vpa: VerticalPodAutoscaler) -> VerticalPodAutoscaler:
    if vpa.spec.update_policy is None:
        vpa.spec.update_policy = PodUpdatePolicy()
    vpa.spec.update_policy.update_mode = UpdateMode.OFF
    return vpa


def disable_autoscaler_wrapper(
    creator: Creator[VerticalPodAutoscaler],
) -> Creator[VerticalPodAutoscaler]:
    """Return a creator that sets the autoscaler update mode to Off.

    This disables any processing of the autoscaler while still keeping the
    object around, which is easier than teaching each creator about it.
    """
    return wrap(creator, _update_mode_off)
