"""The declarative reconciliation engine.

This module provides the creator types, the wrappers composed around them
and the reconciler that applies them against the store.
"""

from .creator import (
    Creator,
    ObjectModifier,
    NamedCreator,
    wrap,
    compose,
    apply_modifiers,
    owner_ref_wrapper,
    cluster_owner_ref,
    disable_autoscaler_wrapper,
)
from .equality import semantically_equal
from .reconciler import Reconciler

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
    "semantically_equal",
    "Reconciler",
]
