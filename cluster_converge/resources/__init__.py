"""Concrete creators for the objects of a tenant control plane.

Each module covers one component. Creators are built from a TemplateData
instance that captures the inputs of one reconcile pass.
"""

from .data import TemplateData

__all__ = ["TemplateData"]
