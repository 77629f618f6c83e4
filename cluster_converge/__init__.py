"""
.. include:: ../README.md
"""

__all__ = [
    "manifest",
    "reconciling",
    "orchestrator",
    "registry",
    "resources",
    "store",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
