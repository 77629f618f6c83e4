"""Exceptions related to cluster-converge."""

__all__ = [
    "ConvergeException",
    "InputException",
    "CreatorError",
    "StoreException",
    "ObjectNotFoundError",
    "AlreadyExistsError",
    "StoreConflictError",
    "StoreUnavailableError",
]


class ConvergeException(Exception):
    """Generic base exception used for this library."""


class InputException(ConvergeException):
    """Raised when the input files or values are not formatted as expected."""


class CreatorError(InputException):
    """Raised when the desired state of an object could not be computed."""

    def __init__(self, resource_name: str, message: str | None) -> None:
        super().__init__(
            f"Failed to compute desired state of {resource_name}: "
            f"{message or 'Unknown error'}"
        )
        self.resource_name = resource_name
        self.message = message


class StoreException(ConvergeException):
    """Raised when the resource store rejects or fails an operation."""


class ObjectNotFoundError(StoreException):
    """Raised when an object is not found in the store."""


class AlreadyExistsError(StoreException):
    """Raised when creating an object that already exists in the store."""


class StoreConflictError(StoreException):
    """Raised when an update was based on a stale version of the object."""


class StoreUnavailableError(StoreException):
    """Raised when the store can't be reached; the operation may be retried."""
