from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base class for errors raised by the repository layer."""


# PUBLIC_INTERFACE
class EntityNotFoundError(RepositoryError):
    """Requested id has no corresponding row."""

    def __init__(self, entity_name: str, entity_id: Any) -> None:
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"{entity_name} with ID {entity_id} not found")


# PUBLIC_INTERFACE
class InvalidStateTransitionError(RepositoryError):
    """Soft-delete contract violation (delete of a deleted row, restore of an active one)."""


# PUBLIC_INTERFACE
class RepositoryOperationError(RepositoryError):
    """
    Storage failure wrapped by the repository.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Failed to execute operation: {operation}")


# PUBLIC_INTERFACE
class AccountLockedError(Exception):
    """Raised by the authentication flow while an identity is locked out."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(
            "Account is temporarily locked due to too many failed login attempts. "
            "Please try again later."
        )


class AuthenticationError(Exception):
    """Unexpected failure while authenticating a user."""
