"""Domain exceptions for the Educore client.

Defines the base exception and errors raised by the cache and mutation
layers. Transport errors live in educore.infrastructure.exceptions and
extend EducoreException so callers can catch everything in one place.
"""

from typing import Any


class EducoreException(Exception):
    """Base exception for all Educore client errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class TenantNotReadyError(EducoreException):
    """Raised when a fetch or mutation is attempted before the tenant scope is resolved."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Organization context is not ready; cannot {operation}",
            "TENANT_NOT_READY",
            {"operation": operation},
        )


class InvalidMutationTransitionError(EducoreException):
    """Raised when a mutation is moved to a state its lifecycle does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Invalid mutation transition: {current} -> {target}",
            "INVALID_MUTATION_TRANSITION",
            {"current": current, "target": target},
        )


class LoaderNotRegisteredError(EducoreException):
    """Raised when a fetch is requested for a resource type with no registered loader."""

    def __init__(self, resource_type: str) -> None:
        super().__init__(
            f"No loader registered for resource type: {resource_type}",
            "LOADER_NOT_REGISTERED",
            {"resource_type": resource_type},
        )
