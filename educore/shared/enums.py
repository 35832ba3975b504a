"""Shared enumerations for the Educore client.

Cross-cutting enums used by application and infrastructure (mutation
lifecycle, request lifecycle, export formats).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class MutationKind(_ValuesMixin, str, Enum):
    """Kind of cache-affecting mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class MutationStatus(_ValuesMixin, str, Enum):
    """Lifecycle of a single optimistic mutation."""

    PENDING = "pending"
    OPTIMISTIC_APPLIED = "optimistic_applied"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class RequestState(_ValuesMixin, str, Enum):
    """Lifecycle of a single transport request (one attempt chain)."""

    INIT = "init"
    SENT = "sent"
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


class ExportFormat(_ValuesMixin, str, Enum):
    """File formats accepted by resource export endpoints."""

    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"
