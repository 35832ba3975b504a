"""Transport error taxonomy.

Every terminal transport failure is one of these classes. They extend
EducoreException so presentation code can map them to toasts and form
errors consistently.
"""

from typing import Any

from educore.core.constants import ERROR_MESSAGES
from educore.domain.exceptions import EducoreException


class TransportError(EducoreException):
    """Base exception for API transport failures.

    Attributes:
        status_code: HTTP status when a response was received, else None.
        response_body: Decoded response body when available.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str,
        *,
        status_code: int | None = None,
        response_body: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if status_code is not None:
            merged.setdefault("status_code", status_code)
        super().__init__(message, error_code, merged)
        self.status_code = status_code
        self.response_body = response_body


class ValidationError(TransportError):
    """HTTP 422: the server rejected the payload; carries field -> messages."""

    def __init__(
        self,
        field_errors: dict[str, list[str]] | None = None,
        *,
        message: str | None = None,
        response_body: Any = None,
    ) -> None:
        self.field_errors = field_errors or {}
        super().__init__(
            message or ERROR_MESSAGES["VALIDATION_ERROR"],
            "VALIDATION_ERROR",
            status_code=422,
            response_body=response_body,
            details={"errors": self.field_errors},
        )


class AuthError(TransportError):
    """HTTP 401 (token cleared) or 403 (forbidden)."""

    def __init__(self, status_code: int, *, response_body: Any = None) -> None:
        self.forbidden = status_code == 403
        key = "FORBIDDEN" if self.forbidden else "UNAUTHORIZED"
        super().__init__(
            ERROR_MESSAGES[key],
            key,
            status_code=status_code,
            response_body=response_body,
        )


class NotFoundError(TransportError):
    """HTTP 404."""

    def __init__(self, endpoint: str, *, response_body: Any = None) -> None:
        super().__init__(
            ERROR_MESSAGES["NOT_FOUND"],
            "NOT_FOUND",
            status_code=404,
            response_body=response_body,
            details={"endpoint": endpoint},
        )


class ServerError(TransportError):
    """HTTP 5xx; retried by the transport, surfaced once attempts are exhausted."""

    retryable = True

    def __init__(self, status_code: int, *, response_body: Any = None) -> None:
        super().__init__(
            ERROR_MESSAGES["SERVER_ERROR"],
            "SERVER_ERROR",
            status_code=status_code,
            response_body=response_body,
        )


class NetworkError(TransportError):
    """No response received (connection failure or timeout); retried."""

    retryable = True

    def __init__(self, reason: str) -> None:
        super().__init__(
            ERROR_MESSAGES["NETWORK_ERROR"],
            "NETWORK_ERROR",
            details={"reason": reason},
        )


class RequestSetupError(TransportError):
    """The request could not be built and never left the client."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            ERROR_MESSAGES["REQUEST_ERROR"],
            "REQUEST_SETUP_ERROR",
            details={"reason": reason},
        )


class ClientError(TransportError):
    """Any other 4xx response, or a 2xx envelope reporting success=false."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        *,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message or f"HTTP Error {status_code}",
            "CLIENT_ERROR",
            status_code=status_code,
            response_body=response_body,
        )


class ResponseParseError(TransportError):
    """A response arrived but its body does not match the expected schema."""

    def __init__(self, reason: str, *, response_body: Any = None) -> None:
        super().__init__(
            ERROR_MESSAGES["RESPONSE_ERROR"],
            "RESPONSE_PARSE_ERROR",
            response_body=response_body,
            details={"reason": reason},
        )
