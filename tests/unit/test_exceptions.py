"""Tests for domain and transport exceptions (error_code, message, details)."""

import pytest

from educore.core.constants import ERROR_MESSAGES
from educore.domain.exceptions import (
    EducoreException,
    InvalidMutationTransitionError,
    LoaderNotRegisteredError,
    TenantNotReadyError,
)
from educore.infrastructure.exceptions import (
    AuthError,
    ClientError,
    NetworkError,
    NotFoundError,
    RequestSetupError,
    ServerError,
    TransportError,
    ValidationError,
)


def test_educore_exception_default_error_code() -> None:
    """Base EducoreException uses class name as error_code when not provided."""
    exc = EducoreException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "EducoreException"
    assert exc.details == {}


def test_educore_exception_custom_error_code_and_details() -> None:
    exc = EducoreException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}
    assert str(exc) == "Oops"


def test_tenant_not_ready() -> None:
    exc = TenantNotReadyError("fetch departments")
    assert exc.error_code == "TENANT_NOT_READY"
    assert exc.details == {"operation": "fetch departments"}
    assert "fetch departments" in exc.message


def test_invalid_mutation_transition() -> None:
    exc = InvalidMutationTransitionError("confirmed", "rolled_back")
    assert exc.error_code == "INVALID_MUTATION_TRANSITION"
    assert exc.details == {"current": "confirmed", "target": "rolled_back"}


def test_loader_not_registered() -> None:
    exc = LoaderNotRegisteredError("departments")
    assert exc.error_code == "LOADER_NOT_REGISTERED"
    assert exc.details["resource_type"] == "departments"


@pytest.mark.parametrize(
    "exc",
    [
        ValidationError(),
        AuthError(401),
        NotFoundError("/x"),
        ServerError(500),
        NetworkError("down"),
        RequestSetupError("bad"),
        ClientError(400),
    ],
)
def test_transport_errors_are_educore_exceptions(exc: TransportError) -> None:
    assert isinstance(exc, TransportError)
    assert isinstance(exc, EducoreException)


def test_validation_error_carries_field_errors() -> None:
    exc = ValidationError({"name": ["Required"]}, response_body={"success": False})
    assert exc.status_code == 422
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.field_errors == {"name": ["Required"]}
    assert exc.details["errors"] == {"name": ["Required"]}
    assert exc.message == ERROR_MESSAGES["VALIDATION_ERROR"]


def test_validation_error_prefers_server_message() -> None:
    assert ValidationError(message="Name is required").message == "Name is required"


def test_auth_error_codes() -> None:
    assert AuthError(401).error_code == "UNAUTHORIZED"
    assert AuthError(403).error_code == "FORBIDDEN"


def test_not_found_records_endpoint() -> None:
    exc = NotFoundError("/departments/9")
    assert exc.status_code == 404
    assert exc.details["endpoint"] == "/departments/9"


def test_network_error_has_no_status() -> None:
    exc = NetworkError("ConnectError: refused")
    assert exc.status_code is None
    assert exc.details == {"reason": "ConnectError: refused"}
    assert exc.message == ERROR_MESSAGES["NETWORK_ERROR"]


def test_client_error_default_message() -> None:
    exc = ClientError(409)
    assert exc.message == "HTTP Error 409"
    assert exc.details == {"status_code": 409}
