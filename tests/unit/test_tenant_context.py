"""TenantContext readiness, listeners and resolution from token claims."""

import pytest
from jose import jwt

from educore.core.config import Settings
from educore.core.tenant_context import TenantContext
from educore.domain.exceptions import TenantNotReadyError
from educore.domain.value_objects import TenantScope
from educore.infrastructure.http.session import AuthSession


def _token(**claims) -> str:
    return jwt.encode({"sub": "user-1", **claims}, "test-secret", algorithm="HS256")


def test_not_ready_until_both_ids_known() -> None:
    tenant = TenantContext()
    assert tenant.ready is False
    assert tenant.scope is None

    tenant.set_organization_id("org-1")
    assert tenant.ready is False

    tenant.set_branch_id("br-1")
    assert tenant.ready is True
    assert tenant.scope == TenantScope("org-1", "br-1")


def test_require_ready_raises_when_not_ready() -> None:
    with pytest.raises(TenantNotReadyError) as exc_info:
        TenantContext("org-1", "").require_ready("create departments")
    assert exc_info.value.details["operation"] == "create departments"


def test_require_ready_returns_scope() -> None:
    assert TenantContext("org-1", "br-1").require_ready("x") == TenantScope("org-1", "br-1")


def test_listeners_notified_on_change_only() -> None:
    tenant = TenantContext("org-1", "br-1")
    seen: list = []
    remove = tenant.add_listener(seen.append)

    tenant.set_scope("org-1", "br-1")
    tenant.set_scope("org-1", "br-2")
    tenant.clear()
    remove()
    tenant.set_scope("org-2", "br-9")

    assert seen == [TenantScope("org-1", "br-2"), None]


def test_whitespace_ids_are_not_ready() -> None:
    assert TenantContext("  ", "br-1").ready is False


def test_load_from_session_uses_token_claims() -> None:
    tenant = TenantContext()
    session = AuthSession(_token(organizationId="org-7", branchId=42))

    assert tenant.load_from_session(session) is True
    assert tenant.scope == TenantScope("org-7", "42")


def test_load_from_session_falls_back_to_settings() -> None:
    settings = Settings(
        _env_file=None, default_organization_id="org-d", default_branch_id="br-d"
    )
    tenant = TenantContext()

    assert tenant.load_from_session(AuthSession(_token()), settings) is True
    assert tenant.scope == TenantScope("org-d", "br-d")


def test_load_from_session_with_malformed_token() -> None:
    tenant = TenantContext()
    assert tenant.load_from_session(AuthSession("not-a-jwt")) is False


def test_from_settings() -> None:
    settings = Settings(
        _env_file=None, default_organization_id="org-d", default_branch_id="br-d"
    )
    assert TenantContext.from_settings(settings).scope == TenantScope("org-d", "br-d")


def test_session_authorization_header() -> None:
    assert AuthSession().authorization_header() == {}
    assert AuthSession("abc").authorization_header() == {"Authorization": "Bearer abc"}
