"""Tenant context: the organization/branch scope every fetch and mutation runs under.

The context is an explicit object handed to the query and mutation layers
(no module-level state). It is ready once both ids are known. Changing the
scope never touches cached entries; it only changes the keys subsequent
reads compute, and listeners are told so in-flight work for the old scope
can be discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from educore.core.config import Settings
from educore.domain.exceptions import TenantNotReadyError
from educore.domain.value_objects import TenantScope
from educore.infrastructure.http.session import AuthSession

logger = logging.getLogger(__name__)

ScopeListener = Callable[[TenantScope | None], None]

# Claim names carried by access tokens issued for the school-administration API.
ORGANIZATION_CLAIM = "organizationId"
BRANCH_CLAIM = "branchId"


class TenantContext:
    """Current organization/branch pair plus readiness."""

    def __init__(self, organization_id: str = "", branch_id: str = "") -> None:
        self._organization_id = organization_id.strip()
        self._branch_id = branch_id.strip()
        self._listeners: list[ScopeListener] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> TenantContext:
        """Context seeded with the configured default organization and branch."""
        return cls(settings.default_organization_id, settings.default_branch_id)

    @property
    def organization_id(self) -> str:
        return self._organization_id

    @property
    def branch_id(self) -> str:
        return self._branch_id

    @property
    def ready(self) -> bool:
        return bool(self._organization_id and self._branch_id)

    @property
    def scope(self) -> TenantScope | None:
        """Current scope, or None while not ready."""
        if not self.ready:
            return None
        return TenantScope(self._organization_id, self._branch_id)

    def require_ready(self, operation: str) -> TenantScope:
        """Return the current scope.

        Raises:
            TenantNotReadyError: If organization or branch is not yet known.
        """
        scope = self.scope
        if scope is None:
            raise TenantNotReadyError(operation)
        return scope

    def add_listener(self, listener: ScopeListener) -> Callable[[], None]:
        """Call listener(new_scope) whenever the scope changes; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def set_scope(self, organization_id: str, branch_id: str) -> None:
        """Switch to another organization/branch; notifies listeners when it changed."""
        organization_id = organization_id.strip()
        branch_id = branch_id.strip()
        if (organization_id, branch_id) == (self._organization_id, self._branch_id):
            return
        previous = self.scope
        self._organization_id = organization_id
        self._branch_id = branch_id
        logger.info(
            "Tenant scope changed: %s -> %s",
            previous,
            self.scope,
        )
        new_scope = self.scope
        for listener in list(self._listeners):
            listener(new_scope)

    def set_organization_id(self, organization_id: str) -> None:
        self.set_scope(organization_id, self._branch_id)

    def set_branch_id(self, branch_id: str) -> None:
        self.set_scope(self._organization_id, branch_id)

    def clear(self) -> None:
        self.set_scope("", "")

    def load_from_session(
        self, session: AuthSession, settings: Settings | None = None
    ) -> bool:
        """Resolve the scope from the token claims, falling back to configured defaults.

        Args:
            session: Auth session whose token may carry organization/branch claims.
            settings: Source of default ids when the token has no claims.

        Returns:
            True if the context is ready afterwards.
        """
        claims = session.unverified_claims()
        organization_id = claims.get(ORGANIZATION_CLAIM)
        branch_id = claims.get(BRANCH_CLAIM)
        if organization_id and branch_id:
            self.set_scope(str(organization_id), str(branch_id))
        elif settings is not None:
            self.set_scope(settings.default_organization_id, settings.default_branch_id)
        return self.ready
