"""Client lifespan: wiring and teardown of the data-access layer.

Single place where the shared transport, cache, tenant context and query
coordinator are built. Pages obtain ResourceCollections from the returned
container; no business logic here.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx

from educore.application.services.resource_service import ResourceService
from educore.application.use_cases.collection import ResourceCollection
from educore.application.use_cases.query_coordinator import QueryCoordinator
from educore.core.config import Settings, get_settings
from educore.core.tenant_context import TenantContext
from educore.infrastructure.cache.resource_cache import ResourceCache
from educore.infrastructure.http.client import TransportClient
from educore.infrastructure.http.session import AuthSession
from educore.schemas.entity import BaseDto, BaseEntity
from educore.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class EducoreClient:
    """Shared components of one signed-in client session."""

    settings: Settings
    session: AuthSession
    transport: TransportClient
    tenant: TenantContext
    cache: ResourceCache
    coordinator: QueryCoordinator
    _collections: list[ResourceCollection[Any, Any]] = field(default_factory=list)

    def collection[TEntity: BaseEntity, TDto: BaseDto](
        self,
        service_type: type[ResourceService[TEntity, TDto]],
        *,
        page_index: int | None = None,
        page_size: int | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> ResourceCollection[TEntity, TDto]:
        """Build a collection for service_type bound to the shared components."""
        collection = ResourceCollection(
            service_type(self.transport),
            self.cache,
            self.coordinator,
            self.tenant,
            page_index=page_index,
            page_size=page_size,
            filters=filters,
            settings=self.settings,
        )
        self._collections.append(collection)
        return collection

    def sign_in(self, access_token: str) -> bool:
        """Store the token and resolve the tenant scope from it.

        Returns:
            True if the tenant context is ready afterwards.
        """
        self.session.set_token(access_token)
        return self.tenant.load_from_session(self.session, self.settings)

    def sign_out(self) -> None:
        """Forget the token and tenant; cached pages of other tenants stay unreachable."""
        self.session.clear()
        self.tenant.clear()
        self.cache.clear()


@asynccontextmanager
async def create_client(
    access_token: str | None = None,
    *,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[EducoreClient]:
    """Build the client components, yield them, and tear them down on exit.

    Args:
        access_token: Bearer token; its claims seed the tenant scope.
        settings: Overrides get_settings().
        http_client: Pre-built httpx client (tests pass one with a mock transport).
    """
    settings = settings or get_settings()
    if settings.debug:
        setup_logging(settings)

    # ---- Startup ----
    session = AuthSession()
    transport = TransportClient(session, settings=settings, http_client=http_client)
    tenant = TenantContext.from_settings(settings)
    cache = ResourceCache(settings=settings)
    coordinator = QueryCoordinator(cache, tenant)
    client = EducoreClient(
        settings=settings,
        session=session,
        transport=transport,
        tenant=tenant,
        cache=cache,
        coordinator=coordinator,
    )
    if access_token:
        client.sign_in(access_token)
    logger.info(
        "%s %s started (base URL %s, tenant %s)",
        settings.app_name, settings.app_version, settings.api_base_url, tenant.scope,
    )

    try:
        yield client
    finally:
        # ---- Shutdown ----
        for collection in client._collections:
            collection.close()
        await coordinator.aclose()
        await transport.aclose()
        logger.info("Client closed")
