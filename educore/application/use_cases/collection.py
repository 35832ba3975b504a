"""ResourceCollection: what a list page consumes for one resource.

Ties together the current page/filter selection, the tenant scope, the
cached snapshot and the mutation engine. The collection keeps exactly one
cache subscription (for the key it currently shows), so the page it
displays is refetched in the background when it goes stale and is never
evicted while displayed.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from educore.application.services.resource_service import ResourceService
from educore.application.use_cases.mutation_engine import MutationEngine, MutationInput
from educore.application.use_cases.query_coordinator import QueryCoordinator, QueryStatus
from educore.core.config import Settings, get_settings
from educore.core.tenant_context import TenantContext
from educore.domain.snapshot import PaginatedSnapshot
from educore.domain.value_objects import TenantScope
from educore.infrastructure.cache.keys import CacheKey, CacheKeyPattern
from educore.infrastructure.cache.resource_cache import ResourceCache
from educore.schemas.entity import BaseDto, BaseEntity
from educore.schemas.envelope import BulkResult
from educore.shared.enums import MutationKind

logger = logging.getLogger(__name__)


class ResourceCollection[TEntity: BaseEntity, TDto: BaseDto]:
    """Paged, cached, optimistically mutable view of one resource."""

    def __init__(
        self,
        service: ResourceService[TEntity, TDto],
        cache: ResourceCache,
        coordinator: QueryCoordinator,
        tenant: TenantContext,
        *,
        page_index: int | None = None,
        page_size: int | None = None,
        filters: Mapping[str, Any] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the collection and register the service as the resource's loader.

        Args:
            service: Endpoints of the resource.
            cache: Shared snapshot cache.
            coordinator: Shared query coordinator.
            tenant: Shared tenant context.
            page_index: Initial page (defaults to settings.default_page_index).
            page_size: Initial page size (defaults to settings.default_page_size).
            filters: Initial list filters.
            settings: Source of paging defaults.
        """
        self.settings = settings or get_settings()
        self.service = service
        self.cache = cache
        self.coordinator = coordinator
        self.tenant = tenant
        self.mutations: MutationEngine[TEntity, TDto] = MutationEngine(
            service, cache, coordinator, tenant
        )
        self._page_index = max(
            0, self.settings.default_page_index if page_index is None else page_index
        )
        self._page_size = self._clamp_page_size(
            self.settings.default_page_size if page_size is None else page_size
        )
        self._filters: dict[str, Any] = dict(filters or {})
        self._known_total = 0
        self._subscribed_key: CacheKey | None = None
        self._unsubscribe: Callable[[], None] | None = None

        if not coordinator.has_loader(service.resource_type):
            coordinator.register_loader(service.resource_type, service.list_page)
        self._remove_tenant_listener = tenant.add_listener(self._on_tenant_change)
        self._track()

    @property
    def resource_type(self) -> str:
        return self.service.resource_type

    # ---- Key and subscription ----

    @property
    def key(self) -> CacheKey | None:
        """Key of the page currently shown; None while the tenant is not ready."""
        scope = self.tenant.scope
        if scope is None:
            return None
        return CacheKey.build(
            self.resource_type, scope, self._page_index, self._page_size, self._filters
        )

    def _require_key(self, operation: str) -> CacheKey:
        scope = self.tenant.require_ready(f"{operation} {self.resource_type}")
        return CacheKey.build(
            self.resource_type, scope, self._page_index, self._page_size, self._filters
        )

    def _track(self) -> None:
        """Move the subscription to the current key and signal it if stale or missing."""
        key = self.key
        if key == self._subscribed_key:
            return
        self._release()
        if key is None:
            return
        self._unsubscribe = self.cache.subscribe(key)
        self._subscribed_key = key
        self.cache.get(key)

    def _release(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._subscribed_key = None

    def _on_tenant_change(self, scope: TenantScope | None) -> None:
        self._page_index = 0
        self._known_total = 0
        self._track()

    def close(self) -> None:
        """Stop tracking the tenant and release the cache subscription."""
        self._remove_tenant_listener()
        self._release()

    # ---- Reads ----

    @property
    def snapshot(self) -> PaginatedSnapshot[TEntity] | None:
        """Cached snapshot of the current page, stale or not."""
        key = self.key
        return None if key is None else self.cache.get(key)

    @property
    def items(self) -> tuple[TEntity, ...]:
        snapshot = self.snapshot
        return () if snapshot is None else snapshot.items

    @property
    def total_count(self) -> int:
        """Total of the current page, or the last known total while it loads."""
        snapshot = self.snapshot
        if snapshot is not None:
            self._known_total = snapshot.total_count
        return self._known_total

    @property
    def status(self) -> QueryStatus:
        key = self.key
        if key is None:
            return QueryStatus(has_data=False, is_fetching=False)
        return self.coordinator.status(key)

    @property
    def is_loading(self) -> bool:
        return self.status.is_loading

    @property
    def is_fetching(self) -> bool:
        return self.status.is_fetching

    @property
    def error(self) -> Exception | None:
        return self.status.error

    async def load(self) -> PaginatedSnapshot[TEntity]:
        """Return the current page, fetching it unless a fresh snapshot is cached.

        Raises:
            TenantNotReadyError: If the tenant context is not ready.
            TransportError: Terminal failure of the list request.
        """
        key = self._require_key("load")
        self._track()
        return await self.coordinator.ensure(key)

    async def refetch(self) -> PaginatedSnapshot[TEntity]:
        """Fetch the current page regardless of freshness."""
        key = self._require_key("refetch")
        self._track()
        return await self.coordinator.fetch(key)

    def invalidate(self) -> list[CacheKey]:
        """Mark every cached page of this resource in the current tenant stale.

        The displayed page is refetched in the background.
        """
        scope = self.tenant.scope
        if scope is None:
            return []
        invalidated = self.cache.invalidate(CacheKeyPattern.for_resource(self.resource_type, scope))
        if self._subscribed_key in invalidated:
            self.coordinator.schedule_refetch(self._subscribed_key)
        return invalidated

    # ---- Pagination ----

    @property
    def page_index(self) -> int:
        return self._page_index

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    @property
    def last_page(self) -> int:
        """Index of the last page according to the cached total count."""
        return max(0, math.ceil(self.total_count / self._page_size) - 1)

    def _clamp_page_size(self, page_size: int) -> int:
        return min(max(1, page_size), self.settings.max_page_size)

    def set_page_index(self, page_index: int) -> None:
        if page_index < 0:
            raise ValueError(f"page_index must be >= 0, got: {page_index}")
        self._page_index = page_index
        self._track()

    def set_page_size(self, page_size: int) -> None:
        """Change the page size (clamped to [1, max_page_size]) and go back to page 0."""
        self._page_size = self._clamp_page_size(page_size)
        self._page_index = 0
        self._track()

    def set_filters(self, **filters: Any) -> None:
        """Replace the list filters and go back to page 0."""
        self._filters = {k: v for k, v in filters.items() if v is not None}
        self._page_index = 0
        self._known_total = 0
        self._track()

    def next_page(self) -> None:
        self.set_page_index(min(self._page_index + 1, self.last_page))

    def prev_page(self) -> None:
        self.set_page_index(max(self._page_index - 1, 0))

    # ---- Mutations ----

    @property
    def is_creating(self) -> bool:
        return self.mutations.pending_count(MutationKind.CREATE) > 0

    @property
    def is_updating(self) -> bool:
        return self.mutations.pending_count(MutationKind.UPDATE) > 0

    @property
    def is_deleting(self) -> bool:
        return self.mutations.pending_count(MutationKind.DELETE) > 0

    async def create(self, data: MutationInput) -> TEntity:
        return await self.mutations.create(self._require_key("create"), data)

    async def update(self, entity_id: str, data: MutationInput) -> TEntity:
        return await self.mutations.update(self._require_key("update"), entity_id, data)

    async def remove(self, entity_id: str, *, hard: bool | None = None) -> None:
        """Delete one entity (soft unless the resource supports hard delete)."""
        await self.mutations.delete(self._require_key("delete"), entity_id, hard=hard)

    async def toggle_status(self, entity_id: str, is_active: bool) -> TEntity:
        return await self.mutations.toggle_status(
            self._require_key("update"), entity_id, is_active
        )

    async def bulk_delete(
        self, entity_ids: Iterable[str], *, hard: bool | None = None
    ) -> BulkResult:
        """Delete each id in turn; returns how many succeeded and which failed."""
        return await self.mutations.bulk_delete(
            self._require_key("delete"), entity_ids, hard=hard
        )

    async def bulk_create(self, items: Sequence[MutationInput]) -> BulkResult:
        return await self.mutations.bulk_create(self._require_key("create"), items)

    async def bulk_update(self, updates: Mapping[str, MutationInput]) -> BulkResult:
        return await self.mutations.bulk_update(self._require_key("update"), updates)
