"""Query coordinator: deduplicated fetches of cache keys.

At most one fetch per CacheKey is in flight; concurrent callers await the
same task. Each key carries a generation number: cancelling a key or
switching tenant bumps it, and a fetch whose generation is outdated when it
completes returns its result to its callers but never writes it to the
cache. While the mutation engine holds a key, no fetch result is written
for it and no background refetch is started.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from educore.core.tenant_context import TenantContext
from educore.domain.exceptions import EducoreException, LoaderNotRegisteredError
from educore.domain.snapshot import PaginatedSnapshot
from educore.domain.value_objects import TenantScope
from educore.infrastructure.cache.keys import CacheKey
from educore.infrastructure.cache.resource_cache import ResourceCache

logger = logging.getLogger(__name__)

Loader = Callable[[CacheKey], Awaitable[PaginatedSnapshot[Any]]]


@dataclass(frozen=True)
class QueryStatus:
    """What a page needs to render one key: first load vs background refresh."""

    has_data: bool
    is_fetching: bool
    error: Exception | None = None

    @property
    def is_loading(self) -> bool:
        """No data yet and a fetch is running (render skeletons)."""
        return self.is_fetching and not self.has_data

    @property
    def is_error(self) -> bool:
        return self.error is not None


class QueryCoordinator:
    """Fetches snapshots through registered loaders and stores them in the cache."""

    def __init__(self, cache: ResourceCache, tenant: TenantContext) -> None:
        self.cache = cache
        self.tenant = tenant
        self._loaders: dict[str, Loader] = {}
        self._in_flight: dict[CacheKey, asyncio.Task[PaginatedSnapshot[Any]]] = {}
        self._generations: dict[CacheKey, int] = {}
        self._errors: dict[CacheKey, Exception] = {}
        self._holds: dict[CacheKey, int] = {}
        self._background: set[asyncio.Task[None]] = set()
        self._remove_stale_listener = cache.add_stale_listener(self._on_stale)
        self._remove_tenant_listener = tenant.add_listener(self._on_tenant_change)

    # ---- Loader registry ----

    def register_loader(self, resource_type: str, loader: Loader) -> None:
        """Use loader to fetch every key of resource_type."""
        self._loaders[resource_type] = loader

    def unregister_loader(self, resource_type: str) -> None:
        self._loaders.pop(resource_type, None)

    def has_loader(self, resource_type: str) -> bool:
        return resource_type in self._loaders

    # ---- Fetching ----

    async def fetch(self, key: CacheKey) -> PaginatedSnapshot[Any]:
        """Fetch key, joining an identical in-flight fetch if there is one.

        Raises:
            TenantNotReadyError: If the tenant context is not ready.
            LoaderNotRegisteredError: If no loader handles key.resource_type.
            EducoreException: Terminal transport error from the loader.
        """
        self.tenant.require_ready(f"fetch {key.resource_type}")
        task = self._in_flight.get(key)
        if task is None:
            loader = self._loaders.get(key.resource_type)
            if loader is None:
                raise LoaderNotRegisteredError(key.resource_type)
            generation = self._generations.get(key, 0)
            task = asyncio.create_task(self._run(key, loader, generation))
            self._in_flight[key] = task
            task.add_done_callback(partial(self._forget, key))
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        # Shielded so one cancelled caller does not cancel the shared request.
        return await asyncio.shield(task)

    async def ensure(self, key: CacheKey) -> PaginatedSnapshot[Any]:
        """Return the cached snapshot when fresh, otherwise fetch it."""
        snapshot = self.cache.get(key)
        if snapshot is not None and not self.cache.is_stale(key):
            return snapshot
        return await self.fetch(key)

    async def _run(
        self, key: CacheKey, loader: Loader, generation: int
    ) -> PaginatedSnapshot[Any]:
        try:
            snapshot = await loader(key)
        except Exception as exc:
            self._errors[key] = exc
            raise
        self._errors.pop(key, None)
        if self._accepts(key, generation):
            self.cache.set(key, snapshot)
        else:
            logger.debug("Discarding superseded fetch result for %s", key)
        return snapshot

    def _accepts(self, key: CacheKey, generation: int) -> bool:
        return (
            self._generations.get(key, 0) == generation
            and key not in self._holds
            and self.tenant.scope == key.scope
        )

    def _forget(self, key: CacheKey, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def cancel(self, key: CacheKey) -> None:
        """Supersede any in-flight fetch of key: its result will not reach the cache.

        The request itself is not aborted; it is only ignored on arrival.
        """
        self._generations[key] = self._generations.get(key, 0) + 1
        if self._in_flight.pop(key, None) is not None:
            logger.debug("Superseded in-flight fetch for %s", key)

    def hold(self, key: CacheKey) -> None:
        """Keep fetch results for key out of the cache until a matching release(key)."""
        self._holds[key] = self._holds.get(key, 0) + 1
        self.cancel(key)

    def release(self, key: CacheKey) -> None:
        """Undo one hold(key). Fetches started while held are superseded."""
        remaining = self._holds.get(key, 0) - 1
        if remaining > 0:
            self._holds[key] = remaining
        else:
            self._holds.pop(key, None)
        self.cancel(key)

    def is_held(self, key: CacheKey) -> bool:
        return key in self._holds

    def _on_tenant_change(self, scope: TenantScope | None) -> None:
        for key in [k for k in self._in_flight if k.scope != scope]:
            self.cancel(key)

    # ---- Status ----

    def status(self, key: CacheKey) -> QueryStatus:
        return QueryStatus(
            has_data=self.cache.peek(key) is not None,
            is_fetching=key in self._in_flight,
            error=self._errors.get(key),
        )

    def is_fetching(self, key: CacheKey) -> bool:
        return key in self._in_flight

    # ---- Background refetch ----

    def schedule_refetch(self, key: CacheKey) -> asyncio.Task[None] | None:
        """Start a background fetch of key; None when it cannot run now.

        Failures are logged and recorded as the key's error, never raised.
        """
        if key.scope != self.tenant.scope or key.resource_type not in self._loaders:
            return None
        if key in self._holds:
            return None
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return None
        task = asyncio.create_task(self._background_fetch(key))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _background_fetch(self, key: CacheKey) -> None:
        try:
            await self.fetch(key)
        except EducoreException as exc:
            logger.warning("Background refetch of %s failed: %s", key, exc.error_code)
        except Exception:
            logger.exception("Background refetch of %s failed", key)

    def _on_stale(self, key: CacheKey) -> None:
        if self.cache.subscriber_count(key) > 0 and key not in self._in_flight:
            self.schedule_refetch(key)

    async def wait_idle(self) -> None:
        """Wait until every background refetch (including ones they trigger) finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Detach from cache and tenant and cancel background and in-flight fetches."""
        self._remove_stale_listener()
        self._remove_tenant_listener()
        tasks = [*self._background, *self._in_flight.values()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
