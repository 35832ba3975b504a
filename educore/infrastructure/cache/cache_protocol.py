"""Cache protocol consumed by the query and mutation layers (DIP)."""

from collections.abc import Callable
from typing import Any, Protocol

from educore.domain.snapshot import PaginatedSnapshot
from educore.infrastructure.cache.keys import CacheKey, KeySelector


class SnapshotCacheProtocol(Protocol):
    """Protocol for snapshot stores keyed by CacheKey."""

    def get(self, key: CacheKey) -> PaginatedSnapshot[Any] | None:
        """Return the snapshot (fresh or stale) and signal a refetch when stale or absent."""
        ...

    def peek(self, key: CacheKey) -> PaginatedSnapshot[Any] | None:
        """Return the snapshot without touching access time or signalling."""
        ...

    def set(self, key: CacheKey, snapshot: PaginatedSnapshot[Any]) -> None:
        """Atomically replace the snapshot for key and mark it fresh."""
        ...

    def invalidate(self, selector: KeySelector) -> list[CacheKey]:
        """Mark matching keys stale; return them."""
        ...

    def is_stale(self, key: CacheKey) -> bool:
        """Return True when key is absent, invalidated or older than the stale time."""
        ...

    def subscribe(self, key: CacheKey) -> Callable[[], None]:
        """Register an active reader of key; call the returned function to unsubscribe."""
        ...
