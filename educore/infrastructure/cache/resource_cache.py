"""In-memory store of paginated snapshots keyed by CacheKey.

Each entry tracks when it was written and last read. An entry is stale
once it is older than stale_time or has been invalidated; stale entries
are still served (so pages keep showing data while refreshing) but every
stale or missing read signals the registered stale listeners, which the
query coordinator uses to schedule a refetch. Entries nobody subscribes
to are evicted after gc_time without reads.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from educore.core.config import Settings, get_settings
from educore.domain.snapshot import PaginatedSnapshot
from educore.infrastructure.cache.keys import CacheKey, KeySelector, selector_matches

logger = logging.getLogger(__name__)

StaleListener = Callable[[CacheKey], None]


@dataclass
class _CacheEntry:
    snapshot: PaginatedSnapshot[Any]
    updated_at: float
    last_accessed: float
    invalidated: bool = False


class ResourceCache:
    """Snapshot cache with stale-time freshness and idle eviction.

    Not thread-safe; intended for use from a single event loop, where each
    method runs without interleaving.
    """

    def __init__(
        self,
        stale_time: float | None = None,
        gc_time: float | None = None,
        *,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            stale_time: Seconds before a snapshot needs refetching.
            gc_time: Seconds of disuse before an unsubscribed entry is evicted.
            settings: Source of defaults for stale_time and gc_time.
            clock: Monotonic clock (injected in tests).
        """
        settings = settings or get_settings()
        self.stale_time = (
            settings.cache_stale_time_seconds if stale_time is None else stale_time
        )
        self.gc_time = settings.cache_gc_time_seconds if gc_time is None else gc_time
        self._clock = clock
        self._entries: dict[CacheKey, _CacheEntry] = {}
        self._subscribers: dict[CacheKey, int] = {}
        self._stale_listeners: list[StaleListener] = []

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    # ---- Listeners and subscribers ----

    def add_stale_listener(self, listener: StaleListener) -> Callable[[], None]:
        """Call listener(key) on every stale or missing read; returns a remover."""
        self._stale_listeners.append(listener)

        def remove() -> None:
            if listener in self._stale_listeners:
                self._stale_listeners.remove(listener)

        return remove

    def _notify_stale(self, key: CacheKey) -> None:
        for listener in list(self._stale_listeners):
            listener(key)

    def subscribe(self, key: CacheKey) -> Callable[[], None]:
        """Register an active reader of key; subscribed entries are never evicted."""
        self._subscribers[key] = self._subscribers.get(key, 0) + 1
        released = False

        def unsubscribe() -> None:
            nonlocal released
            if released:
                return
            released = True
            remaining = self._subscribers.get(key, 0) - 1
            if remaining > 0:
                self._subscribers[key] = remaining
            else:
                self._subscribers.pop(key, None)

        return unsubscribe

    def subscriber_count(self, key: CacheKey) -> int:
        return self._subscribers.get(key, 0)

    # ---- Reads and writes ----

    def _entry_stale(self, entry: _CacheEntry, now: float) -> bool:
        return entry.invalidated or now - entry.updated_at >= self.stale_time

    def get(self, key: CacheKey) -> PaginatedSnapshot[Any] | None:
        """Return the snapshot for key (even if stale); signal listeners when stale or absent."""
        self.collect_garbage()
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            self._notify_stale(key)
            return None
        now = self._clock()
        entry.last_accessed = now
        if self._entry_stale(entry, now):
            logger.debug("Cache STALE: %s", key)
            self._notify_stale(key)
        else:
            logger.debug("Cache HIT: %s", key)
        return entry.snapshot

    def peek(self, key: CacheKey) -> PaginatedSnapshot[Any] | None:
        entry = self._entries.get(key)
        return None if entry is None else entry.snapshot

    def set(self, key: CacheKey, snapshot: PaginatedSnapshot[Any]) -> None:
        """Replace the snapshot for key in one step and mark it fresh."""
        now = self._clock()
        self._entries[key] = _CacheEntry(snapshot=snapshot, updated_at=now, last_accessed=now)
        logger.debug("Cache SET: %s (%d items)", key, len(snapshot.items))

    def remove(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or self._entry_stale(entry, self._clock())

    def invalidate(self, selector: KeySelector) -> list[CacheKey]:
        """Mark every key matching selector stale; the next read triggers a refetch.

        Returns:
            Keys that were marked.
        """
        matched = [key for key in self._entries if selector_matches(selector, key)]
        for key in matched:
            self._entries[key].invalidated = True
        if matched:
            logger.debug("Cache INVALIDATE: %s (%d keys)", selector, len(matched))
        return matched

    def collect_garbage(self) -> int:
        """Evict unsubscribed entries idle longer than gc_time. Returns the number evicted."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if self._subscribers.get(key, 0) == 0 and now - entry.last_accessed >= self.gc_time
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache EVICT: %d idle entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        """Drop every entry (subscriptions are kept)."""
        self._entries.clear()
        logger.debug("Cache CLEARED: all entries dropped")
