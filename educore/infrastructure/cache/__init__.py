"""Cache: in-memory snapshot store and cache key utilities.

Used by the query coordinator and mutation engine. Key identity is in
keys.py; the store is resource-agnostic.
"""

from educore.infrastructure.cache.cache_protocol import SnapshotCacheProtocol
from educore.infrastructure.cache.keys import (
    CacheKey,
    CacheKeyPattern,
    KeySelector,
    selector_matches,
)
from educore.infrastructure.cache.resource_cache import ResourceCache

__all__ = [
    "CacheKey",
    "CacheKeyPattern",
    "KeySelector",
    "ResourceCache",
    "SnapshotCacheProtocol",
    "selector_matches",
]
