"""Cache keys for paginated resource snapshots.

A key is the full identity of one cached page: resource type, tenant
scope, page index, page size and filters. Patterns select groups of keys
for invalidation (e.g. every page of a resource in one tenant).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from educore.domain.value_objects import TenantScope

Filters = tuple[tuple[str, str], ...]


def _freeze_filters(filters: Mapping[str, Any] | None) -> Filters:
    """Sorted, stringified (name, value) pairs; None values are dropped."""
    if not filters:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in filters.items() if v is not None))


@dataclass(frozen=True)
class CacheKey:
    """Identity of one cached page. Equal iff every field is equal."""

    resource_type: str
    scope: TenantScope
    page_index: int
    page_size: int
    filters: Filters = ()

    def __post_init__(self) -> None:
        if not self.resource_type:
            raise ValueError("resource_type must be a non-empty string")
        if self.page_index < 0:
            raise ValueError(f"page_index must be >= 0, got: {self.page_index}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got: {self.page_size}")

    @classmethod
    def build(
        cls,
        resource_type: str,
        scope: TenantScope,
        page_index: int,
        page_size: int,
        filters: Mapping[str, Any] | None = None,
    ) -> CacheKey:
        return cls(resource_type, scope, page_index, page_size, _freeze_filters(filters))

    def filter_params(self) -> dict[str, str]:
        return dict(self.filters)

    def with_page(self, page_index: int, page_size: int | None = None) -> CacheKey:
        return CacheKey(
            self.resource_type,
            self.scope,
            page_index,
            self.page_size if page_size is None else page_size,
            self.filters,
        )

    def __str__(self) -> str:
        parts = [
            self.resource_type,
            self.scope.organization_id,
            self.scope.branch_id,
            f"p{self.page_index}",
            f"s{self.page_size}",
        ]
        parts.extend(f"{k}={v}" for k, v in self.filters)
        return ":".join(parts)


@dataclass(frozen=True)
class CacheKeyPattern:
    """Matches keys field by field; None fields match anything."""

    resource_type: str | None = None
    scope: TenantScope | None = None
    page_index: int | None = None
    page_size: int | None = None

    @classmethod
    def for_resource(cls, resource_type: str, scope: TenantScope | None = None) -> CacheKeyPattern:
        """Every page of resource_type, optionally limited to one tenant scope."""
        return cls(resource_type=resource_type, scope=scope)

    def matches(self, key: CacheKey) -> bool:
        if self.resource_type is not None and key.resource_type != self.resource_type:
            return False
        if self.scope is not None and key.scope != self.scope:
            return False
        if self.page_index is not None and key.page_index != self.page_index:
            return False
        return self.page_size is None or key.page_size == self.page_size


KeySelector = CacheKey | CacheKeyPattern


def selector_matches(selector: KeySelector, key: CacheKey) -> bool:
    """Exact keys match only themselves; patterns match field by field."""
    if isinstance(selector, CacheKey):
        return selector == key
    return selector.matches(key)
