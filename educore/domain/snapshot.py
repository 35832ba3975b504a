"""Paginated snapshot: the immutable cached value for one cache key.

Snapshots are replaced, never edited. Every helper here returns a new
snapshot and leaves the receiver untouched, which is what makes rollback
to a captured snapshot exact.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from educore.schemas.entity import BaseEntity
from educore.schemas.envelope import PaginatedResponse
from educore.shared.utils.datetime import utc_now


@dataclass(frozen=True)
class PaginatedSnapshot[TEntity: BaseEntity]:
    """One page of a resource collection as last seen by the client."""

    items: tuple[TEntity, ...]
    total_count: int
    page_index: int
    page_size: int
    fetched_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_response(
        cls,
        response: PaginatedResponse[TEntity],
        *,
        page_index: int,
        page_size: int,
    ) -> PaginatedSnapshot[TEntity]:
        """Build a snapshot from a list envelope; requested paging wins over echoed values."""
        return cls(
            items=tuple(response.data),
            total_count=response.count,
            page_index=page_index,
            page_size=page_size,
        )

    def __len__(self) -> int:
        return len(self.items)

    def index_of(self, entity_id: str) -> int | None:
        for index, item in enumerate(self.items):
            if item.id == entity_id:
                return index
        return None

    def find(self, entity_id: str) -> TEntity | None:
        index = self.index_of(entity_id)
        return None if index is None else self.items[index]

    def with_items(
        self, items: Iterable[TEntity], *, count_delta: int = 0
    ) -> PaginatedSnapshot[TEntity]:
        """Return a copy with items replaced and total_count shifted by count_delta."""
        return replace(
            self,
            items=tuple(items),
            total_count=max(0, self.total_count + count_delta),
        )

    def prepend(self, entity: TEntity) -> PaginatedSnapshot[TEntity]:
        return self.with_items((entity, *self.items), count_delta=1)

    def replace_item(
        self, entity_id: str, build: Callable[[TEntity], TEntity]
    ) -> PaginatedSnapshot[TEntity]:
        """Return a copy where the item with entity_id is replaced by build(item), in place.

        Returns self unchanged when the id is not on this page.
        """
        index = self.index_of(entity_id)
        if index is None:
            return self
        items = list(self.items)
        items[index] = build(items[index])
        return self.with_items(items)

    def remove(self, entity_id: str) -> PaginatedSnapshot[TEntity]:
        """Return a copy without entity_id and with total_count decremented.

        Returns self unchanged when the id is not on this page.
        """
        if self.index_of(entity_id) is None:
            return self
        return self.with_items(
            (item for item in self.items if item.id != entity_id), count_delta=-1
        )
