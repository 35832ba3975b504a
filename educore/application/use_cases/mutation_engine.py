"""Mutation engine: optimistic create/update/delete with exact rollback.

Every mutation is a PendingMutation moving PENDING -> OPTIMISTIC_APPLIED ->
(CONFIRMED | ROLLED_BACK). The optimistic apply captures the current
snapshot and writes the speculative one without awaiting in between, so
overlapping mutations on one key layer in submission order: each captures
the state left by the previous optimistic apply. On failure the captured
snapshot is restored as-is and the classified error is re-raised. Success
or failure, the key is invalidated and a refetch scheduled.

The engine never retries; retrying is the transport's job and only
applies before a terminal outcome.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel

from educore.application.services.resource_service import ResourceService
from educore.application.use_cases.query_coordinator import QueryCoordinator
from educore.core.tenant_context import TenantContext
from educore.domain.exceptions import EducoreException, InvalidMutationTransitionError
from educore.domain.snapshot import PaginatedSnapshot
from educore.infrastructure.cache.cache_protocol import SnapshotCacheProtocol
from educore.infrastructure.cache.keys import CacheKey
from educore.schemas.entity import BaseDto, BaseEntity, WirePayload
from educore.schemas.envelope import BulkError, BulkResult
from educore.shared.enums import MutationKind, MutationStatus
from educore.shared.utils.datetime import utc_now_iso
from educore.shared.utils.generators import generate_temp_id

logger = logging.getLogger(__name__)

SnapshotChange = Callable[[PaginatedSnapshot[Any]], PaginatedSnapshot[Any]]
MutationInput = BaseModel | Mapping[str, Any]


def _replay(
    base: PaginatedSnapshot[Any] | None, later: Sequence[PendingMutation]
) -> PaginatedSnapshot[Any] | None:
    """Re-apply each mutation's optimistic change over base, in order.

    Each mutation's restore point becomes the snapshot right beneath its change.
    """
    for mutation in later:
        mutation.prior_snapshot = base
        if base is not None and mutation.change is not None:
            base = mutation.change(base)
    return base


@dataclass(eq=False)
class PendingMutation:
    """One in-progress mutation against one cache key."""

    kind: MutationKind
    cache_key: CacheKey
    payload: WirePayload
    entity_id: str | None = None
    prior_snapshot: PaginatedSnapshot[Any] | None = None
    status: MutationStatus = MutationStatus.PENDING
    error: BaseException | None = None
    change: SnapshotChange | None = field(default=None, repr=False)

    _TRANSITIONS: ClassVar[dict[MutationStatus, frozenset[MutationStatus]]] = {
        MutationStatus.PENDING: frozenset({MutationStatus.OPTIMISTIC_APPLIED}),
        MutationStatus.OPTIMISTIC_APPLIED: frozenset(
            {MutationStatus.CONFIRMED, MutationStatus.ROLLED_BACK}
        ),
    }

    @property
    def is_settled(self) -> bool:
        return self.status in (MutationStatus.CONFIRMED, MutationStatus.ROLLED_BACK)

    def _advance(self, target: MutationStatus) -> None:
        if target not in self._TRANSITIONS.get(self.status, frozenset()):
            raise InvalidMutationTransitionError(self.status.value, target.value)
        self.status = target

    def apply_optimistic(self, cache: SnapshotCacheProtocol, change: SnapshotChange) -> None:
        """Capture the current snapshot and write change(snapshot) in its place.

        Nothing is written when the key has no snapshot yet.
        """
        if self.status is not MutationStatus.PENDING:
            raise InvalidMutationTransitionError(
                self.status.value, MutationStatus.OPTIMISTIC_APPLIED.value
            )
        self.prior_snapshot = cache.peek(self.cache_key)
        self.change = change
        if self.prior_snapshot is not None:
            cache.set(self.cache_key, change(self.prior_snapshot))
        self._advance(MutationStatus.OPTIMISTIC_APPLIED)

    def confirm(
        self,
        cache: SnapshotCacheProtocol,
        reconcile: SnapshotChange,
        later: Sequence[PendingMutation] = (),
    ) -> None:
        """Reconcile the current snapshot with the server's answer.

        Unsettled mutations layered on top of this one are replayed over the
        reconciled snapshot, so neither their optimistic changes nor the
        confirmed result are lost when one of them later rolls back.
        """
        if self.status is not MutationStatus.OPTIMISTIC_APPLIED:
            raise InvalidMutationTransitionError(
                self.status.value, MutationStatus.CONFIRMED.value
            )
        if later:
            base = self.prior_snapshot
            if base is not None and self.change is not None:
                base = reconcile(self.change(base))
            confirmed = _replay(base, later)
        else:
            current = cache.peek(self.cache_key)
            confirmed = None if current is None else reconcile(current)
        if confirmed is not None:
            cache.set(self.cache_key, confirmed)
        self._advance(MutationStatus.CONFIRMED)

    def roll_back(
        self,
        cache: SnapshotCacheProtocol,
        error: BaseException,
        later: Sequence[PendingMutation] = (),
    ) -> None:
        """Restore the snapshot captured before the optimistic apply.

        Unsettled mutations applied after this one (in submission order) are
        replayed on top of the restored snapshot, which also becomes their new
        restore point. No trace of this mutation's optimistic change remains.
        """
        if self.status is not MutationStatus.OPTIMISTIC_APPLIED:
            raise InvalidMutationTransitionError(
                self.status.value, MutationStatus.ROLLED_BACK.value
            )
        restored = _replay(self.prior_snapshot, later)
        if restored is not None:
            cache.set(self.cache_key, restored)
        self.error = error
        self._advance(MutationStatus.ROLLED_BACK)


class MutationEngine[TEntity: BaseEntity, TDto: BaseDto]:
    """Runs optimistic mutations of one resource type against its cached pages."""

    def __init__(
        self,
        service: ResourceService[TEntity, TDto],
        cache: SnapshotCacheProtocol,
        coordinator: QueryCoordinator,
        tenant: TenantContext,
        *,
        refetch_on_settle: bool = True,
    ) -> None:
        self.service = service
        self.cache = cache
        self.coordinator = coordinator
        self.tenant = tenant
        self.refetch_on_settle = refetch_on_settle
        self._in_flight: dict[MutationKind, int] = dict.fromkeys(MutationKind, 0)
        # Unsettled mutations per key, in submission order.
        self._layers: dict[CacheKey, list[PendingMutation]] = {}

    def pending_count(self, kind: MutationKind | None = None) -> int:
        """Number of unsettled mutations, optionally of one kind."""
        if kind is None:
            return sum(self._in_flight.values())
        return self._in_flight[kind]

    # ---- Lifecycle helpers ----

    def _begin(
        self,
        kind: MutationKind,
        key: CacheKey,
        payload: WirePayload,
        entity_id: str | None,
        change: SnapshotChange,
    ) -> PendingMutation:
        """Create the mutation and apply its optimistic change without awaiting."""
        self.tenant.require_ready(f"{kind.value} {key.resource_type}")
        mutation = PendingMutation(kind=kind, cache_key=key, payload=payload, entity_id=entity_id)
        mutation.apply_optimistic(self.cache, change)
        # No fetch result may replace the optimistic snapshot until settled.
        self.coordinator.hold(key)
        self._layers.setdefault(key, []).append(mutation)
        self._in_flight[kind] += 1
        return mutation

    @asynccontextmanager
    async def _settling(self, mutation: PendingMutation) -> AsyncIterator[None]:
        """Roll back on any failure (including cancellation), then settle."""
        try:
            yield
        except (Exception, asyncio.CancelledError) as exc:
            if mutation.status is MutationStatus.OPTIMISTIC_APPLIED:
                mutation.roll_back(self.cache, exc, self._layered_above(mutation))
                logger.warning(
                    "%s %s %s failed (%s); cache rolled back",
                    mutation.kind.value,
                    mutation.cache_key.resource_type,
                    mutation.entity_id,
                    exc.error_code if isinstance(exc, EducoreException) else type(exc).__name__,
                )
            raise
        finally:
            self._settle(mutation)

    def _layered_above(self, mutation: PendingMutation) -> list[PendingMutation]:
        """Unsettled mutations on the same key submitted after mutation."""
        layers = self._layers.get(mutation.cache_key, [])
        position = layers.index(mutation)
        return [m for m in layers[position + 1 :] if not m.is_settled]

    def _confirm(self, mutation: PendingMutation, reconcile: SnapshotChange) -> None:
        mutation.confirm(self.cache, reconcile, self._layered_above(mutation))

    def _settle(self, mutation: PendingMutation) -> None:
        self._in_flight[mutation.kind] -= 1
        layers = self._layers[mutation.cache_key]
        layers.remove(mutation)
        if not layers:
            del self._layers[mutation.cache_key]
        self.coordinator.release(mutation.cache_key)
        self.cache.invalidate(mutation.cache_key)
        if self.refetch_on_settle:
            self.coordinator.schedule_refetch(mutation.cache_key)

    def _merge(self, *layers: Mapping[str, Any]) -> TEntity:
        """Later layers win; the result is validated as a new entity."""
        merged: dict[str, Any] = {}
        for layer in layers:
            merged.update(layer)
        return self.service.entity_type.model_validate(merged)  # type: ignore[return-value]

    @staticmethod
    def _echo(entity: BaseEntity | None) -> WirePayload:
        """Fields the server actually sent (defaults for omitted fields are left out)."""
        if entity is None:
            return {}
        return entity.model_dump(by_alias=True, mode="json", exclude_unset=True)

    def _cached_entity(self, key: CacheKey, entity_id: str) -> TEntity | None:
        snapshot = self.cache.peek(key)
        return None if snapshot is None else snapshot.find(entity_id)

    # ---- Single mutations ----

    async def create(self, key: CacheKey, data: MutationInput) -> TEntity:
        """Prepend a placeholder entity, POST it, then swap in the server's entity.

        Returns:
            The created entity (the placeholder when the server echoes nothing).
        """
        payload = {**self.service.to_payload(data), **key.scope.as_payload()}
        temp_id = generate_temp_id()
        now = utc_now_iso()
        optimistic = self._merge(
            {"isActive": True},
            payload,
            {"id": temp_id, "createdAt": now, "updatedAt": now},
        )
        mutation = self._begin(
            MutationKind.CREATE,
            key,
            payload,
            temp_id,
            lambda snapshot: snapshot.prepend(optimistic),
        )
        async with self._settling(mutation):
            created = await self.service.create(payload)
            entity = created if created is not None else optimistic
            self._confirm(
                mutation,
                lambda snapshot: snapshot.replace_item(temp_id, lambda _: entity),
            )
        return entity

    async def update(
        self, key: CacheKey, entity_id: str, data: MutationInput
    ) -> TEntity:
        """Merge data into the cached entity now; reconcile with the server echo after.

        On success the entity becomes existing -> server echo -> data, so a field
        the caller set is never replaced by a stale or missing echo value.
        """
        changes = self.service.to_payload(data)
        existing = self._cached_entity(key, entity_id)
        identity = {"id": entity_id, **key.scope.as_payload()}
        body = {**self._echo(existing), **changes, **identity}
        stamp = {"updatedAt": utc_now_iso()}
        mutation = self._begin(
            MutationKind.UPDATE,
            key,
            changes,
            entity_id,
            lambda snapshot: snapshot.replace_item(
                entity_id, lambda item: self._merge(item.to_wire(), changes, stamp)
            ),
        )
        async with self._settling(mutation):
            echoed = await self.service.update(entity_id, body)
            merged = self._merge(
                self._echo(existing) or body, self._echo(echoed), changes, identity
            )
            self._confirm(
                mutation,
                lambda snapshot: snapshot.replace_item(entity_id, lambda _: merged),
            )
        return merged

    async def toggle_status(
        self, key: CacheKey, entity_id: str, is_active: bool
    ) -> TEntity:
        return await self.update(key, entity_id, {"isActive": is_active})

    async def delete(
        self, key: CacheKey, entity_id: str, *, hard: bool | None = None
    ) -> None:
        """Delete entity_id; soft (isActive=false) unless the service supports hard delete.

        Raises:
            ValueError: If hard=True and the service has no delete endpoint.
        """
        if hard is None:
            hard = self.service.supports_hard_delete
        if hard and not self.service.supports_hard_delete:
            raise ValueError(
                f"{self.service.resource_type} does not expose a hard delete endpoint"
            )
        if hard:
            await self._hard_delete(key, entity_id)
        else:
            await self._soft_delete(key, entity_id)

    async def _hard_delete(self, key: CacheKey, entity_id: str) -> None:
        mutation = self._begin(
            MutationKind.DELETE, key, {}, entity_id, lambda snapshot: snapshot.remove(entity_id)
        )
        async with self._settling(mutation):
            await self.service.delete(entity_id)
            self._confirm(mutation, lambda snapshot: snapshot.remove(entity_id))

    async def _soft_delete(self, key: CacheKey, entity_id: str) -> None:
        changes: WirePayload = {"isActive": False}
        existing = self._cached_entity(key, entity_id)
        body = {
            **self._echo(existing),
            **changes,
            "id": entity_id,
            **key.scope.as_payload(),
        }
        mutation = self._begin(
            MutationKind.DELETE,
            key,
            changes,
            entity_id,
            lambda snapshot: snapshot.replace_item(
                entity_id, lambda item: self._merge(item.to_wire(), changes)
            ),
        )
        async with self._settling(mutation):
            await self.service.update(entity_id, body)
            # The row stays on the server; it only leaves the visible list.
            self._confirm(mutation, lambda snapshot: snapshot.remove(entity_id))

    # ---- Bulk mutations (best effort, one at a time) ----

    async def _run_bulk(
        self, steps: Iterable[tuple[str, Callable[[], Awaitable[Any]]]]
    ) -> BulkResult:
        result = BulkResult()
        for item_id, run in steps:
            try:
                await run()
            except EducoreException as exc:
                result.errors.append(BulkError(id=item_id, message=exc.message))
            except Exception as exc:
                logger.exception("Bulk item %s failed unexpectedly", item_id)
                result.errors.append(BulkError(id=item_id, message=str(exc)))
            else:
                result.succeeded_count += 1
        if result.errors:
            logger.warning(
                "Bulk mutation: %d succeeded, %d failed",
                result.succeeded_count,
                result.failed_count,
            )
        return result

    async def bulk_create(
        self, key: CacheKey, items: Sequence[MutationInput]
    ) -> BulkResult:
        """Create each item; failures are reported by position ('0', '1', ...)."""
        return await self._run_bulk(
            (str(index), lambda data=data: self.create(key, data))
            for index, data in enumerate(items)
        )

    async def bulk_update(
        self, key: CacheKey, updates: Mapping[str, MutationInput]
    ) -> BulkResult:
        return await self._run_bulk(
            (entity_id, lambda entity_id=entity_id, data=data: self.update(key, entity_id, data))
            for entity_id, data in updates.items()
        )

    async def bulk_delete(
        self, key: CacheKey, entity_ids: Iterable[str], *, hard: bool | None = None
    ) -> BulkResult:
        return await self._run_bulk(
            (entity_id, lambda entity_id=entity_id: self.delete(key, entity_id, hard=hard))
            for entity_id in entity_ids
        )
