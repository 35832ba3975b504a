"""Generic resource service: the conventional endpoints of one API resource.

Endpoint shape (relative to the API base URL):
    {base_path}                      list (GET) / create (POST)
    {base_path}/{id}                 get / update / delete
    {base_path}/search               search
    {base_path}/export?format=...    export (csv | excel | pdf)
    {base_path}/import               multipart upload, field "file"
    {base_path}/bulk-delete          server-side batch delete

Subclasses declare the entity type and the quirks of their endpoint
(payload wrapper key, result key, list via POST, hard delete support).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from educore.core.constants import UPLOAD_FIELD_NAME
from educore.domain.snapshot import PaginatedSnapshot
from educore.domain.value_objects import TenantScope
from educore.infrastructure.cache.keys import CacheKey
from educore.infrastructure.exceptions import ResponseParseError
from educore.infrastructure.http.client import FileContent, ProgressCallback, TransportClient
from educore.schemas.entity import BaseDto, BaseEntity, WirePayload, to_wire_dict
from educore.schemas.envelope import ApiResponse, PaginatedResponse
from educore.shared.enums import ExportFormat

logger = logging.getLogger(__name__)


class ResourceService[TEntity: BaseEntity, TDto: BaseDto]:
    """CRUD, search, import/export and bulk endpoints for one resource type.

    Attributes:
        resource_type: Cache namespace (e.g. 'departments').
        entity_type: Pydantic model of one record.
        dto_type: Pydantic model of create/update payloads.
        base_path: Collection path (e.g. '/departments').
        payload_key: When set, create/update bodies are sent as {payload_key: body}.
        result_key: When set, response bodies are unwrapped from body[result_key].
        list_path: Suffix of the list endpoint (e.g. 'organization').
        list_via_post: Send list parameters as a POST body instead of a query string.
        supports_hard_delete: The API exposes DELETE {base_path}/{id}.
    """

    resource_type: ClassVar[str]
    entity_type: ClassVar[type[BaseEntity]]
    dto_type: ClassVar[type[BaseDto]] = BaseDto
    base_path: ClassVar[str]
    payload_key: ClassVar[str | None] = None
    result_key: ClassVar[str | None] = "result"
    list_path: ClassVar[str] = ""
    list_via_post: ClassVar[bool] = False
    supports_hard_delete: ClassVar[bool] = False

    def __init__(self, transport: TransportClient) -> None:
        self.transport = transport

    # ---- Paths and envelopes ----

    def _path(self, *parts: str) -> str:
        return "/".join([self.base_path.rstrip("/"), *(p.strip("/") for p in parts if p)])

    def _wrap(self, body: WirePayload) -> Any:
        return {self.payload_key: body} if self.payload_key else body

    def _unwrap(self, body: Any) -> Any:
        """Strip the result key and the {success, data} envelope when present."""
        if isinstance(body, dict) and self.result_key and self.result_key in body:
            body = body[self.result_key]
        if isinstance(body, dict) and "success" in body and "data" in body:
            body = body["data"]
        return body

    def parse_entity(self, body: Any) -> TEntity | None:
        """Parse one record from a response body; None when the body is empty.

        Raises:
            ResponseParseError: If the record does not fit entity_type.
        """
        raw = body
        body = self._unwrap(body)
        if not body:
            return None
        if isinstance(body, dict) and self.payload_key and self.payload_key in body:
            body = body[self.payload_key]
        try:
            return self.entity_type.model_validate(body)  # type: ignore[return-value]
        except SchemaError as e:
            raise ResponseParseError(str(e), response_body=raw) from e

    def _parse_page(self, body: Any, key: CacheKey) -> PaginatedSnapshot[TEntity]:
        try:
            return self._read_page(body, key)
        except SchemaError as e:
            raise ResponseParseError(str(e), response_body=body) from e

    def _read_page(self, body: Any, key: CacheKey) -> PaginatedSnapshot[TEntity]:
        total_override: int | None = None
        if isinstance(body, dict) and "success" in body and "pagination" in body:
            envelope = ApiResponse[Any].model_validate(body)
            if envelope.pagination is not None:
                total_override = envelope.pagination.total
        body = self._unwrap(body)
        if isinstance(body, list):
            body = {"data": body, "count": len(body)}
        response = PaginatedResponse[self.entity_type].model_validate(body or {})  # type: ignore[name-defined]
        if total_override is not None:
            response.count = total_override
        return PaginatedSnapshot.from_response(
            response, page_index=key.page_index, page_size=key.page_size
        )

    def to_payload(self, data: BaseModel | Mapping[str, Any]) -> WirePayload:
        """Normalize a DTO or mapping to wire keys using this resource's aliases."""
        return to_wire_dict(data, self.dto_type)

    # ---- Reads ----

    def list_params(self, key: CacheKey) -> dict[str, Any]:
        return {
            "pageIndex": key.page_index,
            "pageSize": key.page_size,
            **key.scope.as_payload(),
            **key.filter_params(),
        }

    async def list_page(self, key: CacheKey) -> PaginatedSnapshot[TEntity]:
        """Fetch the page identified by key."""
        params = self.list_params(key)
        path = self._path(self.list_path)
        if self.list_via_post:
            body = await self.transport.post(path, params)
        else:
            body = await self.transport.get(path, params)
        return self._parse_page(body, key)

    async def get(self, entity_id: str) -> TEntity | None:
        return self.parse_entity(await self.transport.get(self._path(entity_id)))

    async def search(
        self, scope: TenantScope, query: str, **filters: Any
    ) -> list[TEntity]:
        """Free-text search within the tenant scope."""
        params = {"search": query, **scope.as_payload(), **filters}
        body = self._unwrap(await self.transport.get(self._path("search"), params))
        if isinstance(body, dict):
            body = body.get("data", [])
        return [self.entity_type.model_validate(item) for item in body or []]  # type: ignore[misc]

    async def export(self, scope: TenantScope, fmt: ExportFormat | str) -> bytes:
        """Download the tenant's records as csv, excel or pdf."""
        if fmt not in ExportFormat.values():
            raise ValueError(f"Unsupported export format: {fmt}; expected one of {ExportFormat.values()}")
        fmt = ExportFormat(fmt)
        params = {"format": fmt.value, **scope.as_payload()}
        return await self.transport.get(self._path("export"), params, raw=True)

    # ---- Writes ----

    async def create(self, payload: WirePayload) -> TEntity | None:
        body = await self.transport.post(self._path(), self._wrap(payload))
        return self.parse_entity(body)

    async def update(self, entity_id: str, payload: WirePayload) -> TEntity | None:
        body = await self.transport.put(
            self._path(entity_id), self._wrap({**payload, "id": entity_id})
        )
        return self.parse_entity(body)

    async def delete(self, entity_id: str) -> None:
        """Hard delete; only meaningful when supports_hard_delete is True."""
        await self.transport.delete(self._path(entity_id))

    async def bulk_delete(self, entity_ids: Iterable[str]) -> None:
        await self.transport.post(self._path("bulk-delete"), {"ids": list(entity_ids)})

    async def import_file(
        self,
        scope: TenantScope,
        content: FileContent,
        *,
        filename: str,
        content_type: str = "text/csv",
        on_progress: ProgressCallback | None = None,
    ) -> Any:
        """Upload an import file (multipart field 'file') for the tenant scope."""
        logger.info("Importing %s into %s from %s", self.resource_type, scope, filename)
        return await self.transport.upload_file(
            self._path("import"),
            content,
            filename=filename,
            content_type=content_type,
            field_name=UPLOAD_FIELD_NAME,
            on_progress=on_progress,
            data=scope.as_payload(),
        )
