"""ResourceService endpoint shapes, envelopes and wire aliases."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from educore.application.services.administration import (
    AcademicYearService,
    DepartmentService,
    DesignationService,
)
from educore.application.services.fee_management import FeeHeadService, FeeStructureService
from educore.infrastructure.cache.keys import CacheKey
from educore.infrastructure.exceptions import ResponseParseError
from educore.schemas.fee_management import FeeHeadDto
from educore.shared.enums import ExportFormat
from tests.conftest import BRANCH_ID, ORG_ID


class _Api:
    """MockTransport handler returning one canned body and recording requests."""

    def __init__(self, body=None, *, status: int = 200, content: bytes | None = None) -> None:
        self.body = body
        self.status = status
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status, content=self.content)
        return httpx.Response(self.status, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


def _entity(entity_id: str, **fields) -> dict:
    return {"id": entity_id, "organizationId": ORG_ID, "branchId": BRANCH_ID, **fields}


@pytest.mark.asyncio
async def test_list_page_get_with_paging_and_scope(transport_factory, scope) -> None:
    api = _Api({"pageIndex": 1, "pageSize": 5, "count": 12, "data": [_entity("a", yearCode="2025")]})
    service = AcademicYearService(transport_factory(api))
    key = CacheKey.build("academic-years", scope, 1, 5, {"status": "Active"})

    snapshot = await service.list_page(key)

    assert api.last.method == "GET"
    assert api.last.url.path == "/api/academicyears"
    assert dict(api.last.url.params) == {
        "pageIndex": "1",
        "pageSize": "5",
        "organizationId": ORG_ID,
        "branchId": BRANCH_ID,
        "status": "Active",
    }
    assert snapshot.total_count == 12
    assert (snapshot.page_index, snapshot.page_size) == (1, 5)
    assert snapshot.items[0].year_code == "2025"


@pytest.mark.asyncio
async def test_list_page_via_post_unwraps_result(transport_factory, department_key) -> None:
    api = _Api({"result": {"count": 1, "data": [_entity(7, departmentName="Science")]}})
    service = DepartmentService(transport_factory(api))

    snapshot = await service.list_page(department_key)

    assert api.last.method == "POST"
    assert api.last.url.path == "/api/departments/organization"
    assert api.last_json()["organizationId"] == ORG_ID
    assert snapshot.items[0].id == "7"
    assert snapshot.items[0].department_name == "Science"


@pytest.mark.asyncio
async def test_list_page_reads_success_envelope_with_pagination(
    transport_factory, scope
) -> None:
    api = _Api(
        {
            "success": True,
            "data": [_entity("1"), _entity("2")],
            "pagination": {"page": 1, "limit": 2, "total": 40, "totalPages": 20},
        }
    )
    service = DesignationService(transport_factory(api))

    snapshot = await service.list_page(CacheKey.build("designations", scope, 0, 2))

    assert [item.id for item in snapshot.items] == ["1", "2"]
    assert snapshot.total_count == 40


@pytest.mark.asyncio
async def test_create_wraps_payload_and_parses_result(transport_factory) -> None:
    api = _Api({"result": _entity("d-1", departmentName="Science")})
    service = DepartmentService(transport_factory(api))

    created = await service.create({"departmentName": "Science", "organizationId": ORG_ID})

    assert api.last.method == "POST"
    assert api.last.url.path == "/api/departments"
    assert api.last_json() == {
        "department": {"departmentName": "Science", "organizationId": ORG_ID}
    }
    assert created.id == "d-1"


@pytest.mark.asyncio
async def test_create_with_empty_body_returns_none(transport_factory) -> None:
    service = DepartmentService(transport_factory(_Api(status=204)))
    assert await service.create({"departmentName": "X"}) is None


@pytest.mark.asyncio
async def test_update_puts_to_item_path_with_id(transport_factory) -> None:
    api = _Api({"result": {"department": _entity("d-1", departmentName="New")}})
    service = DepartmentService(transport_factory(api))

    updated = await service.update("d-1", {"departmentName": "New"})

    assert api.last.method == "PUT"
    assert api.last.url.path == "/api/departments/d-1"
    assert api.last_json() == {"department": {"departmentName": "New", "id": "d-1"}}
    assert updated.department_name == "New"


@pytest.mark.asyncio
async def test_get_and_delete(transport_factory) -> None:
    api = _Api({"result": _entity("d-1")})
    service = DepartmentService(transport_factory(api))

    assert (await service.get("d-1")).id == "d-1"
    await service.delete("d-1")

    assert [(r.method, r.url.path) for r in api.requests] == [
        ("GET", "/api/departments/d-1"),
        ("DELETE", "/api/departments/d-1"),
    ]


@pytest.mark.asyncio
async def test_search(transport_factory, scope) -> None:
    api = _Api({"result": {"data": [_entity("1", designationName="Librarian")]}})
    service = DesignationService(transport_factory(api))

    results = await service.search(scope, "teach", status="Active")

    assert api.last.url.path == "/api/designations/search"
    assert api.last.url.params["search"] == "teach"
    assert api.last.url.params["status"] == "Active"
    assert results[0].designation_name == "Librarian"


@pytest.mark.asyncio
async def test_export_returns_bytes(transport_factory, scope) -> None:
    api = _Api(content=b"%PDF-1.7")
    service = DesignationService(transport_factory(api))

    data = await service.export(scope, ExportFormat.PDF)

    assert data == b"%PDF-1.7"
    assert api.last.url.path == "/api/designations/export"
    assert api.last.url.params["format"] == "pdf"


@pytest.mark.asyncio
async def test_export_rejects_unknown_format(transport_factory, scope) -> None:
    service = DesignationService(transport_factory(_Api({})))
    with pytest.raises(ValueError):
        await service.export(scope, "docx")


@pytest.mark.asyncio
async def test_import_file_uploads_multipart(transport_factory, scope) -> None:
    api = _Api({"success": True, "data": {"imported": 2}})
    service = DepartmentService(transport_factory(api))
    progress: list[int] = []

    result = await service.import_file(
        scope, b"name\nScience\nArts\n", filename="departments.csv", on_progress=progress.append
    )

    assert result == {"success": True, "data": {"imported": 2}}
    assert api.last.url.path == "/api/departments/import"
    assert b'name="file"; filename="departments.csv"' in api.last.content
    assert progress[-1] == 100


@pytest.mark.asyncio
async def test_bulk_delete_endpoint(transport_factory) -> None:
    api = _Api({"success": True})
    service = DepartmentService(transport_factory(api))

    await service.bulk_delete(["a", "b"])

    assert api.last.url.path == "/api/departments/bulk-delete"
    assert api.last_json() == {"ids": ["a", "b"]}


# ---- Wire aliases ----


def test_fee_head_payload_uses_pascal_case_aliases() -> None:
    service = FeeHeadService(AsyncMock())

    payload = service.to_payload(
        FeeHeadDto(fee_head_code="TUI", fee_head_name="Tuition", fee_frequency="Monthly")
    )

    assert payload == {"FeeHeadCode": "TUI", "FeeHeadName": "Tuition", "FeeFrequency": "Monthly"}


def test_mapping_payload_keys_follow_dto_aliases() -> None:
    service = FeeHeadService(AsyncMock())

    payload = service.to_payload({"fee_head_name": "Transport", "class_id": "c-1"})

    assert payload == {"FeeHeadName": "Transport", "classId": "c-1"}


def test_fee_head_parses_pascal_case_fields() -> None:
    service = FeeHeadService(AsyncMock())

    entity = service.parse_entity(
        {"result": {"FeeHeadMaster": _entity("f-1", FeeHeadName="Tuition", IsRefundable=True)}}
    )

    assert entity.fee_head_name == "Tuition"
    assert entity.is_refundable is True


def test_fee_structure_details_parse() -> None:
    service = FeeStructureService(AsyncMock())

    entity = service.parse_entity(
        _entity(
            "s-1",
            structureName="Grade 1",
            details=[{"feeHeadId": "f-1", "feeAmount": 1200.5, "feeFrequency": "Monthly"}],
        )
    )

    assert entity.details[0].fee_amount == 1200.5


def test_unknown_fields_are_kept_as_extras() -> None:
    service = DesignationService(AsyncMock())

    entity = service.parse_entity(_entity("x", ParentDesignationId="p-1", grade="A"))

    assert entity.parent_designation_id == "p-1"
    assert entity.to_wire()["grade"] == "A"


@pytest.mark.asyncio
async def test_malformed_entity_echo_is_a_classified_error(transport_factory) -> None:
    api = _Api({"result": _entity("d-1", isActive="not-a-flag")})
    service = DepartmentService(transport_factory(api))

    with pytest.raises(ResponseParseError) as exc_info:
        await service.update("d-1", {"departmentName": "Science"})

    assert exc_info.value.error_code == "RESPONSE_PARSE_ERROR"
    assert exc_info.value.response_body == {"result": _entity("d-1", isActive="not-a-flag")}
    assert len(api.requests) == 1


@pytest.mark.asyncio
async def test_malformed_list_page_is_a_classified_error(transport_factory, scope) -> None:
    api = _Api({"pageIndex": 0, "pageSize": 10, "count": "many", "data": []})
    service = DesignationService(transport_factory(api))

    with pytest.raises(ResponseParseError):
        await service.list_page(CacheKey.build("designations", scope, 0, 10))
