"""End-to-end ResourceCollection scenarios against the fake departments API.

The fake API is a FastAPI app served in-process through httpx.ASGITransport;
the client is wired by create_client exactly as an application would.
"""

import asyncio

import httpx
import pytest
from jose import jwt

from educore.application.services.administration import DepartmentService
from educore.core.lifespan import create_client
from educore.domain.exceptions import TenantNotReadyError
from educore.domain.value_objects import TenantScope
from educore.infrastructure.exceptions import ClientError
from tests.conftest import BRANCH_ID, ORG_ID
from tests.integration.fake_api import create_fake_api


def _token(organization_id: str = ORG_ID, branch_id: str = BRANCH_ID) -> str:
    claims = {"sub": "admin", "organizationId": organization_id, "branchId": branch_id}
    return jwt.encode(claims, "test-secret", algorithm="HS256")


@pytest.fixture
def fake_api():
    return create_fake_api()


@pytest.fixture
def state(fake_api):
    return fake_api[1]


@pytest.fixture
async def client(settings, fake_api):
    app, _ = fake_api
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        async with create_client(_token(), settings=settings, http_client=http_client) as educore:
            yield educore


def _seed(state, count: int, organization_id: str = ORG_ID) -> list[str]:
    return [
        state.add(organization_id, BRANCH_ID, departmentName=f"Department {i}")["id"]
        for i in range(1, count + 1)
    ]


@pytest.mark.asyncio
async def test_sign_in_resolves_tenant_from_token(client) -> None:
    assert client.tenant.scope == TenantScope(ORG_ID, BRANCH_ID)
    assert client.session.is_authenticated is True


@pytest.mark.asyncio
async def test_load_first_page(client, state) -> None:
    _seed(state, 5)
    departments = client.collection(DepartmentService)

    snapshot = await departments.load()

    assert len(snapshot.items) == 5
    assert departments.total_count == 5
    assert [item.department_name for item in departments.items][0] == "Department 1"
    assert departments.is_loading is False
    assert departments.error is None


@pytest.mark.asyncio
async def test_concurrent_reads_issue_one_request(client, state) -> None:
    _seed(state, 3)
    departments = client.collection(DepartmentService)

    first, second = await asyncio.gather(departments.refetch(), departments.refetch())
    await client.coordinator.wait_idle()

    assert first is second
    assert state.list_calls == 1


@pytest.mark.asyncio
async def test_create_replaces_placeholder_and_refetches(client, state) -> None:
    _seed(state, 5)
    departments = client.collection(DepartmentService)
    await departments.load()

    created = await departments.create({"departmentName": "Science"})

    assert departments.items[0].id == created.id
    assert departments.total_count == 6
    assert state.rows[created.id]["organizationId"] == ORG_ID

    await client.coordinator.wait_idle()
    assert sorted(item.id for item in departments.items) == sorted(state.rows)
    assert client.cache.is_stale(departments.key) is False


@pytest.mark.asyncio
async def test_failed_create_rolls_back(client, state) -> None:
    _seed(state, 5)
    departments = client.collection(DepartmentService)
    before = await departments.load()
    state.fail_creates.append((409, "Department code already exists"))

    with pytest.raises(ClientError, match="already exists"):
        await departments.create({"departmentName": "Science"})

    assert departments.snapshot is before
    assert departments.is_creating is False


@pytest.mark.asyncio
async def test_update_keeps_local_value_when_echo_is_stale(client, state) -> None:
    (dep_id,) = _seed(state, 1)
    departments = client.collection(DepartmentService)
    await departments.load()

    updated = await departments.update(dep_id, {"departmentName": "Renamed"})

    assert updated.department_name == "Renamed"
    assert departments.items[0].department_name == "Renamed"
    await client.coordinator.wait_idle()
    assert departments.items[0].department_name == "Renamed"


@pytest.mark.asyncio
async def test_bulk_soft_delete_reports_partial_failure(client, state) -> None:
    id1, id2, id3 = _seed(state, 3)
    state.fail_writes[id2] = (400, "Department has staff assigned")
    departments = client.collection(DepartmentService)
    await departments.load()

    result = await departments.bulk_delete([id1, id2, id3], hard=False)

    assert result.succeeded_count == 2
    assert [(e.id, e.message) for e in result.errors] == [(id2, "Department has staff assigned")]
    await client.coordinator.wait_idle()
    assert [item.id for item in departments.items] == [id2]
    assert departments.items[0].is_active is True
    assert state.rows[id1]["isActive"] is False


@pytest.mark.asyncio
async def test_remove_hard_deletes_department(client, state) -> None:
    id1, id2 = _seed(state, 2)
    departments = client.collection(DepartmentService)
    await departments.load()

    await departments.remove(id1)

    assert id1 not in state.rows
    assert [item.id for item in departments.items] == [id2]
    assert departments.total_count == 1


@pytest.mark.asyncio
async def test_toggle_status(client, state) -> None:
    (dep_id,) = _seed(state, 1)
    departments = client.collection(DepartmentService)
    await departments.load()

    await departments.toggle_status(dep_id, False)

    assert state.rows[dep_id]["isActive"] is False


@pytest.mark.asyncio
async def test_pagination_helpers(client, state) -> None:
    _seed(state, 25)
    departments = client.collection(DepartmentService)
    await departments.load()

    for _ in range(3):
        departments.next_page()
    assert departments.page_index == 2
    await departments.load()
    assert len(departments.items) == 5

    for _ in range(5):
        departments.prev_page()
    assert departments.page_index == 0

    departments.set_page_index(1)
    departments.set_page_size(20)
    assert (departments.page_index, departments.page_size) == (0, 20)
    await departments.load()
    assert len(departments.items) == 20


@pytest.mark.asyncio
async def test_page_size_clamped_to_maximum(client) -> None:
    departments = client.collection(DepartmentService)
    departments.set_page_size(10_000)
    assert departments.page_size == client.settings.max_page_size


@pytest.mark.asyncio
async def test_tenant_switch_shows_other_tenant_rows(client, state) -> None:
    _seed(state, 2)
    _seed(state, 4, organization_id="org-2")
    departments = client.collection(DepartmentService)
    await departments.load()

    client.tenant.set_scope("org-2", BRANCH_ID)
    await departments.load()

    assert departments.total_count == 4
    assert all(item.organization_id == "org-2" for item in departments.items)


@pytest.mark.asyncio
async def test_invalidate_refetches_displayed_page(client, state) -> None:
    _seed(state, 2)
    departments = client.collection(DepartmentService)
    await departments.load()
    calls = state.list_calls
    state.add(ORG_ID, BRANCH_ID, departmentName="Added elsewhere")

    invalidated = departments.invalidate()
    await client.coordinator.wait_idle()

    assert invalidated == [departments.key]
    assert state.list_calls == calls + 1
    assert departments.total_count == 3


@pytest.mark.asyncio
async def test_reads_require_ready_tenant(client) -> None:
    client.sign_out()
    departments = client.collection(DepartmentService)

    assert departments.items == ()
    assert departments.key is None
    with pytest.raises(TenantNotReadyError):
        await departments.load()
    with pytest.raises(TenantNotReadyError):
        await departments.create({"departmentName": "X"})
