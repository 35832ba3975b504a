"""Pytest configuration and fixtures for the educore client.

Timers are never real: the cache runs on a FakeClock and the transport
sleeps through record_sleep, which only records the requested delays.
"""

from collections.abc import Callable

import httpx
import pytest

from educore.application.use_cases.query_coordinator import QueryCoordinator
from educore.core.config import Settings
from educore.core.tenant_context import TenantContext
from educore.domain.snapshot import PaginatedSnapshot
from educore.domain.value_objects import TenantScope
from educore.infrastructure.cache.keys import CacheKey
from educore.infrastructure.cache.resource_cache import ResourceCache
from educore.infrastructure.http.client import TransportClient
from educore.infrastructure.http.retry import RetryPolicy
from educore.infrastructure.http.session import AuthSession
from educore.schemas.administration import Department

ORG_ID = "org-1"
BRANCH_ID = "br-1"
BASE_URL = "http://test/api"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_department(entity_id: str, name: str | None = None, **fields) -> Department:
    """Department entity in the default test scope."""
    return Department(
        id=entity_id,
        organization_id=fields.pop("organization_id", ORG_ID),
        branch_id=fields.pop("branch_id", BRANCH_ID),
        department_name=name or f"Department {entity_id}",
        **fields,
    )


def make_snapshot(
    *entities: Department,
    total_count: int | None = None,
    page_index: int = 0,
    page_size: int = 10,
) -> PaginatedSnapshot[Department]:
    return PaginatedSnapshot(
        items=tuple(entities),
        total_count=len(entities) if total_count is None else total_count,
        page_index=page_index,
        page_size=page_size,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment and .env."""
    return Settings(
        _env_file=None,
        api_base_url=BASE_URL,
        api_retry_attempts=3,
        api_retry_delay_seconds=1.0,
        cache_stale_time_seconds=300.0,
        cache_gc_time_seconds=600.0,
        default_organization_id="",
        default_branch_id="",
    )


@pytest.fixture
def scope() -> TenantScope:
    return TenantScope(ORG_ID, BRANCH_ID)


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(ORG_ID, BRANCH_ID)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(settings: Settings, clock: FakeClock) -> ResourceCache:
    return ResourceCache(settings=settings, clock=clock)


@pytest.fixture
async def coordinator(cache: ResourceCache, tenant: TenantContext) -> QueryCoordinator:
    coord = QueryCoordinator(cache, tenant)
    yield coord
    await coord.aclose()


@pytest.fixture
def department_key(scope: TenantScope) -> CacheKey:
    return CacheKey.build("departments", scope, 0, 10)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def record_sleep(sleeps: list[float]) -> Callable:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
async def transport_factory(settings: Settings, record_sleep: Callable):
    """Build a TransportClient whose requests are answered by handler."""
    clients: list[httpx.AsyncClient] = []

    def _build(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        session: AuthSession | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> TransportClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(http_client)
        return TransportClient(
            session or AuthSession("token-abc"),
            settings=settings,
            retry_policy=retry_policy,
            http_client=http_client,
            sleep=record_sleep,
        )

    yield _build
    for http_client in clients:
        await http_client.aclose()
