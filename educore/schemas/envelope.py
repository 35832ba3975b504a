"""Wire envelopes returned by the school-administration API."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationMeta(_CamelModel):
    """Pagination block of the base response envelope."""

    page: int = 1
    limit: int = 0
    total: int
    total_pages: int = 0


class ApiResponse(_CamelModel, Generic[T]):
    """Base request/response envelope: {success, data?, message?, error?, errors?, pagination?}."""

    success: bool
    data: T | None = None
    message: str | None = None
    error: str | None = None
    errors: dict[str, list[str]] | None = None
    pagination: PaginationMeta | None = None


class PaginatedResponse(_CamelModel, Generic[T]):
    """Collection envelope of list endpoints: {pageIndex, pageSize, count, data}."""

    page_index: int = 0
    page_size: int = 0
    count: int = 0
    data: list[T] = Field(default_factory=list)


class BulkError(BaseModel):
    """One failed item of a bulk mutation."""

    id: str
    message: str


class BulkResult(_CamelModel):
    """Outcome of a best-effort bulk mutation."""

    succeeded_count: int = 0
    errors: list[BulkError] = Field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.errors)
