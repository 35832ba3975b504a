"""Pydantic models: entities, DTOs and wire envelopes."""

from educore.schemas.administration import (
    AcademicYear,
    AcademicYearDto,
    Department,
    DepartmentDto,
    Designation,
    DesignationDto,
)
from educore.schemas.entity import BaseDto, BaseEntity, to_wire_dict, wire_key
from educore.schemas.envelope import (
    ApiResponse,
    BulkError,
    BulkResult,
    PaginatedResponse,
    PaginationMeta,
)
from educore.schemas.fee_management import (
    FeeHead,
    FeeHeadDto,
    FeeStructure,
    FeeStructureDetail,
    FeeStructureDto,
)

__all__ = [
    "AcademicYear",
    "AcademicYearDto",
    "ApiResponse",
    "BaseDto",
    "BaseEntity",
    "BulkError",
    "BulkResult",
    "Department",
    "DepartmentDto",
    "Designation",
    "DesignationDto",
    "FeeHead",
    "FeeHeadDto",
    "FeeStructure",
    "FeeStructureDetail",
    "FeeStructureDto",
    "PaginatedResponse",
    "PaginationMeta",
    "to_wire_dict",
    "wire_key",
]
