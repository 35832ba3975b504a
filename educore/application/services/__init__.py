"""Application services: resource endpoint adapters over the transport client."""

from educore.application.services.administration import (
    AcademicYearService,
    DepartmentService,
    DesignationService,
)
from educore.application.services.fee_management import (
    FeeHeadService,
    FeeStructureService,
)
from educore.application.services.resource_service import ResourceService

__all__ = [
    "AcademicYearService",
    "DepartmentService",
    "DesignationService",
    "FeeHeadService",
    "FeeStructureService",
    "ResourceService",
]
