"""Administration resource services."""

from educore.application.services.resource_service import ResourceService
from educore.schemas.administration import (
    AcademicYear,
    AcademicYearDto,
    Department,
    DepartmentDto,
    Designation,
    DesignationDto,
)


class AcademicYearService(ResourceService[AcademicYear, AcademicYearDto]):
    resource_type = "academic-years"
    entity_type = AcademicYear
    dto_type = AcademicYearDto
    base_path = "/academicyears"
    payload_key = "academicyear"


class DepartmentService(ResourceService[Department, DepartmentDto]):
    """Departments are listed per organization via POST and can be hard deleted."""

    resource_type = "departments"
    entity_type = Department
    dto_type = DepartmentDto
    base_path = "/departments"
    payload_key = "department"
    list_path = "organization"
    list_via_post = True
    supports_hard_delete = True


class DesignationService(ResourceService[Designation, DesignationDto]):
    resource_type = "designations"
    entity_type = Designation
    dto_type = DesignationDto
    base_path = "/designations"
    payload_key = "designation"
