"""Administration resources: academic years, departments, designations."""

from pydantic import Field

from educore.schemas.entity import BaseDto, BaseEntity


class AcademicYear(BaseEntity):
    year_code: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current_year: bool = False
    is_admission_open: bool = False
    status: str | None = None


class AcademicYearDto(BaseDto):
    year_code: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current_year: bool | None = None
    is_admission_open: bool | None = None
    status: str | None = None


class Department(BaseEntity):
    department_name: str | None = None
    department_code: str | None = None
    division_id: str | None = None
    description: str | None = None


class DepartmentDto(BaseDto):
    department_name: str | None = None
    department_code: str | None = None
    division_id: str | None = None
    description: str | None = None


class Designation(BaseEntity):
    designation_name: str | None = None
    designation_code: str | None = None
    description: str | None = None
    # The API spells this one in PascalCase.
    parent_designation_id: str | None = Field(default=None, alias="ParentDesignationId")


class DesignationDto(BaseDto):
    designation_name: str | None = None
    designation_code: str | None = None
    description: str | None = None
    parent_designation_id: str | None = Field(default=None, alias="ParentDesignationId")
