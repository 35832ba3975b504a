"""Fee management resources: fee heads and fee structures.

Fee head fields are PascalCase on the wire, unlike most resources.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from educore.schemas.entity import BaseDto, BaseEntity

FeeFrequency = Literal["Monthly", "Quarterly", "HalfYearly", "Annually", "OneTime"]


class FeeHead(BaseEntity):
    fee_head_code: str | None = Field(default=None, alias="FeeHeadCode")
    fee_head_name: str | None = Field(default=None, alias="FeeHeadName")
    fee_frequency: str | None = Field(default=None, alias="FeeFrequency")
    default_gl_code: str | None = Field(default=None, alias="DefaultGLCode")
    is_refundable: bool = Field(default=False, alias="IsRefundable")
    class_id: str | None = None
    academic_year_id: str | None = None


class FeeHeadDto(BaseDto):
    fee_head_code: str | None = Field(default=None, alias="FeeHeadCode")
    fee_head_name: str | None = Field(default=None, alias="FeeHeadName")
    fee_frequency: FeeFrequency | None = Field(default=None, alias="FeeFrequency")
    default_gl_code: str | None = Field(default=None, alias="DefaultGLCode")
    is_refundable: bool | None = Field(default=None, alias="IsRefundable")


class FeeStructureDetail(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    fee_head_id: str
    fee_amount: float
    fee_frequency: str


class FeeStructure(BaseEntity):
    fee_group_id: str | None = None
    class_id: str | None = None
    semester_id: str | None = None
    academic_year_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    details: tuple[FeeStructureDetail, ...] = ()


class FeeStructureDto(BaseDto):
    fee_group_id: str | None = None
    class_id: str | None = None
    semester_id: str | None = None
    academic_year_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    details: list[FeeStructureDetail] | None = None
