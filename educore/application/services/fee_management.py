"""Fee management resource services."""

from educore.application.services.resource_service import ResourceService
from educore.schemas.fee_management import (
    FeeHead,
    FeeHeadDto,
    FeeStructure,
    FeeStructureDto,
)


class FeeHeadService(ResourceService[FeeHead, FeeHeadDto]):
    resource_type = "fee-heads"
    entity_type = FeeHead
    dto_type = FeeHeadDto
    base_path = "/feeheads"
    payload_key = "FeeHeadMaster"


class FeeStructureService(ResourceService[FeeStructure, FeeStructureDto]):
    resource_type = "fee-structures"
    entity_type = FeeStructure
    dto_type = FeeStructureDto
    base_path = "/feestructures"
    payload_key = "feeStructure"
