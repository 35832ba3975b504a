"""Base entity and DTO models shared by every resource.

Wire format is camelCase JSON; Python attributes are snake_case. Entities
are frozen so a cached snapshot can never be mutated in place: every
change produces a new model via model_copy / model_validate.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

WirePayload = dict[str, Any]


def wire_key(key: str) -> str:
    """Return the wire (camelCase) spelling of a snake_case key; other keys pass through."""
    return to_camel(key) if "_" in key else key


def to_wire_dict(
    payload: BaseModel | Mapping[str, Any],
    model: type[BaseModel] | None = None,
) -> WirePayload:
    """Normalize a DTO model or plain mapping to a wire-format dict.

    Models dump only explicitly set fields so a partial update DTO stays partial.
    Mapping keys that name a field of model use that field's alias.
    """
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True, exclude_unset=True, mode="json")
    fields = model.model_fields if model is not None else {}
    wire: WirePayload = {}
    for key, value in payload.items():
        field = fields.get(str(key))
        if field is not None and field.alias:
            wire[field.alias] = value
        else:
            wire[wire_key(str(key))] = value
    return wire


class BaseEntity(BaseModel):
    """Server record scoped to one organization/branch.

    Resource-specific fields not declared on a subclass are kept as extras
    under their wire names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    id: str
    organization_id: str
    branch_id: str
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("id", "organization_id", "branch_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        """Some endpoints return numeric or GUID ids; the cache keys on strings."""
        return str(v) if isinstance(v, int) else v

    def to_wire(self) -> WirePayload:
        """Serialize to the camelCase dict sent to and received from the API."""
        return self.model_dump(by_alias=True, mode="json")


class BaseDto(BaseModel):
    """Create/update payload. Tenant fields are filled in by the mutation layer."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str | None = None
    organization_id: str | None = None
    branch_id: str | None = None
    is_active: bool | None = None
