"""Domain value objects: immutable, self-validating, compared by value."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantScope:
    """Organization/branch pair that partitions every cache key and payload."""

    organization_id: str
    branch_id: str

    def __post_init__(self) -> None:
        """Validate both ids are present.

        Raises:
            ValueError: If either id is empty.
        """
        if not self.organization_id or not self.branch_id:
            raise ValueError("Organization and branch ids are both required")

    def as_payload(self) -> dict[str, str]:
        """Wire fields every create/update payload must carry."""
        return {"organizationId": self.organization_id, "branchId": self.branch_id}
