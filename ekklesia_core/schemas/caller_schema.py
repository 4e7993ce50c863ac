"""
The authenticated caller as handed over by the auth layer.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import PRIVILEGED_ROLE, UserRole


class Caller(BaseModel):
    """Role and tenant affiliation of whoever is invoking an operation."""

    role: UserRole
    tenant_id: Optional[str] = Field(default=None, description="Tenant the caller belongs to")

    model_config = ConfigDict(frozen=True)

    @property
    def is_privileged(self) -> bool:
        return self.role == PRIVILEGED_ROLE

    def belongs_to(self, tenant_id: str) -> bool:
        return self.tenant_id is not None and self.tenant_id == tenant_id
