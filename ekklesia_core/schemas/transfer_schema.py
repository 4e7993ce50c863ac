"""
Schemas returned by account transfers between tenants.
"""

from pydantic import BaseModel, Field

from ..constants import TransferScope


class TransferResult(BaseModel):
    """Outcome of relocating accounts from one tenant to another."""

    from_tenant_id: str
    to_tenant_id: str
    moved: int = Field(ge=0, description="Number of accounts re-pointed")
    scope: TransferScope
