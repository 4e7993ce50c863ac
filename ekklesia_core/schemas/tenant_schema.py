"""
Pydantic schemas for tenant (church) data transfer.

Input schemas only carry types; field rules live in TenantValidator so that
every failing field is reported in one ValidationError.
"""

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .mixins import IdMixin, TimestampMixin
from .settings_schema import SettingsRead


class TenantCreate(BaseModel):
    """
    Schema for creating a new tenant.
    """

    name: str
    email: str
    slug: Optional[str] = None

    # Contact information
    phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None

    # Address information
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    tax_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TenantUpdate(BaseModel):
    """
    Schema for updating an existing tenant. Status changes are not accepted
    here; they go through activate, deactivate and soft_delete.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    slug: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    tax_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TenantRead(IdMixin, TimestampMixin):
    """
    Tenant joined with its settings and the number of accounts it owns.
    """

    name: str
    slug: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    tax_id: Optional[str] = None
    is_active: bool

    settings: Optional[SettingsRead] = None
    user_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class TenantPage(BaseModel):
    """One page of tenants plus the paging totals."""

    data: List[TenantRead] = Field(default_factory=list)
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, data: List[TenantRead], total: int, page: int, limit: int) -> "TenantPage":
        return cls(
            data=data,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )
