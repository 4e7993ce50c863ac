"""
Tenant (church) and tenant settings models.

Just the data structure - no business logic or class methods.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .db_base import JSON, TimestampMixin, UUIDMixin
from .db_config import Base


class Tenant(Base, UUIDMixin, TimestampMixin):
    """A church record. Removed physically only by hard delete."""

    __tablename__ = "tenants"

    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)

    # Contact and address
    phone = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    website = Column(String(255), nullable=True)
    logo_url = Column(String(500), nullable=True)
    tax_id = Column(String(30), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    settings = relationship(
        "TenantSettings",
        uselist=False,
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("slug", name="uq_tenants_slug"),
        UniqueConstraint("email", name="uq_tenants_email"),
        Index("ix_tenants_active_created", "is_active", "created_at"),
    )


class TenantSettings(Base, UUIDMixin, TimestampMixin):
    """One settings row per tenant, created lazily with configured defaults."""

    __tablename__ = "tenant_settings"

    tenant_id = Column(
        String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    timezone = Column(String(64), nullable=False)
    currency = Column(String(3), nullable=False)
    fiscal_year = Column(String(20), nullable=False)
    enabled_modules = Column(JSON, nullable=False, default=list)
    enable_ocr = Column(Boolean, nullable=False, default=False)
    ocr_api_key = Column(String(255), nullable=True)
    bank_name = Column(String(100), nullable=True)
    account_number = Column(String(50), nullable=True)

    tenant = relationship("Tenant", back_populates="settings")

    __table_args__ = (UniqueConstraint("tenant_id", name="uq_tenant_settings_tenant_id"),)
