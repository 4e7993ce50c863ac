"""
Account model: the user rows that belong to a tenant.

Only the columns the tenant lifecycle needs are modelled here (role, tenant
link and activity flag); profile management lives elsewhere.
"""

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Index, String, UniqueConstraint

from ..constants import UserRole
from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class Account(Base, UUIDMixin, TimestampMixin):
    """Simple account model - just data, no logic."""

    __tablename__ = "accounts"

    tenant_id = Column(
        String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.MEMBER,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        Index("ix_accounts_tenant_role", "tenant_id", "role"),
    )
