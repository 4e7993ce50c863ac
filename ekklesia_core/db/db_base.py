"""
Column types and mixins shared by the tenant models.

The same models run against the in-memory SQLite test database and
production Postgres; JSON columns become JSONB on Postgres.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON as _GenericJSON
from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

# JSON on SQLite, JSONB on Postgres
JSON = _GenericJSON().with_variant(JSONB(), "postgresql")


def utc_now():
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """created_at / updated_at maintained by the ORM."""

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class UUIDMixin:
    """String UUID primary key, generated client side."""

    id = Column(String(36), primary_key=True, default=new_id)
