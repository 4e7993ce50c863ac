"""Storage contracts and their SQLAlchemy implementations."""

from .interfaces import AccountStore, SettingsStore, TenantStore
from .sqlalchemy_store import (
    SqlAlchemyAccountStore,
    SqlAlchemySettingsStore,
    SqlAlchemyTenantStore,
)

__all__ = [
    "AccountStore",
    "SettingsStore",
    "TenantStore",
    "SqlAlchemyAccountStore",
    "SqlAlchemySettingsStore",
    "SqlAlchemyTenantStore",
]
