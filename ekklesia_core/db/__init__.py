"""
SQLAlchemy models and database configuration for the tenant governance core.
"""

from .db_account_models import Account
from .db_base import (
    JSON,
    TimestampMixin,
    UUIDMixin,
    utc_now,
)
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    close_db,
    get_db_manager,
    get_development_config,
    get_production_config,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_tenant_models import Tenant, TenantSettings

__all__ = [
    # Base definitions
    "Base",
    "JSON",
    "TimestampMixin",
    "UUIDMixin",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "import_all_models",
    "initialize_db",
    "close_db",
    "get_db_manager",
    "set_db_manager",
    "get_production_config",
    "get_development_config",
    # Models
    "Account",
    "Tenant",
    "TenantSettings",
]
