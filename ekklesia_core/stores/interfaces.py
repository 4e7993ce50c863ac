"""
Storage contracts the tenant services depend on.

Services receive these by composition; ``sqlalchemy_store`` provides the one
concrete implementation of each.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..db.db_account_models import Account
from ..db.db_tenant_models import Tenant, TenantSettings


class TenantStore(ABC):
    """Row-level access to tenants."""

    @abstractmethod
    def insert(self, values: Dict[str, Any]) -> Tenant:
        """Insert a tenant. Unique violations surface as AlreadyExistsError."""

    @abstractmethod
    def find_by_id(self, tenant_id: str) -> Optional[Tenant]: ...

    @abstractmethod
    def find_by_slug(self, slug: str) -> Optional[Tenant]: ...

    @abstractmethod
    def update_by_id(self, tenant_id: str, values: Dict[str, Any]) -> Optional[Tenant]:
        """Apply ``values`` and return the updated row, or None if it does not exist."""

    @abstractmethod
    def delete_by_id(self, tenant_id: str) -> int:
        """Physically delete a tenant. Returns the number of rows affected."""

    @abstractmethod
    def count_where(self, **filters: Any) -> int:
        """Count tenants whose columns equal the given values."""

    @abstractmethod
    def is_taken(self, field: str, value: str, exclude_id: Optional[str] = None) -> bool:
        """Whether another tenant already uses ``value`` for the unique ``field``."""

    @abstractmethod
    def find_page(
        self,
        offset: int,
        limit: int,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Tenant], int]:
        """Return one page (newest first) and the total number of matching rows."""

    @abstractmethod
    def find_active_excluding(self, tenant_id: str) -> List[Tenant]:
        """Active tenants other than ``tenant_id``, ordered by name."""


class SettingsStore(ABC):
    """Row-level access to the one-to-one settings rows."""

    @abstractmethod
    def find_by_tenant(self, tenant_id: str) -> Optional[TenantSettings]: ...

    @abstractmethod
    def insert(self, tenant_id: str, values: Dict[str, Any]) -> TenantSettings: ...

    @abstractmethod
    def update_by_tenant(self, tenant_id: str, values: Dict[str, Any]) -> Optional[TenantSettings]:
        """Apply ``values``; None if the tenant has no settings row."""


class AccountStore(ABC):
    """The slice of account storage the tenant lifecycle needs."""

    @abstractmethod
    def count_where(self, **filters: Any) -> int: ...

    @abstractmethod
    def count_by_tenant(self, tenant_ids: Iterable[str]) -> Dict[str, int]:
        """Number of accounts bound to each tenant; tenants without accounts map to 0."""

    @abstractmethod
    def reassign_tenant(
        self, from_tenant_id: str, to_tenant_id: str, roles: Optional[Sequence[Any]] = None
    ) -> int:
        """Re-point accounts (optionally only those with ``roles``) in one bulk update."""
