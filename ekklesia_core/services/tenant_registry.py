"""
Tenant registry: the aggregate root service for churches.

Composes the validator, the slug allocator and the settings manager over the
tenant, settings and account stores. Every public operation runs in one unit
of work; domain errors propagate unchanged and anything else surfaces as a
DatabaseError naming the operation.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import TenancyConfig, get_config
from ..constants import PRIVILEGED_ROLE
from ..context.operation_context import operation
from ..db.db_tenant_models import Tenant
from ..exceptions import AlreadyExistsError, NotFoundError, ValidationError
from ..schemas.settings_schema import SettingsRead, SettingsUpdate
from ..schemas.tenant_schema import TenantCreate, TenantPage, TenantRead, TenantUpdate
from ..stores.interfaces import AccountStore, SettingsStore, TenantStore
from ..stores.sqlalchemy_store import (
    SqlAlchemyAccountStore,
    SqlAlchemySettingsStore,
    SqlAlchemyTenantStore,
)
from ..utils.logger import ContextAwareLogger
from ..validation.tenant_validator import TENANT_OPTIONAL_FIELDS, TenantValidator
from .base_service import SessionManagedService
from .settings_manager import SettingsManager
from .slug_allocator import SlugAllocator

TenantPayload = Union[TenantCreate, TenantUpdate, Mapping[str, Any]]


def to_tenant_reads(tenants: Sequence[Tenant], account_store: AccountStore) -> List[TenantRead]:
    """Build read models for ``tenants`` with their settings and account counts."""
    counts = account_store.count_by_tenant([tenant.id for tenant in tenants])
    reads = []
    for tenant in tenants:
        read = TenantRead.model_validate(tenant)
        reads.append(read.model_copy(update={"user_count": counts.get(tenant.id, 0)}))
    return reads


def _payload(data: TenantPayload) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data)


def _clean(values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Keep tenant columns only, strip strings and turn empty optional values
    into None. A blank slug counts as absent.
    """
    cleaned: Dict[str, Any] = {}
    for key in ("name", "email", "slug"):
        value = values.get(key)
        if isinstance(value, str) and value.strip():
            cleaned[key] = value.strip()

    for key in TENANT_OPTIONAL_FIELDS:
        if key not in values:
            continue
        value = values[key]
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value

    return cleaned


class TenantRegistry(SessionManagedService):
    """
    Create, read, update, delete and (de)activate tenants.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        tenant_store: Optional[TenantStore] = None,
        settings_store: Optional[SettingsStore] = None,
        account_store: Optional[AccountStore] = None,
        validator: Optional[TenantValidator] = None,
        config: Optional[TenancyConfig] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Args:
            session: Optional session; when given the caller owns the transaction
            tenant_store: Defaults to the SQLAlchemy store over ``session``
            settings_store: Defaults to the SQLAlchemy store over ``session``
            account_store: Defaults to the SQLAlchemy store over ``session``
            validator: Defaults to a validator using the configured settings policy
            config: Tenancy policy; defaults to ``get_config().tenancy``
            logger: Optional logger instance
        """
        super().__init__(session=session, logger=logger)
        self.config = config or get_config().tenancy

        self.tenant_store = tenant_store or SqlAlchemyTenantStore(self.session)
        self.settings_store = settings_store or SqlAlchemySettingsStore(self.session)
        self.account_store = account_store or SqlAlchemyAccountStore(self.session)

        self.validator = validator or TenantValidator(settings_policy=self.config.policy)
        self.slug_allocator = SlugAllocator(self.tenant_store, self.config.max_slug_attempts)
        self.settings_manager = SettingsManager(
            self.settings_store, self.tenant_store, self.validator, self.config.defaults
        )

    # ==================== HELPERS ====================

    def _get_or_raise(self, tenant_id: str) -> Tenant:
        tenant = self.tenant_store.find_by_id(tenant_id)
        if tenant is None:
            raise NotFoundError(tenant_id)
        return tenant

    def _read(self, tenant: Tenant) -> TenantRead:
        return to_tenant_reads([tenant], self.account_store)[0]

    def _ensure_free(self, field: str, value: str, exclude_id: Optional[str] = None) -> None:
        if self.tenant_store.is_taken(field, value, exclude_id=exclude_id):
            raise AlreadyExistsError(field, value)

    def _is_last_active(self, tenant: Tenant) -> bool:
        return bool(tenant.is_active) and self.tenant_store.count_where(is_active=True) <= 1

    def _set_active(self, tenant_id: str, active: bool) -> TenantRead:
        tenant = self.tenant_store.update_by_id(tenant_id, {"is_active": active})
        if tenant is None:
            raise NotFoundError(tenant_id)
        self.logger.info(
            "Church status changed", extra={"tenant_id": tenant_id, "is_active": active}
        )
        return self._read(tenant)

    def _check_deactivate(self, tenant_id: str) -> bool:
        tenant = self._get_or_raise(tenant_id)
        return self.validator.can_deactivate_tenant(self._is_last_active(tenant))

    # ==================== CREATE / READ ====================

    @operation()
    def create(self, data: TenantPayload) -> TenantRead:
        """
        Create a tenant with a unique slug and default settings.

        Email is checked before slug, so a payload colliding on both reports
        the email.

        Raises:
            ValidationError: If any field is invalid
            AlreadyExistsError: If the email or slug is already taken
            DatabaseError: For unclassified storage failures
        """
        values = _payload(data)
        self.validator.validate_create(values)
        values = _clean(values)

        with self.unit_of_work("create"):
            self._ensure_free("email", values["email"])

            if values.get("slug"):
                self._ensure_free("slug", values["slug"])
            else:
                values["slug"] = self.slug_allocator.allocate_unique(values["name"])

            tenant = self.tenant_store.insert(values)
            self.settings_manager.create_default(tenant.id)

            self.logger.info(
                "Church created", extra={"tenant_id": tenant.id, "slug": tenant.slug}
            )
            return self._read(tenant)

    @operation()
    def find_all(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> TenantPage:
        """
        List tenants newest first, one page at a time.

        Args:
            page: 1-based page number
            limit: Page size, 1..max_page_size (default: configured page size)
            include_inactive: Include soft-deleted / deactivated tenants
            search: Case-insensitive substring matched against name, email and slug

        Raises:
            ValidationError: If page or limit is out of range
        """
        if limit is None:
            limit = self.config.default_page_size

        errors: Dict[str, str] = {}
        if page < 1:
            errors["page"] = "Page must be at least 1"
        if limit < 1 or limit > self.config.max_page_size:
            errors["limit"] = f"Limit must be between 1 and {self.config.max_page_size}"
        if errors:
            raise ValidationError("Invalid pagination parameters", errors)

        search = search.strip() if search else None

        with self.unit_of_work("find_all"):
            rows, total = self.tenant_store.find_page(
                offset=(page - 1) * limit,
                limit=limit,
                include_inactive=include_inactive,
                search=search or None,
            )
            return TenantPage.build(to_tenant_reads(rows, self.account_store), total, page, limit)

    @operation()
    def find_one(self, tenant_id: str) -> TenantRead:
        with self.unit_of_work("find_one", tenant_id):
            return self._read(self._get_or_raise(tenant_id))

    @operation()
    def find_by_slug(self, slug: str) -> TenantRead:
        with self.unit_of_work("find_by_slug", slug):
            tenant = self.tenant_store.find_by_slug(slug)
            if tenant is None:
                raise NotFoundError(slug, identifier_type="slug")
            return self._read(tenant)

    # ==================== UPDATE ====================

    @operation()
    def update(self, tenant_id: str, partial: TenantPayload) -> TenantRead:
        """
        Apply a partial update. Absent fields stay unchanged and empty
        optional fields are cleared.

        Renaming without an explicit slug allocates a new one from the name
        when ``regenerate_slug_on_rename`` is enabled.

        Raises:
            ValidationError: If any present field is invalid
            NotFoundError: If the tenant does not exist
            AlreadyExistsError: If the email or slug belongs to another tenant
        """
        values = _payload(partial)
        self.validator.validate_update(values)
        values = _clean(values)

        with self.unit_of_work("update", tenant_id):
            self._get_or_raise(tenant_id)

            if "name" in values and "slug" not in values and self.config.regenerate_slug_on_rename:
                values["slug"] = self.slug_allocator.allocate_unique(
                    values["name"], exclude_id=tenant_id
                )

            if "email" in values:
                self._ensure_free("email", values["email"], exclude_id=tenant_id)
            if "slug" in values:
                self._ensure_free("slug", values["slug"], exclude_id=tenant_id)

            tenant = self.tenant_store.update_by_id(tenant_id, values)
            if tenant is None:
                raise NotFoundError(tenant_id)

            self.logger.info(
                "Church updated", extra={"tenant_id": tenant_id, "fields": sorted(values)}
            )
            return self._read(tenant)

    # ==================== LIFECYCLE ====================

    @operation()
    def can_delete(self, tenant_id: str) -> bool:
        """
        Guard to call before soft or hard deletion.

        Raises:
            NotFoundError: If the tenant does not exist
            BusinessRuleError: If it has active super admins or is the last active tenant
        """
        with self.unit_of_work("can_delete", tenant_id):
            tenant = self._get_or_raise(tenant_id)
            has_privileged = (
                self.account_store.count_where(
                    tenant_id=tenant_id, role=PRIVILEGED_ROLE, is_active=True
                )
                > 0
            )
            return self.validator.can_delete_tenant(has_privileged, self._is_last_active(tenant))

    @operation()
    def can_deactivate(self, tenant_id: str) -> bool:
        with self.unit_of_work("can_deactivate", tenant_id):
            return self._check_deactivate(tenant_id)

    @operation()
    def soft_delete(self, tenant_id: str) -> TenantRead:
        """Mark the tenant inactive. Call ``can_delete`` first."""
        with self.unit_of_work("soft_delete", tenant_id):
            return self._set_active(tenant_id, False)

    @operation()
    def activate(self, tenant_id: str) -> TenantRead:
        with self.unit_of_work("activate", tenant_id):
            return self._set_active(tenant_id, True)

    @operation()
    def deactivate(self, tenant_id: str) -> TenantRead:
        """
        Raises:
            BusinessRuleError: If this is the last active tenant
        """
        with self.unit_of_work("deactivate", tenant_id):
            self._check_deactivate(tenant_id)
            return self._set_active(tenant_id, False)

    @operation()
    def hard_delete(self, tenant_id: str) -> None:
        """
        Physically remove the tenant; its settings and accounts cascade.
        Irreversible. Call ``can_delete`` first.

        Raises:
            NotFoundError: If no row was deleted
        """
        with self.unit_of_work("hard_delete", tenant_id):
            if self.tenant_store.delete_by_id(tenant_id) == 0:
                raise NotFoundError(tenant_id)
            self.logger.warning("Church permanently deleted", extra={"tenant_id": tenant_id})

    # ==================== SETTINGS ====================

    @operation()
    def get_settings(self, tenant_id: str) -> SettingsRead:
        with self.unit_of_work("get_settings", tenant_id):
            return self.settings_manager.get_or_create_default(tenant_id)

    @operation()
    def update_settings(
        self, tenant_id: str, partial: Union[SettingsUpdate, Mapping[str, Any]]
    ) -> SettingsRead:
        with self.unit_of_work("update_settings", tenant_id):
            return self.settings_manager.update(tenant_id, partial)
