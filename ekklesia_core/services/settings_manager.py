"""
Owns the one-to-one relationship between a tenant and its settings row.
"""

from typing import Any, Dict, Mapping, Optional, Union

from ..config import SettingsDefaults
from ..exceptions import AlreadyExistsError, NotFoundError, SettingsNotFoundError
from ..schemas.settings_schema import SettingsRead, SettingsUpdate
from ..stores.interfaces import SettingsStore, TenantStore
from ..utils.logger import get_logger
from ..validation.tenant_validator import TenantValidator


class SettingsManager:
    """
    Creates settings lazily from configured defaults and applies validated updates.

    A tenant without a settings row is a normal state: reading settings heals
    it. Updating settings never creates the row implicitly.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        tenant_store: TenantStore,
        validator: Optional[TenantValidator] = None,
        defaults: Optional[SettingsDefaults] = None,
    ):
        self.settings_store = settings_store
        self.tenant_store = tenant_store
        self.validator = validator or TenantValidator()
        self.defaults = defaults or SettingsDefaults()
        self.logger = get_logger()

    def default_values(self) -> Dict[str, Any]:
        values = self.defaults.model_dump()
        values["enabled_modules"] = list(values["enabled_modules"])
        return values

    def create_default(self, tenant_id: str) -> SettingsRead:
        """Insert the default settings row for a freshly created tenant."""
        settings = self.settings_store.insert(tenant_id, self.default_values())
        self.logger.info("Default settings created", extra={"tenant_id": tenant_id})
        return SettingsRead.model_validate(settings)

    def get_or_create_default(self, tenant_id: str) -> SettingsRead:
        """
        Return the tenant's settings, inserting the defaults when absent.

        Calling it twice returns the same row. If a concurrent request inserts
        the row first, that row is read back and returned.

        Raises:
            NotFoundError: If the tenant itself does not exist
        """
        settings = self.settings_store.find_by_tenant(tenant_id)
        if settings is not None:
            return SettingsRead.model_validate(settings)

        if self.tenant_store.find_by_id(tenant_id) is None:
            raise NotFoundError(tenant_id)

        try:
            return self.create_default(tenant_id)
        except AlreadyExistsError:
            settings = self.settings_store.find_by_tenant(tenant_id)
            if settings is None:
                raise
            self.logger.info(
                "Settings created concurrently, using existing row", extra={"tenant_id": tenant_id}
            )
            return SettingsRead.model_validate(settings)

    def update(
        self, tenant_id: str, partial: Union[SettingsUpdate, Mapping[str, Any]]
    ) -> SettingsRead:
        """
        Validate and apply a partial settings update.

        Raises:
            ValidationError: If any field is invalid
            SettingsNotFoundError: If the tenant has no settings row
        """
        values = (
            partial.model_dump(exclude_unset=True)
            if isinstance(partial, SettingsUpdate)
            else dict(partial)
        )
        self.validator.validate_settings(values)

        if "enabled_modules" in values:
            # Preserve order, drop duplicates
            modules = (module.strip() for module in values["enabled_modules"])
            values["enabled_modules"] = list(dict.fromkeys(modules))

        settings = self.settings_store.update_by_tenant(tenant_id, values)
        if settings is None:
            raise SettingsNotFoundError(tenant_id)

        self.logger.info(
            "Settings updated", extra={"tenant_id": tenant_id, "fields": sorted(values)}
        )
        return SettingsRead.model_validate(settings)
