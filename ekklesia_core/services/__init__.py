"""Service layer for the tenant lifecycle."""

from .access_policy import ensure_can_edit_tenant, ensure_can_manage_tenants, ensure_can_view_tenant
from .base_service import SessionManagedService
from .settings_manager import SettingsManager
from .slug_allocator import SlugAllocator, generate
from .tenant_registry import TenantRegistry
from .transfer_coordinator import TransferCoordinator

__all__ = [
    "SessionManagedService",
    "SettingsManager",
    "SlugAllocator",
    "TenantRegistry",
    "TransferCoordinator",
    "ensure_can_edit_tenant",
    "ensure_can_manage_tenants",
    "ensure_can_view_tenant",
    "generate",
]
