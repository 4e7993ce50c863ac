"""
Authorization decisions over the caller handed in by the auth layer.

Identities are never resolved here; the functions only compare the caller's
role and tenant affiliation against the requested action. The HTTP adapter
calls these guards before each TenantRegistry or TransferCoordinator method.
"""

from ..constants import UserRole
from ..exceptions import PermissionDeniedError
from ..schemas.caller_schema import Caller


def ensure_can_manage_tenants(caller: Caller) -> None:
    """
    Creating, deleting, (de)activating, listing every tenant and transferring
    accounts are super admin actions.

    Raises:
        PermissionDeniedError: For any other role
    """
    if not caller.is_privileged:
        raise PermissionDeniedError("manage churches", caller.role.value)


def ensure_can_view_tenant(caller: Caller, tenant_id: str) -> None:
    """
    Raises:
        PermissionDeniedError: If the caller is neither a super admin nor a member of the tenant
    """
    if caller.is_privileged or caller.belongs_to(tenant_id):
        return
    raise PermissionDeniedError("view this church", caller.role.value, tenant_id=tenant_id)


def ensure_can_edit_tenant(caller: Caller, tenant_id: str) -> None:
    """
    Super admins edit any tenant; church admins only their own.

    Raises:
        PermissionDeniedError: Otherwise
    """
    if caller.is_privileged:
        return
    if caller.role == UserRole.CHURCH_ADMIN and caller.belongs_to(tenant_id):
        return
    raise PermissionDeniedError("edit this church", caller.role.value, tenant_id=tenant_id)
