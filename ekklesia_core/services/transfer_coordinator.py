"""
Relocation of accounts between tenants.

Super admins must be moved off a tenant before it can be deleted, and
ordinary accounts may only follow once no super admin is left behind on the
source. The precondition checks and the bulk update share one transaction.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..constants import PRIVILEGED_ROLE, BusinessRuleReason, TransferScope
from ..context.operation_context import operation
from ..exceptions import BusinessRuleError
from ..schemas.tenant_schema import TenantRead
from ..schemas.transfer_schema import TransferResult
from ..stores.interfaces import AccountStore, TenantStore
from ..stores.sqlalchemy_store import SqlAlchemyAccountStore, SqlAlchemyTenantStore
from ..utils.logger import ContextAwareLogger
from ..validation.tenant_validator import TenantValidator
from .base_service import SessionManagedService
from .tenant_registry import to_tenant_reads


class TransferCoordinator(SessionManagedService):
    """Moves accounts from one tenant to another."""

    def __init__(
        self,
        session: Optional[Session] = None,
        tenant_store: Optional[TenantStore] = None,
        account_store: Optional[AccountStore] = None,
        validator: Optional[TenantValidator] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.tenant_store = tenant_store or SqlAlchemyTenantStore(self.session)
        self.account_store = account_store or SqlAlchemyAccountStore(self.session)
        self.validator = validator or TenantValidator()

    @operation()
    def transfer_privileged_accounts(
        self, from_tenant_id: str, to_tenant_id: str
    ) -> TransferResult:
        """
        Re-point every super admin account of the source tenant to the target.

        Raises:
            BusinessRuleError: If the target is missing or inactive, the source
                is missing, or both ids name the same tenant
        """
        return self._transfer(from_tenant_id, to_tenant_id, TransferScope.PRIVILEGED)

    @operation()
    def transfer_all_accounts(self, from_tenant_id: str, to_tenant_id: str) -> TransferResult:
        """
        Re-point every account of the source tenant to the target.

        Refused while the source still has super admins; move those first with
        ``transfer_privileged_accounts``.

        Raises:
            BusinessRuleError: On any failed precondition
        """
        return self._transfer(from_tenant_id, to_tenant_id, TransferScope.ALL)

    def _transfer(
        self, from_tenant_id: str, to_tenant_id: str, scope: TransferScope
    ) -> TransferResult:
        with self.unit_of_work(f"transfer_{scope.value}_accounts", from_tenant_id):
            source = self.tenant_store.find_by_id(from_tenant_id)
            target = self.tenant_store.find_by_id(to_tenant_id)

            self.validator.can_transfer_accounts(
                source_exists=source is not None,
                target_exists=target is not None,
                target_active=bool(target is not None and target.is_active),
            )

            if from_tenant_id == to_tenant_id:
                raise BusinessRuleError(
                    "Cannot transfer users to the same church",
                    BusinessRuleReason.SAME_TENANT.value,
                )

            if scope == TransferScope.ALL and self.account_store.count_where(
                tenant_id=from_tenant_id, role=PRIVILEGED_ROLE
            ):
                raise BusinessRuleError(
                    "Cannot transfer users from a church with super admins",
                    BusinessRuleReason.SOURCE_HAS_PRIVILEGED_ACCOUNTS.value,
                )

            roles = [PRIVILEGED_ROLE] if scope == TransferScope.PRIVILEGED else None
            moved = self.account_store.reassign_tenant(from_tenant_id, to_tenant_id, roles=roles)

            self.logger.info(
                "Accounts transferred",
                extra={
                    "from_tenant_id": from_tenant_id,
                    "to_tenant_id": to_tenant_id,
                    "scope": scope.value,
                    "moved": moved,
                },
            )
            return TransferResult(
                from_tenant_id=from_tenant_id,
                to_tenant_id=to_tenant_id,
                moved=moved,
                scope=scope,
            )

    @operation()
    def get_available_for_transfer(self, excluding_tenant_id: str) -> List[TenantRead]:
        """Active tenants other than ``excluding_tenant_id``, ordered by name."""
        with self.unit_of_work("get_available_for_transfer", excluding_tenant_id):
            tenants = self.tenant_store.find_active_excluding(excluding_tenant_id)
            return to_tenant_reads(tenants, self.account_store)
