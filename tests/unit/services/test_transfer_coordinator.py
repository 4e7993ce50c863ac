"""
Tests for TransferCoordinator: moving accounts between tenants.
"""

from unittest.mock import Mock

import pytest

from ekklesia_core.constants import TransferScope, UserRole
from ekklesia_core.db import Account
from ekklesia_core.exceptions import BusinessRuleError, DatabaseError
from ekklesia_core.services.transfer_coordinator import TransferCoordinator
from tests.fixtures.factories import (
    AccountFactory,
    InactiveTenantFactory,
    SuperAdminFactory,
    TenantFactory,
)


@pytest.fixture
def source_and_target(db_session):
    return TenantFactory(name="Source Church"), TenantFactory(name="Target Church")


class TestTransferPrivilegedAccounts:
    def test_moves_only_super_admins(self, db_session, transfer_coordinator, source_and_target):
        source, target = source_and_target
        active_admin = SuperAdminFactory(tenant_id=source.id)
        inactive_admin = SuperAdminFactory(tenant_id=source.id, is_active=False)
        pastor = AccountFactory(tenant_id=source.id, role=UserRole.PASTOR)

        result = transfer_coordinator.transfer_privileged_accounts(source.id, target.id)

        assert result.moved == 2
        assert result.scope == TransferScope.PRIVILEGED
        assert result.from_tenant_id == source.id
        assert result.to_tenant_id == target.id
        assert active_admin.tenant_id == target.id
        assert inactive_admin.tenant_id == target.id
        assert pastor.tenant_id == source.id

    def test_nothing_to_move(self, db_session, transfer_coordinator, source_and_target):
        source, target = source_and_target

        assert transfer_coordinator.transfer_privileged_accounts(source.id, target.id).moved == 0

    def test_unblocks_deletion(
        self, db_session, transfer_coordinator, tenant_registry, source_and_target
    ):
        source, target = source_and_target
        SuperAdminFactory(tenant_id=source.id)

        with pytest.raises(BusinessRuleError):
            tenant_registry.can_delete(source.id)

        transfer_coordinator.transfer_privileged_accounts(source.id, target.id)

        assert tenant_registry.can_delete(source.id) is True


class TestTransferAllAccounts:
    def test_moves_everyone(
        self, db_session, transfer_coordinator, source_and_target, account_store
    ):
        source, target = source_and_target
        AccountFactory(tenant_id=source.id)
        AccountFactory(tenant_id=source.id, role=UserRole.TREASURER)
        AccountFactory(tenant_id=target.id)

        result = transfer_coordinator.transfer_all_accounts(source.id, target.id)

        assert result.moved == 2
        assert result.scope == TransferScope.ALL
        assert account_store.count_where(tenant_id=source.id) == 0
        assert account_store.count_where(tenant_id=target.id) == 3

    @pytest.mark.parametrize("is_active", [True, False])
    def test_refused_while_super_admins_remain(
        self, db_session, transfer_coordinator, source_and_target, account_store, is_active
    ):
        source, target = source_and_target
        SuperAdminFactory(tenant_id=source.id, is_active=is_active)
        AccountFactory(tenant_id=source.id)

        with pytest.raises(BusinessRuleError) as exc_info:
            transfer_coordinator.transfer_all_accounts(source.id, target.id)

        assert exc_info.value.reason == "source_has_privileged_accounts"
        assert account_store.count_where(tenant_id=source.id) == 2

    def test_privileged_first_then_everyone(
        self, db_session, transfer_coordinator, source_and_target, account_store
    ):
        source, target = source_and_target
        SuperAdminFactory(tenant_id=source.id)
        AccountFactory(tenant_id=source.id)

        transfer_coordinator.transfer_privileged_accounts(source.id, target.id)
        result = transfer_coordinator.transfer_all_accounts(source.id, target.id)

        assert result.moved == 1
        assert account_store.count_where(tenant_id=target.id) == 2

    def test_failed_transfer_rolls_back_owned_session(self, db_session, source_and_target):
        source, target = source_and_target
        source_id, target_id = source.id, target.id
        AccountFactory(tenant_id=source_id)
        AccountFactory(tenant_id=source_id, role=UserRole.PASTOR)
        db_session.commit()

        coordinator = TransferCoordinator()
        reassign = coordinator.account_store.reassign_tenant

        def reassign_then_fail(*args, **kwargs):
            reassign(*args, **kwargs)
            raise RuntimeError("connection reset")

        coordinator.account_store.reassign_tenant = Mock(side_effect=reassign_then_fail)

        with pytest.raises(DatabaseError) as exc_info:
            coordinator.transfer_all_accounts(source_id, target_id)
        coordinator.close()

        assert exc_info.value.operation == "transfer_all_accounts"
        assert db_session.query(Account).filter_by(tenant_id=source_id).count() == 2
        assert db_session.query(Account).filter_by(tenant_id=target_id).count() == 0


class TestTransferPreconditions:
    @pytest.mark.parametrize("method", ["transfer_privileged_accounts", "transfer_all_accounts"])
    def test_missing_target_reported_first(self, db_session, transfer_coordinator, method):
        with pytest.raises(BusinessRuleError) as exc_info:
            getattr(transfer_coordinator, method)("missing-source", "missing-target")

        assert exc_info.value.reason == "target_tenant_not_found"

    def test_missing_source(self, db_session, transfer_coordinator):
        target = TenantFactory()

        with pytest.raises(BusinessRuleError) as exc_info:
            transfer_coordinator.transfer_all_accounts("missing", target.id)

        assert exc_info.value.reason == "source_tenant_not_found"

    def test_inactive_target(self, db_session, transfer_coordinator):
        source, target = TenantFactory(), InactiveTenantFactory()
        admin = SuperAdminFactory(tenant_id=source.id)

        with pytest.raises(BusinessRuleError) as exc_info:
            transfer_coordinator.transfer_privileged_accounts(source.id, target.id)

        assert exc_info.value.reason == "target_tenant_inactive"
        assert admin.tenant_id == source.id

    def test_inactive_source_is_allowed(self, db_session, transfer_coordinator):
        source, target = InactiveTenantFactory(), TenantFactory()
        AccountFactory(tenant_id=source.id)

        assert transfer_coordinator.transfer_all_accounts(source.id, target.id).moved == 1

    def test_same_tenant(self, db_session, transfer_coordinator):
        tenant = TenantFactory()

        with pytest.raises(BusinessRuleError) as exc_info:
            transfer_coordinator.transfer_all_accounts(tenant.id, tenant.id)

        assert exc_info.value.reason == "same_tenant"


class TestAvailableForTransfer:
    def test_active_others_by_name(self, db_session, transfer_coordinator):
        current = TenantFactory(name="Mount Zion")
        TenantFactory(name="Zion Hill")
        TenantFactory(name="Bethel")
        InactiveTenantFactory(name="Abandoned")

        result = transfer_coordinator.get_available_for_transfer(current.id)

        assert [t.name for t in result] == ["Bethel", "Zion Hill"]

    def test_includes_account_counts(self, db_session, transfer_coordinator):
        current, other = TenantFactory(), TenantFactory()
        AccountFactory(tenant_id=other.id)

        result = transfer_coordinator.get_available_for_transfer(current.id)

        assert [(t.id, t.user_count) for t in result] == [(other.id, 1)]

    def test_unknown_tenant_excludes_nothing(self, db_session, transfer_coordinator):
        TenantFactory()
        TenantFactory()

        assert len(transfer_coordinator.get_available_for_transfer("missing")) == 2
