"""
Tests for the SQLAlchemy stores against the in-memory database.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError

from ekklesia_core.constants import UserRole
from ekklesia_core.db import Account, TenantSettings
from ekklesia_core.exceptions import AlreadyExistsError
from ekklesia_core.stores.sqlalchemy_store import (
    TENANT_UNIQUE_MARKERS,
    _escape_like,
    raise_for_integrity_error,
)
from tests.fixtures.factories import (
    AccountFactory,
    InactiveTenantFactory,
    SuperAdminFactory,
    TenantFactory,
    TenantSettingsFactory,
)


def _integrity_error(message):
    return IntegrityError("INSERT INTO tenants ...", {}, Exception(message))


class TestIntegrityTranslation:
    @pytest.mark.parametrize(
        "message,field",
        [
            ("UNIQUE constraint failed: tenants.email", "email"),
            ("UNIQUE constraint failed: tenants.slug", "slug"),
            ('duplicate key value violates unique constraint "uq_tenants_slug"', "slug"),
            ('duplicate key value violates unique constraint "uq_tenants_email"', "email"),
        ],
    )
    def test_unique_violation_names_field(self, message, field):
        with pytest.raises(AlreadyExistsError) as exc_info:
            raise_for_integrity_error(
                _integrity_error(message), {"email": "a@b.org", "slug": "s"}, TENANT_UNIQUE_MARKERS
            )

        assert exc_info.value.field == field

    def test_other_integrity_errors_propagate(self):
        error = _integrity_error("NOT NULL constraint failed: tenants.name")

        with pytest.raises(IntegrityError):
            raise_for_integrity_error(error, {}, TENANT_UNIQUE_MARKERS)

    def test_escape_like(self):
        assert _escape_like("100%_off\\") == "100\\%\\_off\\\\"


class TestTenantStore:
    def test_insert_and_find(self, db_session, tenant_store):
        tenant = tenant_store.insert(
            {"name": "Grace Chapel", "slug": "grace-chapel", "email": "office@grace.org"}
        )

        assert tenant.id
        assert tenant.is_active is True
        assert tenant_store.find_by_id(tenant.id) is tenant
        assert tenant_store.find_by_slug("grace-chapel") is tenant
        assert tenant_store.find_by_slug("missing") is None

    def test_duplicate_email_on_insert(self, db_session, tenant_store):
        TenantFactory(email="office@grace.org")

        with pytest.raises(AlreadyExistsError) as exc_info:
            tenant_store.insert({"name": "Other", "slug": "other", "email": "office@grace.org"})

        assert exc_info.value.field == "email"
        db_session.rollback()

    def test_update_by_id(self, db_session, tenant_store):
        tenant = TenantFactory(city="Recife")

        updated = tenant_store.update_by_id(tenant.id, {"city": "Olinda"})

        assert updated.city == "Olinda"
        assert tenant_store.update_by_id("missing", {"city": "x"}) is None

    def test_delete_cascades(self, db_session, tenant_store):
        tenant = TenantFactory()
        tenant_id = tenant.id
        TenantSettingsFactory(tenant_id=tenant_id)
        AccountFactory(tenant_id=tenant_id)

        assert tenant_store.delete_by_id(tenant_id) == 1
        assert tenant_store.find_by_id(tenant_id) is None
        assert db_session.query(TenantSettings).count() == 0
        assert db_session.query(Account).count() == 0
        assert tenant_store.delete_by_id(tenant_id) == 0

    def test_delete_leaves_other_tenants_loaded(self, db_session, tenant_store):
        doomed, kept = TenantFactory(), TenantFactory(city="Recife")
        settings = TenantSettingsFactory(tenant_id=doomed.id)
        account = AccountFactory(tenant_id=kept.id)

        tenant_store.delete_by_id(doomed.id)

        assert doomed not in db_session
        assert settings not in db_session
        assert kept in db_session
        assert "city" in kept.__dict__
        assert "tenant_id" in account.__dict__

    def test_count_where(self, db_session, tenant_store):
        TenantFactory()
        TenantFactory()
        InactiveTenantFactory()

        assert tenant_store.count_where() == 3
        assert tenant_store.count_where(is_active=True) == 2

    def test_is_taken(self, db_session, tenant_store):
        tenant = TenantFactory(slug="grace", email="office@grace.org")

        assert tenant_store.is_taken("slug", "grace")
        assert tenant_store.is_taken("email", "office@grace.org")
        assert not tenant_store.is_taken("slug", "grace", exclude_id=tenant.id)
        assert not tenant_store.is_taken("slug", "hope")

    def test_is_taken_rejects_unknown_field(self, tenant_store):
        with pytest.raises(ValueError):
            tenant_store.is_taken("name", "Grace")

    def test_find_page_newest_first(self, db_session, tenant_store, dated_tenants):
        rows, total = tenant_store.find_page(offset=0, limit=2)

        assert total == 3
        assert [t.slug for t in rows] == ["faith-assembly", "hope-church"]

        rows, _ = tenant_store.find_page(offset=2, limit=2)
        assert [t.slug for t in rows] == ["grace-chapel"]

    def test_find_page_hides_inactive(self, db_session, tenant_store, dated_tenants):
        dated_tenants[0].is_active = False
        db_session.flush()

        _, total = tenant_store.find_page(offset=0, limit=10)
        _, total_with_inactive = tenant_store.find_page(offset=0, limit=10, include_inactive=True)

        assert total == 2
        assert total_with_inactive == 3

    @pytest.mark.parametrize(
        "search,expected",
        [
            ("HOPE", ["hope-church"]),
            ("faith-assembly@", ["faith-assembly"]),
            ("chapel", ["grace-chapel"]),
            ("%", []),
        ],
    )
    def test_find_page_search(self, db_session, tenant_store, dated_tenants, search, expected):
        rows, total = tenant_store.find_page(offset=0, limit=10, search=search)

        assert [t.slug for t in rows] == expected
        assert total == len(expected)

    def test_find_active_excluding(self, db_session, tenant_store, dated_tenants):
        InactiveTenantFactory(name="Abandoned Church")

        rows = tenant_store.find_active_excluding(dated_tenants[1].id)

        assert [t.name for t in rows] == ["Faith Assembly", "Grace Chapel"]


class TestSettingsStore:
    def test_insert_and_find(self, db_session, settings_store):
        tenant = TenantFactory()

        settings = settings_store.insert(
            tenant.id,
            {
                "timezone": "UTC",
                "currency": "USD",
                "fiscal_year": "calendar",
                "enabled_modules": ["finance"],
                "enable_ocr": False,
            },
        )

        assert settings_store.find_by_tenant(tenant.id) is settings
        assert tenant.settings is settings

    def test_second_insert_is_a_duplicate(self, db_session, settings_store):
        tenant = TenantFactory()
        TenantSettingsFactory(tenant_id=tenant.id)

        with pytest.raises(AlreadyExistsError) as exc_info:
            settings_store.insert(
                tenant.id,
                {"timezone": "UTC", "currency": "USD", "fiscal_year": "calendar"},
            )

        assert exc_info.value.field == "tenant_id"
        # The savepoint rolled back; the outer transaction is still usable
        assert settings_store.find_by_tenant(tenant.id) is not None

    def test_update_by_tenant(self, db_session, settings_store):
        tenant = TenantFactory()
        TenantSettingsFactory(tenant_id=tenant.id)

        settings = settings_store.update_by_tenant(tenant.id, {"currency": "EUR"})

        assert settings.currency == "EUR"
        assert settings_store.update_by_tenant("missing", {"currency": "EUR"}) is None


class TestAccountStore:
    def test_count_where(self, db_session, account_store):
        tenant = TenantFactory()
        SuperAdminFactory(tenant_id=tenant.id)
        SuperAdminFactory(tenant_id=tenant.id, is_active=False)
        AccountFactory(tenant_id=tenant.id)

        assert account_store.count_where(tenant_id=tenant.id) == 3
        assert account_store.count_where(tenant_id=tenant.id, role=UserRole.SUPER_ADMIN) == 2
        assert (
            account_store.count_where(
                tenant_id=tenant.id, role=UserRole.SUPER_ADMIN, is_active=True
            )
            == 1
        )

    def test_count_by_tenant_includes_zero(self, db_session, account_store):
        busy, empty = TenantFactory(), TenantFactory()
        AccountFactory(tenant_id=busy.id)
        AccountFactory(tenant_id=busy.id)

        assert account_store.count_by_tenant([busy.id, empty.id]) == {busy.id: 2, empty.id: 0}
        assert account_store.count_by_tenant([]) == {}

    def test_reassign_tenant_by_role(self, db_session, account_store):
        source, target = TenantFactory(), TenantFactory()
        admin = SuperAdminFactory(tenant_id=source.id)
        member = AccountFactory(tenant_id=source.id)

        moved = account_store.reassign_tenant(source.id, target.id, roles=[UserRole.SUPER_ADMIN])

        assert moved == 1
        assert admin.tenant_id == target.id
        assert member.tenant_id == source.id

    def test_reassign_all(self, db_session, account_store):
        source, target = TenantFactory(), TenantFactory()
        AccountFactory(tenant_id=source.id)
        AccountFactory(tenant_id=source.id, role=UserRole.PASTOR)

        assert account_store.reassign_tenant(source.id, target.id) == 2
        assert account_store.count_where(tenant_id=target.id) == 2

    def test_store_errors_are_not_swallowed(self):
        from ekklesia_core.stores import SqlAlchemyAccountStore

        session = Mock()
        session.query.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            SqlAlchemyAccountStore(session).count_where(tenant_id="t-1")
