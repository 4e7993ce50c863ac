"""
Unit test conftest.py - Component-specific fixtures.

Services and stores share the per-test session, so nothing they write is
committed and the test rolls it back.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from ekklesia_core.constants import UserRole
from ekklesia_core.schemas.caller_schema import Caller
from ekklesia_core.services.settings_manager import SettingsManager
from ekklesia_core.services.tenant_registry import TenantRegistry
from ekklesia_core.services.transfer_coordinator import TransferCoordinator
from ekklesia_core.stores import (
    SqlAlchemyAccountStore,
    SqlAlchemySettingsStore,
    SqlAlchemyTenantStore,
)
from tests.fixtures.factories import TenantFactory

# ==================== STORE FIXTURES ====================


@pytest.fixture(scope="function")
def tenant_store(db_session):
    return SqlAlchemyTenantStore(db_session)


@pytest.fixture(scope="function")
def settings_store(db_session):
    return SqlAlchemySettingsStore(db_session)


@pytest.fixture(scope="function")
def account_store(db_session):
    return SqlAlchemyAccountStore(db_session)


# ==================== SERVICE FIXTURES ====================


@pytest.fixture(scope="function")
def tenant_registry(db_session):
    """Tenant registry with test session."""
    return TenantRegistry(session=db_session)


@pytest.fixture(scope="function")
def transfer_coordinator(db_session):
    """Transfer coordinator with test session."""
    return TransferCoordinator(session=db_session)


@pytest.fixture(scope="function")
def settings_manager(settings_store, tenant_store):
    return SettingsManager(settings_store, tenant_store)


# ==================== MOCK FIXTURES (ONLY WHEN NECESSARY) ====================


@pytest.fixture(scope="function")
def mock_queue_client():
    """
    Mock Azure Queue Client for testing queue logging without Azure
    infrastructure.
    """
    mock_client = Mock()
    mock_client.send_message.return_value = Mock(id="test_message_id")
    return mock_client


# ==================== TEST DATA ====================


@pytest.fixture(scope="function")
def church_payload():
    """A valid creation payload with every optional field filled in."""
    return {
        "name": "Igreja Batista Central",
        "email": "contato@ibcentral.org.br",
        "phone": "(11) 98765-4321",
        "address": "Rua das Flores, 100",
        "city": "São Paulo",
        "state": "SP",
        "postal_code": "01310-100",
        "website": "https://ibcentral.org.br",
        "logo_url": "https://cdn.ibcentral.org.br/logo.png",
        "tax_id": "12.345.678/0001-90",
    }


@pytest.fixture(scope="function")
def dated_tenants(db_session):
    """Three active tenants created one day apart, oldest first."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        TenantFactory(
            name=name,
            slug=slug,
            email=f"{slug}@example.org",
            created_at=base + timedelta(days=offset),
        )
        for offset, (name, slug) in enumerate(
            [
                ("Grace Chapel", "grace-chapel"),
                ("Hope Church", "hope-church"),
                ("Faith Assembly", "faith-assembly"),
            ]
        )
    ]


@pytest.fixture
def super_admin():
    return Caller(role=UserRole.SUPER_ADMIN)


@pytest.fixture
def church_admin():
    return Caller(role=UserRole.CHURCH_ADMIN, tenant_id="tenant-a")
