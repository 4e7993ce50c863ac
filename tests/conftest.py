"""
Test fixtures shared by every test module.

Provides the in-memory database, a per-test session and the factory wiring,
and resets thread-local context and global configuration between tests.
"""

import pytest
from sqlalchemy.orm import Session

from ekklesia_core.config import reset_config
from ekklesia_core.context.caller_context import CallerContext
from ekklesia_core.db import DatabaseConfig, DatabaseManager, import_all_models
from ekklesia_core.db.db_config import Base, initialize_db, set_db_manager
from ekklesia_core.exceptions import clear_correlation_id
from ekklesia_core.utils.logger import reset_logging
from tests.fixtures.factories import bind_factories


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(
        db_type="sqlite",
        database=":memory:",
        echo=False,
        development_mode=True,
    )


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()
    manager = initialize_db(db_config)

    yield manager

    set_db_manager(None)
    manager.close()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created fresh for every test and dropped afterwards, so tests
    never see each other's rows.
    """
    session = db_manager.get_session()
    Base.metadata.create_all(db_manager.engine)
    bind_factories(session)

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture(autouse=True)
def clean_context():
    """Drop the bound caller, correlation id and cached config after each test."""
    yield
    CallerContext.clear_current_caller()
    clear_correlation_id()
    reset_config()
    reset_logging()
