"""
Database connection setup for the tenant core.

``DatabaseConfig`` describes where the data lives (Postgres in production,
SQLite for development and tests), ``DatabaseManager`` owns the engine and
session factory built from it, and a module-level manager is shared by
services that create their own sessions.
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from ..exceptions import ConfigurationError, ErrorCode, ValidationError
from ..utils.logger import get_logger

Base: Any = declarative_base()

SUPPORTED_DB_TYPES = ("postgres", "sqlite")


class DatabaseConfig(BaseModel):
    """Connection and pool settings. host/username/password apply to Postgres only."""

    db_type: str = "postgres"
    database: str
    host: Optional[str] = None
    port: str = "5432"
    username: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False
    development_mode: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.db_type.lower() == "sqlite"

    def get_connection_string(self) -> str:
        """
        Build the SQLAlchemy URL.

        Raises:
            ValidationError: For an unknown db_type or incomplete Postgres settings
        """
        kind = self.db_type.lower()
        if kind not in SUPPORTED_DB_TYPES:
            raise ValidationError(
                f"Unsupported database type: {self.db_type}",
                {"db_type": f"must be one of {', '.join(SUPPORTED_DB_TYPES)}"},
                error_code=ErrorCode.INVALID_FORMAT,
            )

        if kind == "sqlite":
            return f"sqlite:///{self.database}"

        missing = [
            field
            for field in ("host", "database", "username", "password")
            if not getattr(self, field)
        ]
        if missing:
            raise ValidationError(
                "Missing required Postgres configuration parameters",
                {field: "required for postgres" for field in missing},
                error_code=ErrorCode.MISSING_REQUIRED,
                host=self.host,
                database=self.database,
            )

        url = URL.create(
            "postgresql",
            username=self.username,
            password=self.password,
            host=self.host,
            port=int(self.port),
            database=self.database,
        )
        return url.render_as_string(hide_password=False)

    def __repr__(self) -> str:
        return (
            f"DatabaseConfig(db_type='{self.db_type}', host='{self.host}', "
            f"port='{self.port}', database='{self.database}', "
            f"username='{self.username}', password='***')"
        )


def _on_sqlite_connect(dbapi_connection, connection_record):
    # Hand transaction control to SQLAlchemy so SAVEPOINT works; enforce ON DELETE CASCADE
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(connection):
    connection.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Engine, session factory and thread-scoped session for one DatabaseConfig."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._build_engine()
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    def _engine_options(self) -> Dict[str, Any]:
        if self.config.is_sqlite:
            return {"connect_args": {"check_same_thread": False}}
        return {
            "pool_size": self.config.pool_size,
            "max_overflow": self.config.max_overflow,
            "pool_timeout": self.config.pool_timeout,
            "pool_pre_ping": True,
        }

    def _build_engine(self) -> Engine:
        engine = create_engine(
            self.config.get_connection_string(), echo=self.config.echo, **self._engine_options()
        )
        if self.config.is_sqlite:
            event.listen(engine, "connect", _on_sqlite_connect)
            event.listen(engine, "begin", _on_sqlite_begin)
        return engine

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """
        Raises:
            ConfigurationError: Unless the config is in development mode
        """
        if not self.config.development_mode:
            raise ConfigurationError(
                "Cannot drop tables: not in development mode",
                operation="drop_tables",
            )
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        return self.scoped_session()

    def close_session(self, session: Optional[Session] = None) -> None:
        if session is not None:
            session.close()
        else:
            self.scoped_session.remove()

    def close(self) -> None:
        self.scoped_session.remove()
        self.engine.dispose()


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() == "true"


def get_development_config() -> DatabaseConfig:
    """SQLite config; ``DEV_DB_PATH`` selects a file, in-memory otherwise."""
    return DatabaseConfig(
        db_type="sqlite",
        database=os.environ.get("DEV_DB_PATH", ":memory:"),
        echo=_env_flag("DB_ECHO"),
        development_mode=True,
    )


def get_production_config() -> DatabaseConfig:
    """Postgres config read from the ``DB_*`` environment variables."""
    env = os.environ
    return DatabaseConfig(
        db_type="postgres",
        host=env.get("DB_HOST", "localhost"),
        port=env.get("DB_PORT", "5432"),
        database=env.get("DB_NAME", "ekklesia"),
        username=env.get("DB_USER", "postgres"),
        password=env.get("DB_PASSWORD", ""),
        pool_size=int(env.get("DB_POOL_SIZE", "5")),
        max_overflow=int(env.get("DB_MAX_OVERFLOW", "10")),
        pool_timeout=int(env.get("DB_POOL_TIMEOUT", "30")),
        echo=_env_flag("DB_ECHO"),
    )


def import_all_models():
    """Register every model on ``Base.metadata`` and resolve relationships."""
    from sqlalchemy.orm import configure_mappers

    from .db_account_models import Account  # noqa
    from .db_tenant_models import Tenant, TenantSettings  # noqa

    configure_mappers()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Raises:
        ConfigurationError: If initialize_db() has not been called
    """
    if _db_manager is None:
        raise ConfigurationError(
            "Database manager not initialized. Call initialize_db() first.",
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Build the shared DatabaseManager and create any missing tables.

    Args:
        config: Connection settings; defaults to get_production_config()
    """
    global _db_manager

    config = config or get_production_config()
    get_logger().info(
        "Initializing database", extra={"db_type": config.db_type, "database": config.database}
    )

    _db_manager = DatabaseManager(config)
    import_all_models()
    _db_manager.create_tables()
    return _db_manager


def close_db() -> None:
    """Dispose of the shared engine, if any."""
    global _db_manager
    if _db_manager is not None:
        _db_manager.close()
        _db_manager = None
