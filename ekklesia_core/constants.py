"""
Constants and enums for the Ekklesia core.

This module centralizes the magic strings used throughout the tenant
governance code so that stores, services and tests agree on them.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"
    DEFAULT_TIMEZONE = "DEFAULT_TIMEZONE"
    DEFAULT_CURRENCY = "DEFAULT_CURRENCY"


class LogContextKey(str, Enum):
    """Standard keys for logging context."""

    OPERATION_ID = "operation_id"
    CORRELATION_ID = "correlation_id"
    TENANT_ID = "tenant_id"
    CALLER_ROLE = "caller_role"
    DURATION_MS = "duration_ms"
    STATUS = "status"
    ERROR_CODE = "error_code"
    SOURCE_MODULE = "source_module"


class OperationStatus(str, Enum):
    """Status values for operations."""

    SUCCESS = "success"
    ERROR = "error"


class UserRole(str, Enum):
    """Account roles. SUPER_ADMIN is the privileged role."""

    SUPER_ADMIN = "SUPER_ADMIN"
    CHURCH_ADMIN = "CHURCH_ADMIN"
    PASTOR = "PASTOR"
    TREASURER = "TREASURER"
    SECRETARY = "SECRETARY"
    MEMBER = "MEMBER"


PRIVILEGED_ROLE = UserRole.SUPER_ADMIN


class FiscalYear(str, Enum):
    """Supported fiscal year conventions."""

    CALENDAR = "calendar"
    APRIL_MARCH = "april-march"


class TransferScope(str, Enum):
    """Which accounts a transfer relocates."""

    PRIVILEGED = "privileged"
    ALL = "all"


class BusinessRuleReason(str, Enum):
    """Machine-readable reasons attached to BusinessRuleError."""

    PRIVILEGED_ACCOUNTS_EXIST = "privileged_accounts_exist"
    LAST_ACTIVE_TENANT = "last_active_tenant"
    SOURCE_TENANT_NOT_FOUND = "source_tenant_not_found"
    TARGET_TENANT_NOT_FOUND = "target_tenant_not_found"
    TARGET_TENANT_INACTIVE = "target_tenant_inactive"
    SOURCE_HAS_PRIVILEGED_ACCOUNTS = "source_has_privileged_accounts"
    SAME_TENANT = "same_tenant"
