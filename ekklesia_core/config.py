"""
Application configuration for the Ekklesia core.

All settings are pydantic models whose defaults are read from the
environment when the model is built, so ``AppConfig()`` reflects the
process environment at that moment. A single instance is cached by
get_config(); tests swap it with set_config() and reset_config().
"""

import os
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, FiscalYear, LogLevel


def _from_env(variable: EnvironmentVariable, default: str) -> Callable[[], str]:
    return lambda: os.getenv(variable.value, default)


def _flag_from_env(variable: EnvironmentVariable) -> Callable[[], bool]:
    return lambda: os.getenv(variable.value, "false").lower() == "true"


class QueueConfig(BaseModel):
    """Azure Storage queue used for structured logs."""

    connection_string: str = Field(
        default_factory=_from_env(EnvironmentVariable.AZURE_STORAGE_CONNECTION, "")
    )
    logs_queue_name: str = "logs-queue"


class LoggingConfig(BaseModel):
    level: str = Field(
        default_factory=_from_env(EnvironmentVariable.LOG_LEVEL, LogLevel.INFO.value)
    )
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        allowed = [item.value for item in LogLevel]
        if level not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of {allowed}")
        return level


class FeatureFlags(BaseModel):
    enable_logs_queue: bool = Field(
        default=False, description="Ship structured log records to the Azure logs queue"
    )
    enable_operation_context: bool = Field(
        default=True, description="Log ENTER/EXIT/ERROR around @operation methods"
    )


class SettingsDefaults(BaseModel):
    """Values written into a tenant's settings row when it is first created."""

    timezone: str = Field(
        default_factory=_from_env(EnvironmentVariable.DEFAULT_TIMEZONE, "America/Sao_Paulo")
    )
    currency: str = Field(default_factory=_from_env(EnvironmentVariable.DEFAULT_CURRENCY, "BRL"))
    fiscal_year: str = FiscalYear.CALENDAR.value
    enable_ocr: bool = False
    enabled_modules: List[str] = Field(default_factory=list)


class SettingsPolicy(BaseModel):
    """Allow-lists the settings validator checks against."""

    supported_currencies: List[str] = Field(default_factory=lambda: ["BRL", "USD", "EUR", "GBP"])
    fiscal_years: List[str] = Field(default_factory=lambda: [fy.value for fy in FiscalYear])


class TenancyConfig(BaseModel):
    """
    Tenant lifecycle policy.

    ``max_slug_attempts`` bounds the numeric suffixes tried for a taken slug.
    ``regenerate_slug_on_rename`` gives a renamed tenant a fresh slug when
    the update does not set one explicitly.
    """

    defaults: SettingsDefaults = Field(default_factory=SettingsDefaults)
    policy: SettingsPolicy = Field(default_factory=SettingsPolicy)
    max_slug_attempts: int = Field(default=1000, ge=1)
    regenerate_slug_on_rename: bool = True
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)


class AppConfig(BaseModel):
    environment: str = Field(default_factory=_from_env(EnvironmentVariable.APP_ENV, "development"))
    debug: bool = Field(default_factory=_flag_from_env(EnvironmentVariable.DEBUG))

    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    tenancy: TenancyConfig = Field(default_factory=TenancyConfig)

    # deployment-specific values with no dedicated field
    custom: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        return self.custom.get(key, default)

    def set_custom(self, key: str, value: Any) -> None:
        self.custom[key] = value


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """The process-wide config, built from the environment on first use."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    global _config
    _config = None
