"""
Unit tests for configuration management.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from ekklesia_core.config import (
    AppConfig,
    LoggingConfig,
    SettingsDefaults,
    SettingsPolicy,
    TenancyConfig,
    get_config,
    reset_config,
    set_config,
)


class TestLoggingConfig:
    def test_level_is_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level_rejected(self):
        with pytest.raises(PydanticValidationError):
            LoggingConfig(level="verbose")


class TestSettingsDefaults:
    """Test default values for newly created settings rows."""

    def test_builtin_defaults(self, monkeypatch):
        monkeypatch.delenv("DEFAULT_TIMEZONE", raising=False)
        monkeypatch.delenv("DEFAULT_CURRENCY", raising=False)

        defaults = SettingsDefaults()

        assert defaults.timezone == "America/Sao_Paulo"
        assert defaults.currency == "BRL"
        assert defaults.fiscal_year == "calendar"
        assert defaults.enable_ocr is False
        assert defaults.enabled_modules == []

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_TIMEZONE", "Europe/Lisbon")
        monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")

        defaults = SettingsDefaults()

        assert defaults.timezone == "Europe/Lisbon"
        assert defaults.currency == "EUR"


class TestTenancyConfig:
    def test_policy_defaults(self):
        config = TenancyConfig()

        assert config.max_slug_attempts == 1000
        assert config.regenerate_slug_on_rename is True
        assert config.default_page_size == 10
        assert config.max_page_size == 100
        assert SettingsPolicy().supported_currencies == ["BRL", "USD", "EUR", "GBP"]
        assert SettingsPolicy().fiscal_years == ["calendar", "april-march"]

    def test_slug_attempts_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            TenancyConfig(max_slug_attempts=0)


class TestGlobalConfig:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_and_reset_config(self):
        custom = AppConfig(environment="test")
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom

    def test_environment_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("DEBUG", "true")

        config = AppConfig.from_env()

        assert config.environment == "production"
        assert config.debug is True

    def test_custom_values(self):
        config = AppConfig()
        config.set_custom("church_admin_limit", 5)

        assert config.get_custom("church_admin_limit") == 5
        assert config.get_custom("missing", "fallback") == "fallback"
