"""Tests for settings and logging configuration."""

import logging
from collections.abc import Generator

import pytest
import structlog
from pydantic import ValidationError

import operable
from operable.config import SHARED_PROCESSORS, Settings, configure_logging, get_settings


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPERABLE_ENVIRONMENT", raising=False)
        monkeypatch.delenv("OPERABLE_LOG_LEVEL", raising=False)
        monkeypatch.delenv("OPERABLE_LOG_CALLBACK_DISPATCH", raising=False)

        settings = Settings(_env_file=None)

        assert settings.ENVIRONMENT == "development"
        assert settings.LOG_CALLBACK_DISPATCH is False
        assert settings.log_level == logging.DEBUG

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPERABLE_ENVIRONMENT", "production")
        monkeypatch.setenv("OPERABLE_LOG_CALLBACK_DISPATCH", "true")

        settings = get_settings()

        assert settings.ENVIRONMENT == "production"
        assert settings.LOG_CALLBACK_DISPATCH is True
        assert settings.log_level == logging.INFO

    def test_log_level_is_normalized(self) -> None:
        settings = Settings(_env_file=None, LOG_LEVEL=" warning ")

        assert settings.LOG_LEVEL == "WARNING"
        assert settings.log_level == logging.WARNING

    def test_unknown_log_level_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="chatty")

    def test_settings_are_cached(self) -> None:
        assert get_settings() is get_settings()


class TestConfigureLogging:
    """Test suite for configure_logging."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
        monkeypatch.delenv("OPERABLE_LOG_JSON", raising=False)
        yield
        structlog.reset_defaults()

    def test_is_part_of_public_api(self) -> None:
        assert operable.configure_logging is configure_logging
        assert operable.get_settings is get_settings

    def test_json_renderer_in_production(self) -> None:
        configure_logging("production")

        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
        assert config["processors"][:-1] == list(SHARED_PROCESSORS)

    def test_console_renderer_outside_production(self) -> None:
        configure_logging("test")

        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_log_json_setting_overrides_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPERABLE_LOG_JSON", "true")

        configure_logging("development")

        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)

    def test_level_follows_environment_argument(self) -> None:
        settings = Settings(_env_file=None, ENVIRONMENT="development")

        assert settings.level_for("production") == logging.INFO
        assert settings.level_for("development") == logging.DEBUG

    def test_explicit_level_wins(self) -> None:
        settings = Settings(_env_file=None, LOG_LEVEL="error")

        assert settings.level_for("development") == logging.ERROR
