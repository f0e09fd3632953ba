"""Library configuration."""

import logging
import sys
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Settings read from the environment (prefixed with ``OPERABLE_``) or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="OPERABLE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    # Logging
    LOG_LEVEL: str | None = None
    LOG_CALLBACK_DISPATCH: bool = False
    LOG_JSON: bool | None = None

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str | None:
        """Upper-case the log level and reject unknown names."""
        if value is None:
            return None
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            msg = f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}"
            raise ValueError(msg)
        return level

    @property
    def log_level(self) -> int:
        """Effective stdlib log level."""
        return self.level_for(self.ENVIRONMENT)

    def level_for(self, environment: str) -> int:
        if self.LOG_LEVEL is not None:
            return logging.getLevelName(self.LOG_LEVEL)
        return logging.DEBUG if environment == "development" else logging.INFO


# Processors shared by both renderers
SHARED_PROCESSORS: tuple[Callable[..., Any], ...] = (
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
)


def select_renderer(settings: Settings, environment: str) -> Callable[..., Any]:
    """JSON lines when ``LOG_JSON`` is set or in production, colored console otherwise."""
    use_json = settings.LOG_JSON if settings.LOG_JSON is not None else environment == "production"
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(environment: str | None = None) -> None:
    """
    Route operation events through structlog and stdlib logging.

    The library only emits events (``operation_failed``,
    ``operation_fault_rescued``, ``operation_fault_unhandled``,
    ``callback_dispatched``, ``model_instantiated``). Applications that do not
    configure structlog themselves call this once at startup:

        from operable import configure_logging

        configure_logging()  # reads OPERABLE_ENVIRONMENT, OPERABLE_LOG_LEVEL, OPERABLE_LOG_JSON

    Args:
        environment: Overrides ``OPERABLE_ENVIRONMENT`` when picking the renderer
            and the default level
    """
    settings = get_settings()
    environment = environment or settings.ENVIRONMENT
    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=settings.level_for(environment)
    )

    structlog.configure(
        processors=[*SHARED_PROCESSORS, select_renderer(settings, environment)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
