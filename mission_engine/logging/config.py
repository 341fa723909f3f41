"""Logging settings for the mission engine.

Read from ``MISSION_ENGINE_LOG_``-prefixed environment variables, so a
console session can be set up with::

    MISSION_ENGINE_LOG_LEVEL=DEBUG MISSION_ENGINE_LOG_FORMAT=human
"""

from enum import StrEnum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(StrEnum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(StrEnum):
    """Valid log formats."""

    JSON = "json"
    HUMAN = "human"


def _default_logger_levels() -> dict[str, LogLevel]:
    return {"asyncio": LogLevel.WARNING}


class LoggingConfig(BaseSettings):
    """How mission engine records are filtered and rendered.

    Attributes:
        level: Root log level.
        format: ``json`` for the ground station service, ``human`` for a console.
        component: Value of the ``service`` field in JSON records.
        include_timestamp: Whether JSON records carry a timestamp.
        include_location: Whether JSON records carry file/function/line info.
        logger_levels: Per-logger levels applied on top of ``level``, given as
            JSON in ``MISSION_ENGINE_LOG_LOGGER_LEVELS``. For example
            ``{"mission_engine.backend": "DEBUG"}`` traces gateway commands
            without turning on DEBUG everywhere.
    """

    model_config = SettingsConfigDict(
        env_prefix="MISSION_ENGINE_LOG_",
        case_sensitive=False,
        extra="ignore",
    )

    level: LogLevel = Field(default=LogLevel.INFO)
    format: LogFormat = Field(default=LogFormat.JSON)
    component: str = Field(default="mission-engine", min_length=1)
    include_timestamp: bool = Field(default=True)
    include_location: bool = Field(default=True)
    logger_levels: dict[str, LogLevel] = Field(default_factory=_default_logger_levels)


@lru_cache
def get_logging_config() -> LoggingConfig:
    """Get cached logging configuration instance."""
    return LoggingConfig()
