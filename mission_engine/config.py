"""Engine configuration using Pydantic BaseSettings.

Settings are loaded from ``MISSION_ENGINE_``-prefixed environment
variables. Logging has its own settings in ``mission_engine.logging.config``.

Usage:
    from mission_engine.config import get_settings

    settings = get_settings()
    print(settings.mission_capacity)
"""

from functools import lru_cache

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mission_engine.constants import MAX_MISSION_ITEMS
from mission_engine.exceptions.server_errors import ConfigurationError


class Settings(BaseSettings):
    """Mission engine settings loaded from environment variables.

    Attributes:
        mission_capacity: Maximum number of items in the working mission.
        serialize_mutations: Run mutations one at a time (single-writer mode).
        load_on_start: Fetch the backend's mission when operations initialize.
    """

    model_config = SettingsConfigDict(
        env_prefix="MISSION_ENGINE_",
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    mission_capacity: int = Field(default=MAX_MISSION_ITEMS, ge=1, le=MAX_MISSION_ITEMS)
    serialize_mutations: bool = Field(default=False)
    load_on_start: bool = Field(default=False)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def validate_startup_config() -> Settings:
    """Validate configuration on application startup.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    try:
        return get_settings()
    except PydanticValidationError as error:
        raise ConfigurationError(f"Invalid mission engine configuration: {error}") from error
