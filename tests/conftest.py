"""Shared test fixtures."""

import pytest

from mission_engine.config import get_settings
from mission_engine.logging.config import get_logging_config


@pytest.fixture(autouse=True)
def _clear_environment(monkeypatch):
    """Clear environment variables that affect settings."""
    env_vars_to_clear = [
        "MISSION_ENGINE_LOG_LEVEL",
        "MISSION_ENGINE_LOG_FORMAT",
        "MISSION_ENGINE_LOG_COMPONENT",
        "MISSION_ENGINE_LOG_LOGGER_LEVELS",
        "MISSION_ENGINE_MISSION_CAPACITY",
        "MISSION_ENGINE_SERIALIZE_MUTATIONS",
        "MISSION_ENGINE_LOAD_ON_START",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    get_logging_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_logging_config.cache_clear()
