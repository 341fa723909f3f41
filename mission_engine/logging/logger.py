"""Root logger setup and logger factory."""

import logging
import sys
from dataclasses import dataclass, field
from typing import TextIO

from mission_engine.logging.config import LogFormat, LoggingConfig, get_logging_config
from mission_engine.logging.formatters import HumanFormatter, JSONFormatter


@dataclass
class LoggingState:
    """Internal state for logging configuration."""

    configured: bool = field(default=False)
    handler: logging.Handler | None = field(default=None)
    tuned_loggers: list[str] = field(default_factory=list)


_state = LoggingState()


def _build_formatter(config: LoggingConfig, stream: TextIO) -> logging.Formatter:
    if config.format == LogFormat.JSON:
        return JSONFormatter(
            service_name=config.component,
            include_timestamp=config.include_timestamp,
            include_location=config.include_location,
        )
    return HumanFormatter(use_colors=stream.isatty())


def _release_tuned_loggers() -> None:
    for name in _state.tuned_loggers:
        logging.getLogger(name).setLevel(logging.NOTSET)
    _state.tuned_loggers = []


def setup_logging(
    config: LoggingConfig | None = None,
    stream: TextIO | None = None,
    *,
    force: bool = False,
) -> None:
    """Attach the mission engine handler to the root logger.

    Only the handler installed by a previous call is replaced, so handlers
    added by a host application survive a reconfiguration. Loggers tuned by
    a previous call go back to inheriting the root level first.

    Args:
        config: Optional LoggingConfig instance. Loads from environment if not provided.
        stream: Output stream for logs. Defaults to sys.stderr.
        force: If True, reconfigure even if already configured.
    """
    if _state.configured and not force:
        return

    if config is None:
        config = get_logging_config()

    output = stream or sys.stderr
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level.value)

    if _state.handler is not None:
        root_logger.removeHandler(_state.handler)
    _release_tuned_loggers()

    handler = logging.StreamHandler(output)
    handler.setFormatter(_build_formatter(config, output))
    root_logger.addHandler(handler)

    for name, level in config.logger_levels.items():
        logging.getLogger(name).setLevel(level.value)
    _state.tuned_loggers = list(config.logger_levels)

    _state.handler = handler
    _state.configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A logger instance.
    """
    return logging.getLogger(name)


def reset_logging() -> None:
    """Reset logging configuration. Primarily for testing."""
    if _state.handler is not None:
        logging.getLogger().removeHandler(_state.handler)
    _release_tuned_loggers()

    _state.handler = None
    _state.configured = False
    get_logging_config.cache_clear()
