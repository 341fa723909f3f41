"""Structured logging for the mission engine.

Usage:
    from mission_engine.logging import get_logger, operation_context, setup_logging

    setup_logging()
    logger = get_logger(__name__)
    with operation_context("add_mission_item", item_id="waypoint-1"):
        logger.info("Committed mission item")
"""

from mission_engine.logging.config import LogFormat, LoggingConfig, LogLevel
from mission_engine.logging.context import (
    clear_context,
    generate_operation_id,
    get_extra_context,
    get_operation_id,
    operation_context,
    set_extra_context,
    set_operation_id,
)
from mission_engine.logging.formatters import HumanFormatter, JSONFormatter
from mission_engine.logging.logger import get_logger, reset_logging, setup_logging

__all__ = [
    "HumanFormatter",
    "JSONFormatter",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "clear_context",
    "generate_operation_id",
    "get_extra_context",
    "get_logger",
    "get_operation_id",
    "operation_context",
    "reset_logging",
    "set_extra_context",
    "set_operation_id",
    "setup_logging",
]
