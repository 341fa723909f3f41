"""Log formatters for the mission engine."""

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any, ClassVar

from mission_engine.exceptions.base import MissionEngineError
from mission_engine.logging.context import get_extra_context, get_operation_id

_STANDARD_LOG_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)

_MAX_LOGGER_NAME_LENGTH = 30


def _collect_record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` fields attached to a record."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_LOG_ATTRS and not key.startswith("_")
    }


def _describe_exception(record: logging.LogRecord) -> dict[str, Any]:
    """Build the structured exception block for a record with exc_info."""
    exception_type, exception, exception_traceback = record.exc_info or (None, None, None)
    described: dict[str, Any] = {
        "type": exception_type.__name__ if exception_type else "Unknown",
        "message": str(exception) if exception else "",
        "traceback": traceback.format_exception(exception_type, exception, exception_traceback),
    }
    if isinstance(exception, MissionEngineError):
        details = exception.to_log_dict()
        del details["message"], details["exception_type"]
        described.update(details)
    return described


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def __init__(
        self,
        *,
        service_name: str = "mission-engine",
        include_timestamp: bool = True,
        include_location: bool = True,
    ) -> None:
        """Initialize the JSON formatter.

        Args:
            service_name: Service identifier for log aggregation.
            include_timestamp: Whether to include timestamp field.
            include_location: Whether to include module/function/line fields.
        """
        super().__init__()
        self._service_name = service_name
        self._include_timestamp = include_timestamp
        self._include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        log_entry: dict[str, Any] = {}

        if self._include_timestamp:
            log_entry["timestamp"] = datetime.now(UTC).isoformat(timespec="milliseconds")

        log_entry["level"] = record.levelname
        log_entry["logger"] = record.name
        log_entry["message"] = record.getMessage()
        log_entry["service"] = self._service_name

        current_operation_id = get_operation_id()
        if current_operation_id:
            log_entry["operation_id"] = current_operation_id

        if self._include_location:
            log_entry["module"] = record.module
            log_entry["function"] = record.funcName
            log_entry["line"] = record.lineno

        log_entry.update(get_extra_context())
        log_entry.update(_collect_record_fields(record))

        if record.exc_info:
            log_entry["exception"] = _describe_exception(record)

        return json.dumps(log_entry, default=str)


class HumanFormatter(logging.Formatter):
    """Format log records for an operator console."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self, *, use_colors: bool = True) -> None:
        """Initialize the human formatter.

        Args:
            use_colors: Whether to use ANSI colors in output.
        """
        super().__init__()
        self._use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record for human readability."""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        level = f"{record.levelname:<8}"
        if self._use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        logger_name = record.name
        if len(logger_name) > _MAX_LOGGER_NAME_LENGTH:
            logger_name = "..." + logger_name[-(_MAX_LOGGER_NAME_LENGTH - 3) :]

        fields: dict[str, Any] = {}
        current_operation_id = get_operation_id()
        if current_operation_id:
            # First uuid block only
            fields["op"] = current_operation_id.split("-")[0]
        fields.update(get_extra_context())
        fields.update(_collect_record_fields(record))

        line = f"{timestamp} {level} {logger_name:<30} | {record.getMessage()}"
        if fields:
            line += " | " + " ".join(f"{key}={value}" for key, value in fields.items())

        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))

        return line
