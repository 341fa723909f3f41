"""Exceptions raised by the backend side of a mutation."""

from typing import Any, ClassVar

from mission_engine.exceptions.base import MissionEngineError


class ServerError(MissionEngineError):
    """Base class for errors outside the caller's control."""

    error_code: ClassVar[str] = "SERVER_ERROR"


class BackendError(ServerError):
    """Backend gateway call failed.

    Raised after an optimistic mutation has been applied; the mutation is
    rolled back before this reaches the caller.
    """

    error_code: ClassVar[str] = "BACKEND_ERROR"

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize backend error.

        Args:
            message: Description of the failure.
            command: Name of the gateway command that failed.
            context: Additional context information.
        """
        context_dict = context or {}
        if command is not None:
            context_dict["command"] = command
        super().__init__(message, context=context_dict)
        self.command = command


class ConfigurationError(ServerError):
    """Configuration is invalid or missing."""

    error_code: ClassVar[str] = "CONFIGURATION_ERROR"
