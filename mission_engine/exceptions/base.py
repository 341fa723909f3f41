"""Root of the mission engine exception tree.

Each subclass declares an ``error_code`` and is registered under it when
the class is created, so display layers can map a code back to its class.
"""

from typing import Any, ClassVar


class MissionEngineError(Exception):
    """Base exception for every error the mission engine raises.

    Attributes:
        message: Human-readable description, shown in the UI error banner.
        error_code: Stable machine-readable code of the concrete class.
        context: Structured details (field, bound, command, ...).
    """

    error_code: ClassVar[str] = "INTERNAL_ERROR"

    _registry: ClassVar[dict[str, type["MissionEngineError"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        MissionEngineError._registry[cls.error_code] = cls

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description.
            context: Structured details for logs and display layers.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return the code, message and context as plain data."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }

    def to_log_dict(self) -> dict[str, Any]:
        """Return ``to_dict()`` plus the class name and the chained cause, if any.

        Returns:
            Dictionary suitable for the ``extra=`` argument of a log call.
        """
        log_dict = self.to_dict()
        log_dict["exception_type"] = type(self).__name__
        if self.__cause__ is not None:
            log_dict["cause_type"] = type(self.__cause__).__name__
        return log_dict

    @classmethod
    def get_by_error_code(cls, error_code: str) -> type["MissionEngineError"] | None:
        """Return the registered class for ``error_code``, or None."""
        return cls._registry.get(error_code)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} (context: {self.context})"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"error_code={self.error_code!r}, context={self.context!r})"
        )
