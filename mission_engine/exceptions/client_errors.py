"""Caller-local exceptions raised before any state is touched."""

from typing import Any, ClassVar

from mission_engine.exceptions.base import MissionEngineError


def _merge_context(context: dict[str, Any] | None, **fields: Any) -> dict[str, Any]:
    """Return ``context`` extended with every field that is not None."""
    merged = dict(context or {})
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


class ClientError(MissionEngineError):
    """Base class for errors caused by the caller's request."""

    error_code: ClassVar[str] = "CLIENT_ERROR"


class ValidationError(ClientError):
    """A mission item or parameter payload broke a bounds or structural rule.

    Mission state is guaranteed untouched when this is raised.

    Attributes:
        field: Offending field, dotted for nested fields (``position.alt``).
        value: Rejected value.
    """

    error_code: ClassVar[str] = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        bound: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the validation error.

        Args:
            message: Description naming the field and the violated rule.
            field: Offending field.
            value: Rejected value.
            bound: Violated range in interval notation, e.g. ``[0, 500] m``.
            context: Extra structured details.
        """
        super().__init__(
            message,
            context=_merge_context(context, field=field, value=value, bound=bound),
        )
        self.field = field
        self.value = value


class CapacityError(ValidationError):
    """A bounded collection is already at capacity."""

    error_code: ClassVar[str] = "CAPACITY_EXCEEDED"

    def __init__(
        self,
        message: str,
        *,
        capacity: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=_merge_context(context, capacity=capacity))
        self.capacity = capacity


class NotFoundError(ClientError):
    """No mission item (or stored mission) has the requested id."""

    error_code: ClassVar[str] = "NOT_FOUND"

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            context=_merge_context(context, resource_type=resource_type, resource_id=resource_id),
        )
