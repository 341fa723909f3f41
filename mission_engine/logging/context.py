"""Context variables for operation-scoped logging data.

Uses Python's contextvars so concurrent mutations running as separate
asyncio tasks each keep their own operation id.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

operation_id: ContextVar[str] = ContextVar("operation_id", default="")

_extra_context: ContextVar[dict[str, Any] | None] = ContextVar("extra_context", default=None)


def get_operation_id() -> str:
    """Get the current operation ID.

    Returns:
        The operation ID for the current context.
    """
    return operation_id.get()


def set_operation_id(value: str) -> None:
    """Set the operation ID for the current context.

    Args:
        value: The operation ID.
    """
    operation_id.set(value)


def generate_operation_id() -> str:
    """Generate and set a new operation ID.

    Returns:
        The generated operation ID.
    """
    new_id = str(uuid4())
    operation_id.set(new_id)
    return new_id


def get_extra_context() -> dict[str, Any]:
    """Get the current extra context.

    Returns:
        Dictionary of extra context fields.
    """
    context = _extra_context.get()
    if context is None:
        return {}
    return context.copy()


def set_extra_context(**kwargs: Any) -> None:
    """Set additional context fields to include in all log messages.

    Args:
        **kwargs: Key-value pairs to include in log messages.
    """
    current = _extra_context.get()
    current = {} if current is None else current.copy()
    current.update(kwargs)
    _extra_context.set(current)


def clear_context() -> None:
    """Clear all context (operation ID and extra context)."""
    operation_id.set("")
    _extra_context.set(None)


@contextmanager
def operation_context(operation: str, **fields: Any) -> Iterator[str]:
    """Scope a fresh operation ID and extra fields to one mutation.

    The previous context is restored on exit, so nested or interleaved
    operations never leak fields into each other.

    Args:
        operation: Name of the operation, logged as ``operation``.
        **fields: Additional key-value pairs for every record in scope.

    Yields:
        The generated operation ID.
    """
    id_token = operation_id.set(str(uuid4()))
    current = _extra_context.get()
    merged = {} if current is None else current.copy()
    merged.update(fields, operation=operation)
    extra_token = _extra_context.set(merged)
    try:
        yield operation_id.get()
    finally:
        _extra_context.reset(extra_token)
        operation_id.reset(id_token)
