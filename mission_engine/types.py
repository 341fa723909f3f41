"""Type definitions for mission engine collaborators."""

from collections.abc import Callable
from typing import Protocol

from mission_engine.mission.models import MissionItem, MissionSnapshot


class MissionView(Protocol):
    """Read-only view of mission state handed to UI collaborators."""

    @property
    def items(self) -> tuple[MissionItem, ...]:
        """Return the ordered mission items."""
        ...

    @property
    def selected_item(self) -> MissionItem | None:
        """Return the selected item, or None."""
        ...

    @property
    def loading(self) -> bool:
        """Return whether a backend fetch is outstanding."""
        ...

    @property
    def error(self) -> str | None:
        """Return the last backend error message."""
        ...

    def subscribe(self, callback: Callable[[MissionSnapshot], None]) -> Callable[[], None]:
        """Register a snapshot callback and return its unsubscribe function."""
        ...


# Raw mission item payload as received from a backend
MissionItemPayload = dict[str, object]
