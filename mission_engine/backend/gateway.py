"""Backend gateway interface consumed by the mission engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mission_engine.mission.models import (
        MissionItem,
        MissionSummary,
        SavedMission,
        WaypointParams,
    )


class BackendGateway(Protocol):
    """Authoritative store that persists missions and forwards them to the vehicle.

    Every command is asynchronous. A command signals failure by raising;
    the engine wraps whatever it raises in ``BackendError``.
    """

    async def get_mission_data(self) -> Sequence[MissionItem | dict[str, Any]] | None:
        """Return the working mission's items."""
        ...

    async def add_mission_item(self, item: MissionItem) -> Any:
        """Append an item to the working mission."""
        ...

    async def remove_mission_item(self, item_id: str) -> Any:
        """Remove an item from the working mission."""
        ...

    async def reorder_mission_item(self, item_id: str, new_index: int) -> Any:
        """Move an item to a new position."""
        ...

    async def update_waypoint_params(self, waypoint_id: str, params: WaypointParams) -> Any:
        """Merge parameter changes into an item."""
        ...

    async def update_mission_item(self, item_id: str, updates: dict[str, Any]) -> Any:
        """Apply field changes to an item."""
        ...

    async def select_mission_item(self, item_id: str | None) -> Any:
        """Record the operator's selection."""
        ...

    async def save_mission(self, name: str, items: Sequence[MissionItem]) -> str:
        """Store the items as a named mission and return its id."""
        ...

    async def load_mission_by_id(self, mission_id: str) -> SavedMission | dict[str, Any]:
        """Return a stored mission and make it the working mission."""
        ...

    async def get_mission_list(self) -> Sequence[MissionSummary | dict[str, Any]]:
        """Return summaries of the stored missions."""
        ...

    async def delete_mission(self, mission_id: str) -> Any:
        """Delete a stored mission."""
        ...
