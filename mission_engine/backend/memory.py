"""In-memory backend gateway.

Keeps the working mission and saved missions in process memory. Used for
simulation runs and tests; ``fail_next`` injects a one-shot failure into a
command to exercise the engine's rollback paths.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from mission_engine.mission.models import (
    MissionItem,
    MissionSummary,
    SavedMission,
    WaypointParams,
    parse_model,
)

logger = logging.getLogger(__name__)


class GatewayCommandError(Exception):
    """A gateway command was rejected."""


class InMemoryBackendGateway:
    """Backend gateway backed by plain Python containers.

    Attributes:
        calls: Every command received, as ``(command, arguments)`` pairs.
    """

    def __init__(
        self,
        items: Iterable[MissionItem] = (),
        *,
        latency_seconds: float = 0.0,
    ) -> None:
        """Initialize the gateway.

        Args:
            items: Initial working mission.
            latency_seconds: Artificial delay before each command settles.
        """
        self._items: list[MissionItem] = list(items)
        self._missions: dict[str, tuple[SavedMission, str, str]] = {}
        self._latency_seconds = latency_seconds
        self._failures: dict[str, str] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def items(self) -> tuple[MissionItem, ...]:
        """Return the backend's copy of the working mission."""
        return tuple(self._items)

    def fail_next(self, command: str, reason: str = "Backend unavailable") -> None:
        """Make the next call of ``command`` raise ``GatewayCommandError(reason)``."""
        self._failures[command] = reason

    async def _settle(self, command: str, **arguments: Any) -> None:
        self.calls.append((command, arguments))
        if self._latency_seconds:
            await asyncio.sleep(self._latency_seconds)
        reason = self._failures.pop(command, None)
        if reason is not None:
            logger.debug("Injected failure for %s: %s", command, reason)
            raise GatewayCommandError(reason)

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise GatewayCommandError("Mission item not found")

    async def get_mission_data(self) -> list[MissionItem]:
        await self._settle("get_mission_data")
        return list(self._items)

    async def add_mission_item(self, item: MissionItem) -> str:
        await self._settle("add_mission_item", item=item)
        self._items.append(item)
        return item.id

    async def remove_mission_item(self, item_id: str) -> None:
        await self._settle("remove_mission_item", item_id=item_id)
        self._items = [item for item in self._items if item.id != item_id]

    async def reorder_mission_item(self, item_id: str, new_index: int) -> None:
        await self._settle("reorder_mission_item", item_id=item_id, new_index=new_index)
        moved = self._items.pop(self._index_of(item_id))
        self._items.insert(min(new_index, len(self._items)), moved)

    async def update_waypoint_params(self, waypoint_id: str, params: WaypointParams) -> None:
        await self._settle("update_waypoint_params", waypoint_id=waypoint_id, params=params)
        index = self._index_of(waypoint_id)
        current = self._items[index]
        merged = current.params.merged_with(params)
        self._items[index] = current.model_copy(update={"params": merged})

    async def update_mission_item(self, item_id: str, updates: dict[str, Any]) -> None:
        await self._settle("update_mission_item", item_id=item_id, updates=updates)
        index = self._index_of(item_id)
        current = self._items[index]
        changes = dict(updates)
        if "params" in changes:
            supplied = parse_model(WaypointParams, changes["params"])
            changes["params"] = current.params.merged_with(supplied)
        self._items[index] = current.model_copy(update=changes)

    async def select_mission_item(self, item_id: str | None) -> None:
        await self._settle("select_mission_item", item_id=item_id)
        logger.debug("Mission item selected: %s", item_id or "none")

    async def save_mission(self, name: str, items: Sequence[MissionItem]) -> str:
        await self._settle("save_mission", name=name, items=list(items))
        mission_id = str(uuid4())
        now = datetime.now(UTC).isoformat()
        mission = SavedMission(id=mission_id, name=name, items=list(items))
        self._missions[mission_id] = (mission, now, now)
        return mission_id

    async def load_mission_by_id(self, mission_id: str) -> SavedMission:
        await self._settle("load_mission_by_id", mission_id=mission_id)
        if mission_id not in self._missions:
            raise GatewayCommandError(f"Mission {mission_id} not found")
        mission, _, _ = self._missions[mission_id]
        self._items = list(mission.items)
        return mission

    async def get_mission_list(self) -> list[MissionSummary]:
        await self._settle("get_mission_list")
        return [
            MissionSummary(
                id=mission.id, name=mission.name, created_at=created_at, updated_at=updated_at
            )
            for mission, created_at, updated_at in self._missions.values()
        ]

    async def delete_mission(self, mission_id: str) -> None:
        await self._settle("delete_mission", mission_id=mission_id)
        if self._missions.pop(mission_id, None) is None:
            raise GatewayCommandError(f"Mission {mission_id} not found")
