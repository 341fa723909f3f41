"""Mission mutation operations.

Every mutation follows the same protocol:

1. Validate synchronously; failures raise before state is touched.
2. Apply a ``MutationTransaction`` optimistically so readers see the change.
3. Await the backend gateway (the only suspension point).
4. On backend failure: replay the inverse, set the shared error, raise ``BackendError``.
5. On backend success: keep the change and refresh ``last_updated``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from mission_engine.config import Settings, get_settings
from mission_engine.constants import MAX_NAME_LENGTH
from mission_engine.exceptions.base import MissionEngineError
from mission_engine.exceptions.client_errors import (
    CapacityError,
    NotFoundError,
    ValidationError,
)
from mission_engine.exceptions.server_errors import BackendError
from mission_engine.logging.context import operation_context
from mission_engine.mission.models import (
    COORDINATE_FIELDS,
    MissionItem,
    MissionItemType,
    MissionSummary,
    SavedMission,
    SequenceValidationResult,
    WaypointParams,
    parse_model,
)
from mission_engine.mission.rules import (
    validate_mission_item,
    validate_mission_sequence,
    validate_waypoint_distance,
    validate_waypoint_params,
)
from mission_engine.mission.state import MissionState
from mission_engine.mission.transaction import (
    MutationTransaction,
    build_add_transaction,
    build_remove_transaction,
    build_reorder_transaction,
    build_update_transaction,
)

if TYPE_CHECKING:
    from types import TracebackType

    from mission_engine.backend.gateway import BackendGateway

logger = logging.getLogger(__name__)

_UPDATABLE_ITEM_FIELDS: frozenset[str] = frozenset(
    {"name", "description", "sequence", "type", "params"}
)

# Appended to the shared error when an undo could not be replayed
_OUT_OF_SYNC_SUFFIX = " (local mission is out of sync with the backend; reload it)"


class MissionOperations:
    """The only writer of a ``MissionState``.

    Use as an async context manager for an explicit lifecycle:

        async with MissionOperations(state, gateway) as operations:
            await operations.add_mission_item(item)
    """

    def __init__(
        self,
        state: MissionState,
        gateway: BackendGateway,
        settings: Settings | None = None,
    ) -> None:
        """Initialize mission operations.

        Args:
            state: Mission state this instance writes.
            gateway: Authoritative backend.
            settings: Engine configuration; loaded from the environment if omitted.
        """
        self._state = state
        self._gateway = gateway
        self._settings = settings or get_settings()
        self._writer_lock = asyncio.Lock() if self._settings.serialize_mutations else None
        self._is_open = True

    @property
    def state(self) -> MissionState:
        """Return the mission state (read it, never write it)."""
        return self._state

    async def __aenter__(self) -> MissionOperations:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exception_type: type[BaseException] | None,
        exception: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.shutdown()

    async def initialize(self) -> None:
        """Open the operations, fetching the backend mission if configured."""
        self._is_open = True
        logger.info(
            "Mission operations started (capacity=%d, serialized=%s)",
            self._state.capacity,
            self._settings.serialize_mutations,
        )
        if self._settings.load_on_start:
            await self.load_mission_data()

    def shutdown(self) -> None:
        """Close the operations and drop every state subscriber."""
        self._is_open = False
        self._state.clear_subscribers()
        logger.info("Mission operations shut down")

    # Item mutations

    async def add_mission_item(self, item: MissionItem) -> MissionItem:
        """Append a validated item to the mission.

        Args:
            item: Item to add.

        Returns:
            The added item.

        Raises:
            ValidationError: If the item breaks a rule, repeats an id or sequence
                number, or sits too close to / too far from the last item.
            CapacityError: If the mission is full.
            BackendError: If the backend rejects the item (the add is rolled back).
        """
        async with self._writer():
            with operation_context("add_mission_item", item_id=item.id):
                self._require_open()
                validate_mission_item(item)
                if self._state.is_full():
                    raise CapacityError(
                        f"Mission is full: {self._state.capacity} items",
                        capacity=self._state.capacity,
                    )
                if self._state.contains(item.id):
                    raise ValidationError(
                        f"Mission item id {item.id} already exists", field="id", value=item.id
                    )
                self._require_unique_sequence(item.sequence, exclude_id=item.id)
                if self._state.items:
                    validate_waypoint_distance(self._state.items[-1], item)

                await self._execute(
                    build_add_transaction(item),
                    "add_mission_item",
                    lambda: self._gateway.add_mission_item(item),
                )
                logger.info("Added mission item %s (%s)", item.id, item.type)
        return item

    async def remove_mission_item(self, item_id: str) -> MissionItem:
        """Remove an item, clearing the selection if it pointed at it.

        Returns:
            The removed item.

        Raises:
            NotFoundError: If no item has ``item_id``.
            BackendError: If the backend rejects the removal (the item is re-appended).
        """
        async with self._writer():
            with operation_context("remove_mission_item", item_id=item_id):
                self._require_open()
                item = self._require_item(item_id)
                transaction = build_remove_transaction(
                    item, clear_selection=self._state.selected_item_id == item_id
                )
                await self._execute(
                    transaction,
                    "remove_mission_item",
                    lambda: self._gateway.remove_mission_item(item_id),
                )
                logger.info("Removed mission item %s", item_id)
        return item

    async def reorder_mission_item(self, item_id: str, new_index: int) -> None:
        """Move an item to ``new_index``; indices past the end move it to the end.

        Raises:
            ValidationError: If ``new_index`` is outside ``[0, capacity)``.
            NotFoundError: If no item has ``item_id``.
            BackendError: If the backend rejects the move (the item is moved back).
        """
        async with self._writer():
            with operation_context("reorder_mission_item", item_id=item_id, new_index=new_index):
                self._require_open()
                if (
                    not isinstance(new_index, int)
                    or isinstance(new_index, bool)
                    or not 0 <= new_index < self._state.capacity
                ):
                    raise ValidationError(
                        f"Invalid new index {new_index!r}",
                        field="new_index",
                        value=new_index,
                        bound=f"[0, {self._state.capacity})",
                    )
                current_index = self._state.index_of(item_id)
                if current_index is None:
                    raise _item_not_found(item_id)

                transaction = build_reorder_transaction(
                    item_id, from_index=current_index, to_index=new_index
                )
                await self._execute(
                    transaction,
                    "reorder_mission_item",
                    lambda: self._gateway.reorder_mission_item(item_id, new_index),
                )
                logger.info("Reordered mission item %s to index %d", item_id, new_index)

    async def update_waypoint_params(
        self,
        item_id: str,
        params: WaypointParams | Mapping[str, Any],
    ) -> MissionItem:
        """Shallow-merge parameter changes into an item.

        ``position`` is recomputed only when ``lat``, ``lng`` and ``alt`` are
        all supplied.

        Returns:
            The updated item.

        Raises:
            ValidationError: If a supplied parameter is invalid, or the merged
                item breaks its type's rules.
            NotFoundError: If no item has ``item_id``.
            BackendError: If the backend rejects the change (touched fields are restored).
        """
        async with self._writer():
            with operation_context("update_waypoint_params", item_id=item_id):
                self._require_open()
                changes = parse_model(WaypointParams, params)
                validate_waypoint_params(changes)
                supplied = changes.supplied_fields()
                if not supplied:
                    raise ValidationError("No waypoint parameters supplied", field="params")
                current = self._require_item(item_id)

                updated, item_fields = _merge_params(current, changes)
                validate_mission_item(updated)

                transaction = build_update_transaction(
                    current, updated, item_fields=item_fields, param_fields=supplied
                )
                await self._execute(
                    transaction,
                    "update_waypoint_params",
                    lambda: self._gateway.update_waypoint_params(item_id, changes),
                )
                logger.info("Updated waypoint %s parameters: %s", item_id, sorted(supplied))
        return updated

    async def update_mission_item(self, item_id: str, updates: Mapping[str, Any]) -> MissionItem:
        """Apply field changes (name, description, sequence, type, params) to an item.

        Returns:
            The updated item.

        Raises:
            ValidationError: If the updates touch ``id`` or an unknown field, or
                the updated item breaks a rule.
            NotFoundError: If no item has ``item_id``.
            BackendError: If the backend rejects the change (touched fields are restored).
        """
        async with self._writer():
            with operation_context("update_mission_item", item_id=item_id):
                self._require_open()
                if "id" in updates:
                    raise ValidationError(
                        "Mission item id cannot be changed", field="id", value=updates["id"]
                    )
                unknown = sorted(set(updates) - _UPDATABLE_ITEM_FIELDS)
                if unknown:
                    raise ValidationError(
                        f"Unknown mission item fields: {', '.join(unknown)}",
                        field=unknown[0],
                    )
                if not updates:
                    raise ValidationError("No mission item fields supplied", field="updates")
                current = self._require_item(item_id)

                normalized = _normalize_item_updates(current, updates)
                params_changes: WaypointParams | None = normalized.pop("params", None)
                updated = parse_model(
                    MissionItem, {**current.model_dump(), **normalized}
                )
                item_fields = set(normalized)
                param_fields: set[str] = set()
                if params_changes is not None:
                    validate_waypoint_params(params_changes)
                    param_fields = set(params_changes.supplied_fields())
                    updated, position_fields = _merge_params(updated, params_changes)
                    item_fields.update(position_fields)
                validate_mission_item(updated)
                self._require_unique_sequence(updated.sequence, exclude_id=item_id)

                payload: dict[str, Any] = dict(normalized)
                if params_changes is not None:
                    payload["params"] = params_changes
                transaction = build_update_transaction(
                    current, updated, item_fields=item_fields, param_fields=param_fields
                )
                await self._execute(
                    transaction,
                    "update_mission_item",
                    lambda: self._gateway.update_mission_item(item_id, payload),
                )
                logger.info("Updated mission item %s fields: %s", item_id, sorted(payload))
        return updated

    async def select_mission_item(self, item_id: str | None) -> None:
        """Select an item, or clear the selection with None.

        The local selection changes before the first await and always
        succeeds. Backend sync is best-effort: failures are logged, never raised.
        """
        self._require_open()
        self._state.set_selected_item_id(item_id)
        logger.debug("Selected mission item: %s", item_id or "none")
        try:
            await self._gateway.select_mission_item(item_id)
        except Exception as error:
            logger.warning(
                "Selection sync failed for %s: %s",
                item_id or "none",
                error,
                extra={"command": "select_mission_item"},
            )

    # Mission-level commands

    async def load_mission_data(self) -> list[MissionItem]:
        """Replace the items with the backend's working mission.

        Raises:
            BackendError: If the fetch fails or returns an unusable mission.
        """
        async with self._writer():
            with operation_context("load_mission_data"):
                self._require_open()
                return await self._load_items("get_mission_data", self._fetch_working_mission)

    async def load_mission_by_id(self, mission_id: str) -> list[MissionItem]:
        """Replace the items with a stored mission.

        Raises:
            BackendError: If the fetch fails or returns an unusable mission.
        """

        async def fetch() -> list[MissionItem]:
            mission = parse_model(SavedMission, await self._gateway.load_mission_by_id(mission_id))
            logger.info("Loaded mission %r with %d items", mission.name, len(mission.items))
            return mission.items

        async with self._writer():
            with operation_context("load_mission_by_id", mission_id=mission_id):
                self._require_open()
                return await self._load_items("load_mission_by_id", fetch)

    async def save_mission(self, name: str) -> str:
        """Store the current items under ``name``.

        Returns:
            The id the backend assigned.

        Raises:
            ValidationError: If the name is empty or longer than 100 characters.
            BackendError: If the backend rejects the save.
        """
        with operation_context("save_mission"):
            self._require_open()
            if not isinstance(name, str) or not name.strip() or len(name) > MAX_NAME_LENGTH:
                raise ValidationError(
                    f"Mission name must be 1 to {MAX_NAME_LENGTH} characters",
                    field="name",
                    value=name,
                    bound=f"1..{MAX_NAME_LENGTH} chars",
                )
            items = list(self._state.items)
            mission_id = await self._call_backend(
                "save_mission", lambda: self._gateway.save_mission(name, items)
            )
            logger.info("Saved mission %r as %s (%d items)", name, mission_id, len(items))
            return str(mission_id)

    async def get_mission_list(self) -> list[MissionSummary]:
        """Return summaries of the backend's stored missions.

        Raises:
            BackendError: If the backend call fails or returns an unusable summary.
        """

        async def fetch() -> list[MissionSummary]:
            missions = await self._gateway.get_mission_list()
            return [parse_model(MissionSummary, mission) for mission in missions or []]

        with operation_context("get_mission_list"):
            self._require_open()
            summaries = await self._call_backend("get_mission_list", fetch)
            logger.info("Retrieved %d saved missions", len(summaries))
            return summaries

    async def delete_mission(self, mission_id: str) -> None:
        """Delete a stored mission.

        Raises:
            BackendError: If the backend call fails.
        """
        with operation_context("delete_mission", mission_id=mission_id):
            self._require_open()
            await self._call_backend(
                "delete_mission", lambda: self._gateway.delete_mission(mission_id)
            )
            logger.info("Deleted mission %s", mission_id)

    def clear_mission_error(self) -> None:
        """Clear the shared error message."""
        self._state.set_error(None)

    def validate_current_mission(self) -> SequenceValidationResult:
        """Run the whole-sequence checks on the current items."""
        return validate_mission_sequence(self._state.items)

    # Internals

    def _writer(self) -> contextlib.AbstractAsyncContextManager[Any]:
        if self._writer_lock is None:
            return contextlib.nullcontext()
        return self._writer_lock

    def _require_open(self) -> None:
        if not self._is_open:
            raise RuntimeError("Mission operations have been shut down")

    def _require_item(self, item_id: str) -> MissionItem:
        item = self._state.get_item(item_id)
        if item is None:
            raise _item_not_found(item_id)
        return item

    def _require_unique_sequence(self, sequence: int | None, *, exclude_id: str) -> None:
        if sequence is None:
            return
        for existing in self._state.items:
            if existing.id != exclude_id and existing.sequence == sequence:
                raise ValidationError(
                    f"Sequence number {sequence} is already used by {existing.id}",
                    field="sequence",
                    value=sequence,
                )

    async def _execute(
        self,
        transaction: MutationTransaction,
        command: str,
        call: Callable[[], Awaitable[Any]],
    ) -> Any:
        transaction.apply(self._state)
        try:
            result = await call()
        except Exception as error:
            backend_error = _to_backend_error(error, command)
            if self._roll_back(transaction, backend_error):
                self._state.set_error(backend_error.message)
            else:
                self._state.set_error(f"{backend_error.message}{_OUT_OF_SYNC_SUFFIX}")
            if backend_error is error:
                raise
            raise backend_error from error
        self._state.touch()
        return result

    def _roll_back(self, transaction: MutationTransaction, cause: BackendError) -> bool:
        """Replay the inverse of ``transaction``; False when the undo itself failed."""
        try:
            transaction.rollback(self._state)
        except Exception:
            logger.exception(
                "Rollback of %s failed after backend error: %s",
                transaction.description,
                cause.message,
            )
            return False
        logger.warning("Rolled back %s: %s", transaction.description, cause.message)
        return True

    async def _call_backend(self, command: str, call: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await call()
        except Exception as error:
            backend_error = _to_backend_error(error, command)
            self._state.set_error(backend_error.message)
            logger.warning("Backend command %s failed: %s", command, backend_error.message)
            if backend_error is error:
                raise
            raise backend_error from error

    async def _fetch_working_mission(self) -> list[MissionItem]:
        return await self._gateway.get_mission_data()

    async def _load_items(
        self,
        command: str,
        fetch: Callable[[], Awaitable[Any]],
    ) -> list[MissionItem]:
        with self._state.batch():
            self._state.set_loading(True)
            self._state.set_error(None)
        try:
            raw_items = await fetch()
            items = [parse_model(MissionItem, raw) for raw in raw_items or []]
            self._state.replace_items(items)
        except Exception as error:
            backend_error = _to_backend_error(error, command)
            with self._state.batch():
                self._state.set_loading(False)
                self._state.set_error(backend_error.message)
            logger.warning("Loading mission via %s failed: %s", command, backend_error.message)
            if backend_error is error:
                raise
            raise backend_error from error

        with self._state.batch():
            self._state.set_loading(False)
            self._state.touch()
        logger.info("Loaded %d mission items via %s", len(items), command)
        return items


def _item_not_found(item_id: str) -> NotFoundError:
    return NotFoundError(
        f"Mission item {item_id} not found",
        resource_type="MissionItem",
        resource_id=item_id,
    )


def _to_backend_error(error: Exception, command: str) -> BackendError:
    if isinstance(error, BackendError):
        return error
    message = error.message if isinstance(error, MissionEngineError) else str(error)
    message = message or f"Backend command {command} failed"
    return BackendError(
        message,
        command=command,
        context={"cause": type(error).__name__},
    )


def _merge_params(item: MissionItem, changes: WaypointParams) -> tuple[MissionItem, set[str]]:
    """Merge ``changes`` into ``item.params``; recompute position only for a full triple.

    Returns:
        The merged item and the top-level fields it touched besides params.
    """
    update: dict[str, Any] = {"params": item.params.merged_with(changes)}
    touched: set[str] = set()
    if COORDINATE_FIELDS.issubset(changes.supplied_fields()):
        update["position"] = changes.to_position()
        touched.add("position")
    return item.model_copy(update=update), touched


def _normalize_item_updates(current: MissionItem, updates: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for field, value in updates.items():
        if field == "params":
            normalized["params"] = parse_model(WaypointParams, value)
        elif field == "type":
            try:
                normalized["type"] = MissionItemType(value)
            except ValueError as error:
                raise ValidationError(
                    f"Unknown mission item type: {value!r}",
                    field="type",
                    value=value,
                    bound=", ".join(MissionItemType),
                ) from error
        else:
            normalized[field] = value
    if "params" in normalized and not normalized["params"].supplied_fields():
        del normalized["params"]
        if not normalized:
            raise ValidationError(
                f"No changes supplied for mission item {current.id}", field="updates"
            )
    return normalized


def create_mission_operations(
    gateway: BackendGateway,
    settings: Settings | None = None,
) -> MissionOperations:
    """Build operations over fresh mission state sized by ``mission_capacity``."""
    settings = settings or get_settings()
    return MissionOperations(MissionState(settings.mission_capacity), gateway, settings)
