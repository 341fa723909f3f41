"""Tests for mission mutation operations."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from mission_engine.backend.memory import InMemoryBackendGateway
from mission_engine.config import Settings
from mission_engine.exceptions import BackendError, CapacityError, NotFoundError, ValidationError
from mission_engine.mission.models import (
    MissionItem,
    MissionItemType,
    Position,
    WaypointParams,
)
from mission_engine.mission.operations import MissionOperations, create_mission_operations
from mission_engine.mission.state import MissionState


def _make_item(
    item_id: str, item_type=MissionItemType.WAYPOINT, sequence=None, **params
) -> MissionItem:
    return MissionItem(
        id=item_id,
        type=item_type,
        name=item_id,
        sequence=sequence,
        params=WaypointParams(**params),
    )


def _takeoff() -> MissionItem:
    return _make_item("to-1", MissionItemType.TAKEOFF, lat=47.0, lng=8.0, alt=20.0, speed=5.0)


def _waypoint(item_id: str, step: int, **params) -> MissionItem:
    # Steps of 0.001 degrees of latitude are about 111 m apart
    return _make_item(item_id, lat=47.0 + step / 1000, lng=8.0, alt=30.0, **params)


def _ids(state: MissionState) -> list[str]:
    return [item.id for item in state.items]


@pytest.fixture
def state() -> MissionState:
    return MissionState()


@pytest.fixture
def gateway() -> InMemoryBackendGateway:
    return InMemoryBackendGateway()


@pytest.fixture
def operations(state, gateway) -> MissionOperations:
    return MissionOperations(state, gateway, Settings())


async def _seed(operations: MissionOperations, *items: MissionItem) -> None:
    for item in items:
        await operations.add_mission_item(item)


class TestAddMissionItem:
    """Tests for add_mission_item."""

    @pytest.mark.asyncio
    async def test_adds_exactly_one_item(self, operations, state, gateway) -> None:
        await operations.add_mission_item(_takeoff())
        assert _ids(state) == ["to-1"]
        assert [item.id for item in gateway.items] == ["to-1"]
        assert state.last_updated > 0
        assert state.error is None

    @pytest.mark.asyncio
    async def test_out_of_range_latitude_rejected_before_mutation(
        self, operations, state, gateway
    ) -> None:
        await _seed(operations, _takeoff())
        with pytest.raises(ValidationError) as error_info:
            await operations.add_mission_item(_make_item("wp-1", lat=95.0, lng=8.0))
        assert error_info.value.field == "lat"
        assert len(state.items) == 1
        assert len(gateway.calls) == 1
        assert state.error is None

    @pytest.mark.asyncio
    async def test_full_mission_rejects_next_item(self, operations, state, gateway) -> None:
        state.replace_items([_make_item(f"wp-{index}") for index in range(100)])
        with pytest.raises(CapacityError) as error_info:
            await operations.add_mission_item(_make_item("wp-100"))
        assert error_info.value.capacity == 100
        assert len(state.items) == 100
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, operations) -> None:
        await _seed(operations, _takeoff())
        with pytest.raises(ValidationError, match="already exists"):
            await operations.add_mission_item(_takeoff())

    @pytest.mark.asyncio
    async def test_duplicate_sequence_rejected(self, operations) -> None:
        await _seed(operations, _make_item("wp-1", sequence=1))
        with pytest.raises(ValidationError) as error_info:
            await operations.add_mission_item(_make_item("wp-2", sequence=1))
        assert error_info.value.field == "sequence"

    @pytest.mark.asyncio
    async def test_spacing_checked_against_last_item(self, operations, state) -> None:
        await _seed(operations, _takeoff())
        with pytest.raises(ValidationError, match="too close"):
            await operations.add_mission_item(_make_item("wp-1", lat=47.0, lng=8.0, alt=30.0))
        assert _ids(state) == ["to-1"]

    @pytest.mark.asyncio
    async def test_item_visible_while_backend_call_pending(
        self, operations, state, gateway
    ) -> None:
        seen_during_call: list[bool] = []

        def record(item: MissionItem) -> str:
            seen_during_call.append(state.contains(item.id))
            return item.id

        gateway.add_mission_item = AsyncMock(side_effect=record)
        await operations.add_mission_item(_takeoff())
        assert seen_during_call == [True]

    @pytest.mark.asyncio
    async def test_backend_failure_rolls_back(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff())
        gateway.fail_next("add_mission_item", "Vehicle link lost")
        with pytest.raises(BackendError, match="Vehicle link lost") as error_info:
            await operations.add_mission_item(_waypoint("wp-1", 1))
        assert error_info.value.command == "add_mission_item"
        assert error_info.value.context["cause"] == "GatewayCommandError"
        assert _ids(state) == ["to-1"]
        assert state.error == "Vehicle link lost"

    @pytest.mark.asyncio
    async def test_backend_error_passes_through(self, operations, state, gateway) -> None:
        original = BackendError("Rejected by vehicle", command="add_mission_item")
        gateway.add_mission_item = AsyncMock(side_effect=original)
        with pytest.raises(BackendError) as error_info:
            await operations.add_mission_item(_takeoff())
        assert error_info.value is original
        assert state.items == ()

    @pytest.mark.asyncio
    async def test_logs_committed_add(self, operations, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="mission_engine.mission.operations"):
            await operations.add_mission_item(_takeoff())
        assert "Added mission item to-1 (takeoff)" in caplog.text


class TestRemoveMissionItem:
    """Tests for remove_mission_item."""

    @pytest.mark.asyncio
    async def test_removes_and_clears_selection(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1))
        await operations.select_mission_item("wp-1")
        removed = await operations.remove_mission_item("wp-1")
        assert removed.id == "wp-1"
        assert _ids(state) == ["to-1"]
        assert state.selected_item_id is None
        assert [item.id for item in gateway.items] == ["to-1"]

    @pytest.mark.asyncio
    async def test_keeps_unrelated_selection(self, operations, state) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1))
        await operations.select_mission_item("to-1")
        await operations.remove_mission_item("wp-1")
        assert state.selected_item_id == "to-1"

    @pytest.mark.asyncio
    async def test_missing_item(self, operations) -> None:
        with pytest.raises(NotFoundError) as error_info:
            await operations.remove_mission_item("ghost")
        assert error_info.value.context["resource_id"] == "ghost"

    @pytest.mark.asyncio
    async def test_backend_failure_reappends_item(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1), _waypoint("wp-2", 2))
        gateway.fail_next("remove_mission_item")
        with pytest.raises(BackendError):
            await operations.remove_mission_item("to-1")
        assert _ids(state) == ["wp-1", "wp-2", "to-1"]
        assert state.error == "Backend unavailable"


class TestReorderMissionItem:
    """Tests for reorder_mission_item."""

    @pytest.mark.asyncio
    async def test_moves_item(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1), _waypoint("wp-2", 2))
        await operations.reorder_mission_item("wp-2", 1)
        assert _ids(state) == ["to-1", "wp-2", "wp-1"]
        assert [item.id for item in gateway.items] == ["to-1", "wp-2", "wp-1"]

    @pytest.mark.asyncio
    async def test_index_past_end_moves_to_end(self, operations, state) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1))
        await operations.reorder_mission_item("to-1", 99)
        assert _ids(state) == ["wp-1", "to-1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("new_index", [-1, 100, True, 1.5])
    async def test_index_bounds_checked_against_capacity(
        self, operations, gateway, new_index
    ) -> None:
        await _seed(operations, _takeoff())
        with pytest.raises(ValidationError) as error_info:
            await operations.reorder_mission_item("to-1", new_index)
        assert error_info.value.field == "new_index"
        assert len(gateway.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_item(self, operations) -> None:
        with pytest.raises(NotFoundError):
            await operations.reorder_mission_item("ghost", 0)

    @pytest.mark.asyncio
    async def test_backend_failure_moves_item_back(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1), _waypoint("wp-2", 2))
        gateway.fail_next("reorder_mission_item")
        with pytest.raises(BackendError):
            await operations.reorder_mission_item("to-1", 2)
        assert _ids(state) == ["to-1", "wp-1", "wp-2"]
        assert state.error == "Backend unavailable"


class TestUpdateWaypointParams:
    """Tests for update_waypoint_params."""

    @pytest.mark.asyncio
    async def test_full_triple_recomputes_position(self, operations, state) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        updated = await operations.update_waypoint_params(
            "wp-1", {"lat": 47.5, "lng": 8.5, "alt": 120.0}
        )
        assert updated.position == Position(lat=47.5, lng=8.5, alt=120.0)
        assert state.get_item("wp-1").position == Position(lat=47.5, lng=8.5, alt=120.0)

    @pytest.mark.asyncio
    async def test_partial_coordinates_leave_position(self, operations, state) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        await operations.update_waypoint_params("wp-1", WaypointParams(lat=47.5))
        item = state.get_item("wp-1")
        assert item.params.lat == 47.5
        assert item.position is None

    @pytest.mark.asyncio
    async def test_shallow_merge_keeps_other_params(self, operations, state, gateway) -> None:
        await _seed(operations, _waypoint("wp-1", 1, speed=8.0))
        await operations.update_waypoint_params("wp-1", {"hold_time": 15.0})
        params = state.get_item("wp-1").params
        assert params.speed == 8.0
        assert params.hold_time == 15.0
        assert gateway.items[0].params.hold_time == 15.0

    @pytest.mark.asyncio
    async def test_invalid_value_rejected_before_mutation(self, operations, state) -> None:
        await _seed(operations, _waypoint("wp-1", 1, speed=8.0))
        with pytest.raises(ValidationError) as error_info:
            await operations.update_waypoint_params("wp-1", {"speed": 45.0})
        assert error_info.value.field == "speed"
        assert state.get_item("wp-1").params.speed == 8.0

    @pytest.mark.asyncio
    async def test_unknown_parameter_rejected(self, operations) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        with pytest.raises(ValidationError, match="altitude"):
            await operations.update_waypoint_params("wp-1", {"altitude": 10.0})

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, operations) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        with pytest.raises(ValidationError, match="No waypoint parameters"):
            await operations.update_waypoint_params("wp-1", {})

    @pytest.mark.asyncio
    async def test_type_rule_checked_on_merged_item(self, operations) -> None:
        await _seed(operations, _make_item("land-1", MissionItemType.LAND, alt=0.0))
        with pytest.raises(ValidationError) as error_info:
            await operations.update_waypoint_params("land-1", {"alt": 15.0})
        assert error_info.value.field == "alt"

    @pytest.mark.asyncio
    async def test_missing_item(self, operations) -> None:
        with pytest.raises(NotFoundError):
            await operations.update_waypoint_params("ghost", {"speed": 5.0})

    @pytest.mark.asyncio
    async def test_backend_failure_restores_params_and_position(
        self, operations, state, gateway
    ) -> None:
        await _seed(operations, _waypoint("wp-1", 1, speed=8.0))
        before = state.get_item("wp-1")
        gateway.fail_next("update_waypoint_params")
        with pytest.raises(BackendError):
            await operations.update_waypoint_params(
                "wp-1", {"lat": 47.5, "lng": 8.5, "alt": 120.0, "speed": 12.0}
            )
        assert state.get_item("wp-1") == before


class TestUpdateMissionItem:
    """Tests for update_mission_item."""

    @pytest.mark.asyncio
    async def test_renames_item(self, operations, state, gateway) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        updated = await operations.update_mission_item("wp-1", {"name": "North corner"})
        assert updated.name == "North corner"
        assert state.get_item("wp-1").name == "North corner"
        assert gateway.items[0].name == "North corner"

    @pytest.mark.asyncio
    async def test_changes_type_and_params(self, operations, state) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        await operations.update_mission_item(
            "wp-1", {"type": "loiter", "params": {"hold_time": 20.0}}
        )
        item = state.get_item("wp-1")
        assert item.type == MissionItemType.LOITER
        assert item.params.hold_time == 20.0
        assert item.params.lat == pytest.approx(47.001)

    @pytest.mark.asyncio
    async def test_id_cannot_change(self, operations) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        with pytest.raises(ValidationError) as error_info:
            await operations.update_mission_item("wp-1", {"id": "wp-9"})
        assert error_info.value.field == "id"

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, operations) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        with pytest.raises(ValidationError, match="Unknown mission item fields: colour"):
            await operations.update_mission_item("wp-1", {"colour": "red"})

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, operations) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        with pytest.raises(ValidationError) as error_info:
            await operations.update_mission_item("wp-1", {"type": "hover"})
        assert error_info.value.field == "type"

    @pytest.mark.asyncio
    async def test_type_rules_apply_to_result(self, operations, state) -> None:
        await _seed(operations, _make_item("wp-1"))
        with pytest.raises(ValidationError) as error_info:
            await operations.update_mission_item("wp-1", {"type": "loiter"})
        assert error_info.value.field == "hold_time"
        assert state.get_item("wp-1").type == MissionItemType.WAYPOINT

    @pytest.mark.asyncio
    async def test_sequence_uniqueness(self, operations) -> None:
        await _seed(operations, _make_item("wp-1", sequence=1), _make_item("wp-2", sequence=2))
        with pytest.raises(ValidationError, match="already used by wp-1"):
            await operations.update_mission_item("wp-2", {"sequence": 1})

    @pytest.mark.asyncio
    async def test_bool_sequence_rejected(self, operations, state, gateway) -> None:
        await _seed(operations, _make_item("wp-1", sequence=1))
        with pytest.raises(ValidationError) as error_info:
            await operations.update_mission_item("wp-1", {"sequence": True})
        assert error_info.value.field == "sequence"
        assert state.get_item("wp-1").sequence == 1
        assert gateway.items[0].sequence == 1

    @pytest.mark.asyncio
    async def test_backend_failure_restores_touched_fields(
        self, operations, state, gateway
    ) -> None:
        await _seed(operations, _waypoint("wp-1", 1, speed=8.0))
        before = state.get_item("wp-1")
        gateway.fail_next("update_mission_item")
        with pytest.raises(BackendError):
            await operations.update_mission_item(
                "wp-1", {"name": "Renamed", "description": "Survey", "params": {"speed": 3.0}}
            )
        assert state.get_item("wp-1") == before
        assert state.error == "Backend unavailable"


class TestSelectMissionItem:
    """Tests for select_mission_item."""

    @pytest.mark.asyncio
    async def test_selects_and_syncs(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff())
        await operations.select_mission_item("to-1")
        assert state.selected_item.id == "to-1"
        assert gateway.calls[-1] == ("select_mission_item", {"item_id": "to-1"})

    @pytest.mark.asyncio
    async def test_clear_selection(self, operations, state) -> None:
        await operations.select_mission_item("to-1")
        await operations.select_mission_item(None)
        assert state.selected_item_id is None

    @pytest.mark.asyncio
    async def test_backend_failure_is_logged_not_raised(
        self, operations, state, gateway, caplog
    ) -> None:
        gateway.fail_next("select_mission_item", "Link down")
        with caplog.at_level(logging.WARNING, logger="mission_engine.mission.operations"):
            await operations.select_mission_item("to-1")
        assert state.selected_item_id == "to-1"
        assert state.error is None
        assert "Selection sync failed for to-1: Link down" in caplog.text


class TestMissionCommands:
    """Tests for load, save, list and delete."""

    @pytest.mark.asyncio
    async def test_load_mission_data(self, state) -> None:
        gateway = InMemoryBackendGateway([_takeoff(), _waypoint("wp-1", 1)])
        operations = MissionOperations(state, gateway, Settings())
        loaded = await operations.load_mission_data()
        assert [item.id for item in loaded] == ["to-1", "wp-1"]
        assert _ids(state) == ["to-1", "wp-1"]
        assert state.loading is False

    @pytest.mark.asyncio
    async def test_load_accepts_raw_payloads(self, operations, state, gateway) -> None:
        gateway.get_mission_data = AsyncMock(
            return_value=[
                {"id": "to-1", "type": "takeoff", "name": "Start", "params": {"alt": 20.0}}
            ]
        )
        await operations.load_mission_data()
        assert state.items[0].params.alt == 20.0

    @pytest.mark.asyncio
    async def test_loading_flag_set_during_fetch(self, operations, state, gateway) -> None:
        observed: list[bool] = []

        def record() -> list[MissionItem]:
            observed.append(state.loading)
            return []

        gateway.get_mission_data = AsyncMock(side_effect=record)
        await operations.load_mission_data()
        assert observed == [True]
        assert state.loading is False

    @pytest.mark.asyncio
    async def test_load_failure_sets_error(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff())
        gateway.fail_next("get_mission_data")
        with pytest.raises(BackendError):
            await operations.load_mission_data()
        assert _ids(state) == ["to-1"]
        assert state.loading is False
        assert state.error == "Backend unavailable"

    @pytest.mark.asyncio
    async def test_load_with_duplicate_ids_is_backend_failure(
        self, operations, state, gateway
    ) -> None:
        gateway.get_mission_data = AsyncMock(return_value=[_takeoff(), _takeoff()])
        with pytest.raises(BackendError, match="Duplicate mission item id"):
            await operations.load_mission_data()
        assert state.items == ()

    @pytest.mark.asyncio
    async def test_save_list_load_delete(self, operations, state, gateway) -> None:
        await _seed(operations, _takeoff(), _waypoint("wp-1", 1))
        mission_id = await operations.save_mission("Survey north field")

        summaries = await operations.get_mission_list()
        listed = [(summary.id, summary.name) for summary in summaries]
        assert listed == [(mission_id, "Survey north field")]

        await operations.remove_mission_item("wp-1")
        loaded = await operations.load_mission_by_id(mission_id)
        assert [item.id for item in loaded] == ["to-1", "wp-1"]
        assert _ids(state) == ["to-1", "wp-1"]

        await operations.delete_mission(mission_id)
        assert await operations.get_mission_list() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    async def test_save_rejects_bad_names(self, operations, gateway, name) -> None:
        with pytest.raises(ValidationError) as error_info:
            await operations.save_mission(name)
        assert error_info.value.field == "name"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_delete_missing_mission(self, operations, state) -> None:
        with pytest.raises(BackendError, match="not found"):
            await operations.delete_mission("ghost")
        assert state.error == "Mission ghost not found"

    @pytest.mark.asyncio
    async def test_unusable_mission_list_is_backend_failure(
        self, operations, state, gateway
    ) -> None:
        gateway.get_mission_list = AsyncMock(return_value=[{"id": "m-1"}])
        with pytest.raises(BackendError, match="Invalid MissionSummary") as error_info:
            await operations.get_mission_list()
        assert isinstance(error_info.value.__cause__, ValidationError)
        assert state.error.startswith("Invalid MissionSummary")

    @pytest.mark.asyncio
    async def test_clear_mission_error(self, operations, state, gateway) -> None:
        gateway.fail_next("get_mission_list")
        with pytest.raises(BackendError):
            await operations.get_mission_list()
        operations.clear_mission_error()
        assert state.error is None

    @pytest.mark.asyncio
    async def test_validate_current_mission(self, operations) -> None:
        await _seed(operations, _waypoint("wp-1", 1))
        result = operations.validate_current_mission()
        assert result.valid is False
        assert "Mission must start with a takeoff item" in result.errors


class SlowGateway(InMemoryBackendGateway):
    """Gateway that holds every add open and rejects ids starting with "bad"."""

    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def add_mission_item(self, item: MissionItem) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if item.id.startswith("bad"):
                raise RuntimeError(f"Rejected {item.id}")
            return await super().add_mission_item(item)
        finally:
            self.in_flight -= 1


class TestConcurrentMutations:
    """Tests for overlapping mutations."""

    @pytest.mark.asyncio
    async def test_rollback_of_one_add_keeps_the_other(self, state) -> None:
        gateway = SlowGateway(delay=0.01)
        operations = MissionOperations(state, gateway, Settings())
        results = await asyncio.gather(
            operations.add_mission_item(_make_item("bad-1")),
            operations.add_mission_item(_make_item("good-1")),
            return_exceptions=True,
        )
        assert isinstance(results[0], BackendError)
        assert _ids(state) == ["good-1"]
        assert gateway.max_in_flight == 2
        assert state.error == "Rejected bad-1"

    @pytest.mark.asyncio
    async def test_failed_rollback_is_logged_and_backend_error_propagates(
        self, gateway, caplog
    ) -> None:
        state = MissionState(capacity=2)
        operations = MissionOperations(state, gateway, Settings())
        await _seed(operations, _make_item("a"), _make_item("b"))

        async def slow_failure(item_id: str) -> None:
            await asyncio.sleep(0.01)
            raise RuntimeError("Link down")

        gateway.remove_mission_item = AsyncMock(side_effect=slow_failure)
        with caplog.at_level(logging.ERROR, logger="mission_engine.mission.operations"):
            results = await asyncio.gather(
                operations.remove_mission_item("a"),
                operations.add_mission_item(_make_item("c")),
                return_exceptions=True,
            )
        assert isinstance(results[0], BackendError)
        assert results[0].message == "Link down"
        assert "Rollback of remove a failed" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_rollback_flags_local_mission_out_of_sync(self, gateway) -> None:
        state = MissionState(capacity=2)
        operations = MissionOperations(state, gateway, Settings())
        await _seed(operations, _make_item("a"), _make_item("b"))

        async def slow_failure(item_id: str) -> None:
            await asyncio.sleep(0.01)
            raise RuntimeError("down")

        gateway.remove_mission_item = AsyncMock(side_effect=slow_failure)
        await asyncio.gather(
            operations.remove_mission_item("b"),
            operations.add_mission_item(_make_item("c")),
            return_exceptions=True,
        )
        # The backend kept b, the local mission could not take it back
        assert _ids(state) == ["a", "c"]
        assert [item.id for item in gateway.items] == ["a", "b", "c"]
        assert state.error.startswith("down")
        assert "out of sync with the backend" in state.error

    @pytest.mark.asyncio
    async def test_successful_rollback_keeps_plain_error(self, operations, state, gateway) -> None:
        await _seed(operations, _make_item("a"))
        gateway.fail_next("remove_mission_item", "down")
        with pytest.raises(BackendError):
            await operations.remove_mission_item("a")
        assert state.error == "down"

    @pytest.mark.asyncio
    async def test_serialized_mode_runs_one_mutation_at_a_time(self, state) -> None:
        gateway = SlowGateway(delay=0.01)
        operations = MissionOperations(state, gateway, Settings(serialize_mutations=True))
        await asyncio.gather(
            operations.add_mission_item(_make_item("good-1")),
            operations.add_mission_item(_make_item("good-2")),
        )
        assert gateway.max_in_flight == 1
        assert sorted(_ids(state)) == ["good-1", "good-2"]


class TestLifecycle:
    """Tests for the explicit init/teardown lifecycle."""

    @pytest.mark.asyncio
    async def test_load_on_start(self, state) -> None:
        gateway = InMemoryBackendGateway([_takeoff()])
        async with MissionOperations(state, gateway, Settings(load_on_start=True)) as operations:
            assert _ids(operations.state) == ["to-1"]

    @pytest.mark.asyncio
    async def test_no_load_by_default(self, state) -> None:
        gateway = InMemoryBackendGateway([_takeoff()])
        async with MissionOperations(state, gateway, Settings()):
            assert state.items == ()
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_shutdown_clears_subscribers_and_blocks_mutations(self, state, gateway) -> None:
        async with MissionOperations(state, gateway, Settings()) as operations:
            state.subscribe(lambda snapshot: None)
        assert state.subscriber_count == 0
        with pytest.raises(RuntimeError, match="shut down"):
            await operations.add_mission_item(_takeoff())

    @pytest.mark.asyncio
    async def test_create_mission_operations_uses_capacity(self, gateway) -> None:
        operations = create_mission_operations(gateway, Settings(mission_capacity=2))
        await _seed(operations, _make_item("wp-1"), _make_item("wp-2"))
        with pytest.raises(CapacityError):
            await operations.add_mission_item(_make_item("wp-3"))
