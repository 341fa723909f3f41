"""Mission domain models.

Models enforce structure and types only. Numeric safety bounds live in
``mission_engine.mission.rules`` so an out-of-range item can still be built
and then rejected with a field-naming error before it reaches mission state.
"""

import time
from collections.abc import Mapping
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic import ValidationError as PydanticValidationError

from mission_engine.constants import (
    DEFAULT_CRUISE_SPEED,
    DEFAULT_LAND_SPEED,
    DEFAULT_LOITER_HOLD_TIME,
    DEFAULT_TAKEOFF_SPEED,
)
from mission_engine.exceptions.client_errors import ValidationError

COORDINATE_FIELDS: frozenset[str] = frozenset({"lat", "lng", "alt"})


class MissionItemType(StrEnum):
    """Kinds of flight-path entries."""

    TAKEOFF = "takeoff"
    WAYPOINT = "waypoint"
    LOITER = "loiter"
    LAND = "land"


class Position(BaseModel):
    """Latitude/longitude/altitude triple."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    alt: float


class WaypointParams(BaseModel):
    """Optional navigation parameters of a mission item.

    ``None`` means "not supplied". A supplied value that is out of range or
    not finite is still representable here; rules reject it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    lat: float | None = None
    lng: float | None = None
    alt: float | None = None
    speed: float | None = None
    action: str | None = None
    hold_time: float | None = None
    acceptance_radius: float | None = None
    pass_radius: float | None = None
    yaw_angle: float | None = None
    min_pitch: float | None = None
    abort_alt: float | None = None
    precision_land: bool | None = None

    def supplied_fields(self) -> dict[str, Any]:
        """Return the fields that carry a value."""
        return {name: value for name, value in self if value is not None}

    @property
    def has_coordinates(self) -> bool:
        """Return whether both latitude and longitude are present."""
        return self.lat is not None and self.lng is not None

    def merged_with(self, updates: "WaypointParams") -> "WaypointParams":
        """Shallow-merge the supplied fields of ``updates`` over this bundle."""
        return self.model_copy(update=updates.supplied_fields())

    def to_position(self) -> Position | None:
        """Return the coordinate triple when all three are present."""
        if self.lat is None or self.lng is None or self.alt is None:
            return None
        return Position(lat=self.lat, lng=self.lng, alt=self.alt)


class MissionItem(BaseModel):
    """One flight-path entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: MissionItemType
    name: str
    description: str | None = None
    sequence: StrictInt | None = None
    params: WaypointParams = Field(default_factory=WaypointParams)
    position: Position | None = None


class MissionSnapshot(BaseModel):
    """Immutable view of mission state handed to subscribers."""

    model_config = ConfigDict(frozen=True)

    items: tuple[MissionItem, ...] = ()
    selected_item_id: str | None = None
    loading: bool = False
    error: str | None = None
    last_updated: float = 0.0

    @property
    def selected_item(self) -> MissionItem | None:
        """Resolve the selection; a stale id resolves to None."""
        if self.selected_item_id is None:
            return None
        return next((item for item in self.items if item.id == self.selected_item_id), None)


class SequenceValidationResult(BaseModel):
    """Outcome of a whole-mission validation pass.

    Attributes:
        valid: True when no error was produced.
        errors: Blocking problems, in check order.
        warnings: Non-blocking advisories, in check order.
        omitted_errors: Errors that did not fit the bounded error list.
        omitted_warnings: Warnings that did not fit the bounded warning list.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    omitted_errors: int = Field(default=0, ge=0)
    omitted_warnings: int = Field(default=0, ge=0)


class MissionSummary(BaseModel):
    """Saved-mission listing entry."""

    id: str
    name: str
    created_at: str
    updated_at: str


class SavedMission(BaseModel):
    """A named mission stored by the backend."""

    id: str
    name: str
    items: list[MissionItem] = Field(default_factory=list)


def parse_model[ModelT: BaseModel](model_class: type[ModelT], data: Any) -> ModelT:
    """Build ``model_class`` from ``data``, raising the engine's ValidationError.

    Args:
        model_class: Pydantic model to construct.
        data: A model instance (returned as is) or a mapping of fields.

    Returns:
        The validated model instance.

    Raises:
        ValidationError: Naming the first offending field.
    """
    if isinstance(data, model_class):
        return data
    try:
        return model_class.model_validate(data)
    except PydanticValidationError as error:
        first = error.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(
            f"Invalid {model_class.__name__}: {field}: {first['msg']}",
            field=field,
            value=first.get("input") if isinstance(first.get("input"), str | int | float) else None,
            context={"error_count": error.error_count()},
        ) from error


def create_mission_item(
    item_type: MissionItemType | str,
    position: Position | Mapping[str, float],
    name: str | None = None,
) -> MissionItem:
    """Create a mission item filled with safe defaults for its type.

    Args:
        item_type: Kind of item to create.
        position: Where the item is placed.
        name: Display name; defaults to "<Type> <timestamp>".

    Returns:
        A new mission item with a unique id.
    """
    kind = MissionItemType(item_type)
    where = parse_model(Position, position)
    created_ms = int(time.time() * 1000)
    item_id = f"{kind}-{created_ms}-{uuid4().hex[:9]}"

    altitude = 0.0 if kind == MissionItemType.LAND else where.alt
    speed = {
        MissionItemType.TAKEOFF: DEFAULT_TAKEOFF_SPEED,
        MissionItemType.LAND: DEFAULT_LAND_SPEED,
    }.get(kind, DEFAULT_CRUISE_SPEED)

    params: dict[str, Any] = {"lat": where.lat, "lng": where.lng, "alt": altitude, "speed": speed}
    if kind == MissionItemType.LOITER:
        params["action"] = "loiter"
        params["hold_time"] = DEFAULT_LOITER_HOLD_TIME

    return MissionItem(
        id=item_id,
        type=kind,
        name=name or f"{kind.value.capitalize()} {created_ms}",
        params=WaypointParams(**params),
        position=Position(lat=where.lat, lng=where.lng, alt=altitude),
    )
