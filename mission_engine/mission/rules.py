"""Safety bounds and structural rules for mission items and sequences.

Single-item checks raise ``ValidationError`` naming the offending field.
The whole-sequence check never raises: it runs every rule and reports all
problems together.
"""

import math
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from mission_engine.constants import (
    ABORT_ALTITUDE_MAX,
    ABORT_ALTITUDE_MIN_EXCLUSIVE,
    ACCEPTANCE_RADIUS_MAX,
    ACCEPTANCE_RADIUS_MIN_EXCLUSIVE,
    ALTITUDE_MAX,
    ALTITUDE_MIN,
    HOLD_TIME_MAX,
    HOLD_TIME_MIN,
    LATITUDE_MAX,
    LATITUDE_MIN,
    LONGITUDE_MAX,
    LONGITUDE_MIN,
    MAX_ACTION_LENGTH,
    MAX_ALTITUDE_CHANGE_METERS,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PATH_LENGTH_METERS,
    MAX_VALIDATION_ERRORS,
    MAX_VALIDATION_WARNINGS,
    MAX_WAYPOINT_SPACING_METERS,
    MIN_PITCH_MAX,
    MIN_PITCH_MIN,
    MIN_WAYPOINT_SPACING_METERS,
    PASS_RADIUS_MAX,
    PASS_RADIUS_MIN_EXCLUSIVE,
    SPEED_MAX,
    SPEED_MIN_EXCLUSIVE,
    YAW_ANGLE_MAX,
    YAW_ANGLE_MIN,
)
from mission_engine.exceptions.client_errors import CapacityError, ValidationError
from mission_engine.mission.models import (
    MissionItem,
    MissionItemType,
    SequenceValidationResult,
    WaypointParams,
)
from mission_engine.utils.bounded_collection import BoundedCollection
from mission_engine.utils.geo import calculate_distance, calculate_path_length


@dataclass(frozen=True)
class FieldBound:
    """Closed (or half-open) numeric range for one parameter."""

    label: str
    minimum: float
    maximum: float
    unit: str = ""
    minimum_exclusive: bool = False

    def contains(self, value: float) -> bool:
        """Return whether ``value`` lies inside the range."""
        above_minimum = value > self.minimum if self.minimum_exclusive else value >= self.minimum
        return above_minimum and value <= self.maximum

    def describe(self) -> str:
        """Return the range in interval notation, e.g. ``(0.1, 30] m/s``."""
        opening = "(" if self.minimum_exclusive else "["
        interval = f"{opening}{_format_number(self.minimum)}, {_format_number(self.maximum)}]"
        return f"{interval} {self.unit}".rstrip()


FIELD_BOUNDS: dict[str, FieldBound] = {
    "lat": FieldBound("latitude", LATITUDE_MIN, LATITUDE_MAX, "deg"),
    "lng": FieldBound("longitude", LONGITUDE_MIN, LONGITUDE_MAX, "deg"),
    "alt": FieldBound("altitude", ALTITUDE_MIN, ALTITUDE_MAX, "m"),
    "speed": FieldBound("speed", SPEED_MIN_EXCLUSIVE, SPEED_MAX, "m/s", minimum_exclusive=True),
    "hold_time": FieldBound("hold time", HOLD_TIME_MIN, HOLD_TIME_MAX, "s"),
    "acceptance_radius": FieldBound(
        "acceptance radius",
        ACCEPTANCE_RADIUS_MIN_EXCLUSIVE,
        ACCEPTANCE_RADIUS_MAX,
        "m",
        minimum_exclusive=True,
    ),
    "pass_radius": FieldBound(
        "pass radius", PASS_RADIUS_MIN_EXCLUSIVE, PASS_RADIUS_MAX, "m", minimum_exclusive=True
    ),
    "yaw_angle": FieldBound("yaw angle", YAW_ANGLE_MIN, YAW_ANGLE_MAX, "deg"),
    "min_pitch": FieldBound("minimum pitch", MIN_PITCH_MIN, MIN_PITCH_MAX, "deg"),
    "abort_alt": FieldBound(
        "abort altitude",
        ABORT_ALTITUDE_MIN_EXCLUSIVE,
        ABORT_ALTITUDE_MAX,
        "m",
        minimum_exclusive=True,
    ),
}


def _format_number(value: float) -> str:
    """Render a number without trailing zeros (210.0 -> "210")."""
    if not math.isfinite(value):
        return str(value)
    return f"{value:.4f}".rstrip("0").rstrip(".")


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def validate_bounded_field(field: str, value: Any) -> float:
    """Check one numeric parameter against the bounds table.

    Args:
        field: Parameter name, a key of ``FIELD_BOUNDS``.
        value: Supplied value.

    Returns:
        The value as a float.

    Raises:
        ValidationError: If the value is not a finite number inside the range.
    """
    bound = FIELD_BOUNDS[field]
    if not _is_number(value):
        raise ValidationError(
            f"Invalid {bound.label}: expected a number, got {type(value).__name__}",
            field=field,
            value=value,
            bound=bound.describe(),
        )
    if not math.isfinite(value):
        raise ValidationError(
            f"Invalid {bound.label}: {value} is not a finite number",
            field=field,
            value=value,
            bound=bound.describe(),
        )
    if not bound.contains(value):
        raise ValidationError(
            f"Invalid {bound.label}: {_format_number(value)} is outside {bound.describe()}",
            field=field,
            value=value,
            bound=bound.describe(),
        )
    return float(value)


def validate_latitude(value: Any) -> float:
    """Latitude must lie in [-90, 90] degrees."""
    return validate_bounded_field("lat", value)


def validate_longitude(value: Any) -> float:
    """Longitude must lie in [-180, 180] degrees."""
    return validate_bounded_field("lng", value)


def validate_altitude(value: Any) -> float:
    """Altitude must lie in [0, 500] meters."""
    return validate_bounded_field("alt", value)


def validate_speed(value: Any) -> float:
    """Speed must lie in (0.1, 30] m/s."""
    return validate_bounded_field("speed", value)


def validate_hold_time(value: Any) -> float:
    """Hold time must lie in [0, 300] seconds."""
    return validate_bounded_field("hold_time", value)


def validate_acceptance_radius(value: Any) -> float:
    """Acceptance radius must lie in (0, 100] meters."""
    return validate_bounded_field("acceptance_radius", value)


def validate_pass_radius(value: Any) -> float:
    """Pass radius must lie in (0, 50] meters."""
    return validate_bounded_field("pass_radius", value)


def validate_yaw_angle(value: Any) -> float:
    """Yaw angle must lie in [-180, 180] degrees."""
    return validate_bounded_field("yaw_angle", value)


def validate_min_pitch(value: Any) -> float:
    """Minimum pitch must lie in [-90, 90] degrees."""
    return validate_bounded_field("min_pitch", value)


def validate_abort_altitude(value: Any) -> float:
    """Abort altitude must lie in (0, 500] meters."""
    return validate_bounded_field("abort_alt", value)


def validate_waypoint_params(params: WaypointParams) -> None:
    """Validate every supplied parameter; absent ones are not an error.

    Args:
        params: Parameter bundle, possibly partial.

    Raises:
        ValidationError: Naming the first offending field.
    """
    for field, value in params.supplied_fields().items():
        if field in FIELD_BOUNDS:
            validate_bounded_field(field, value)
        elif field == "action":
            if not isinstance(value, str):
                raise ValidationError("Invalid action: expected text", field=field, value=value)
            if len(value) > MAX_ACTION_LENGTH:
                raise ValidationError(
                    f"Invalid action: longer than {MAX_ACTION_LENGTH} characters",
                    field=field,
                    value=value,
                    bound=f"<= {MAX_ACTION_LENGTH} chars",
                )
        elif field == "precision_land" and not isinstance(value, bool):
            raise ValidationError(
                "Invalid precision_land: expected true or false", field=field, value=value
            )


def _validate_text(field: str, value: Any, max_length: int, *, required: bool) -> None:
    if value is None and not required:
        return
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field}: expected text", field=field, value=value)
    if required and not value.strip():
        raise ValidationError(f"Mission item {field} must not be empty", field=field, value=value)
    if len(value) > max_length:
        raise ValidationError(
            f"Mission item {field} exceeds {max_length} characters ({len(value)})",
            field=field,
            bound=f"<= {max_length} chars",
        )


def _validate_type_rules(item: MissionItem) -> None:
    params = item.params
    if item.type == MissionItemType.TAKEOFF and (params.alt is None or params.alt <= 0):
        raise ValidationError(
            "Takeoff item requires an altitude greater than 0",
            field="alt",
            value=params.alt,
            bound="> 0 m",
        )
    if item.type == MissionItemType.LAND and params.alt is not None and params.alt != 0:
        raise ValidationError(
            "Land item altitude must be absent or exactly 0",
            field="alt",
            value=params.alt,
            bound="== 0 m",
        )
    if item.type == MissionItemType.LOITER and (params.hold_time is None or params.hold_time <= 0):
        raise ValidationError(
            "Loiter item requires a hold time greater than 0",
            field="hold_time",
            value=params.hold_time,
            bound="> 0 s",
        )


def validate_mission_item(item: MissionItem) -> None:
    """Validate a complete mission item.

    Checks identity and text fields, every supplied parameter, the
    position projection, then the rules specific to the item's type.

    Args:
        item: Item to validate.

    Raises:
        ValidationError: Naming the first offending field.
    """
    if not isinstance(item.id, str) or not item.id.strip():
        raise ValidationError(
            "Mission item id must be a non-empty string", field="id", value=item.id
        )
    _validate_text("name", item.name, MAX_NAME_LENGTH, required=True)
    _validate_text("description", item.description, MAX_DESCRIPTION_LENGTH, required=False)

    if not isinstance(item.type, MissionItemType):
        raise ValidationError(
            f"Unknown mission item type: {item.type!r}",
            field="type",
            value=item.type,
            bound=", ".join(MissionItemType),
        )

    if item.sequence is not None and (not _is_number(item.sequence) or item.sequence < 0):
        raise ValidationError(
            "Mission item sequence must be a non-negative integer",
            field="sequence",
            value=item.sequence,
        )

    validate_waypoint_params(item.params)

    if item.position is not None:
        for field in ("lat", "lng", "alt"):
            try:
                validate_bounded_field(field, getattr(item.position, field))
            except ValidationError as error:
                raise ValidationError(
                    f"Invalid position: {error.message}",
                    field=f"position.{field}",
                    value=getattr(item.position, field),
                    bound=FIELD_BOUNDS[field].describe(),
                ) from error

    _validate_type_rules(item)


def validate_waypoint_distance(item_a: MissionItem, item_b: MissionItem) -> float | None:
    """Check the spacing between two items.

    Args:
        item_a: First item.
        item_b: Second item.

    Returns:
        The distance in meters, or None when either item lacks coordinates.

    Raises:
        ValidationError: If the items are closer than 1 m or further than 10 km apart.
    """
    if not (item_a.params.has_coordinates and item_b.params.has_coordinates):
        return None

    distance = calculate_distance(
        item_a.params.lat,
        item_a.params.lng,
        item_b.params.lat,
        item_b.params.lng,
    )
    spacing = (
        f"[{_format_number(MIN_WAYPOINT_SPACING_METERS)}, "
        f"{_format_number(MAX_WAYPOINT_SPACING_METERS)}] m"
    )
    if distance < MIN_WAYPOINT_SPACING_METERS:
        raise ValidationError(
            f"Waypoints {item_a.id} and {item_b.id} are too close: {distance:.2f}m apart "
            f"(minimum {_format_number(MIN_WAYPOINT_SPACING_METERS)}m)",
            field="distance",
            value=round(distance, 2),
            bound=spacing,
        )
    if distance > MAX_WAYPOINT_SPACING_METERS:
        raise ValidationError(
            f"Waypoints {item_a.id} and {item_b.id} are too far apart: {distance:.0f}m "
            f"(maximum {_format_number(MAX_WAYPOINT_SPACING_METERS)}m)",
            field="distance",
            value=round(distance, 2),
            bound=spacing,
        )
    return distance


class _MessageCollector:
    """Bounded message list that counts what it had to reject."""

    def __init__(self, capacity: int, label: str) -> None:
        self._messages: BoundedCollection[str] = BoundedCollection(capacity, label=label)
        self.omitted = 0

    def add(self, message: str) -> None:
        try:
            self._messages.append(message)
        except CapacityError:
            self.omitted += 1

    def to_list(self) -> list[str]:
        return self._messages.to_list()

    def __bool__(self) -> bool:
        return bool(self._messages) or self.omitted > 0


def _check_item_bounds(number: int, item: MissionItem, errors: _MessageCollector) -> None:
    label = f"Item {number} ({item.name})"
    params = item.params

    if params.alt is not None:
        if not _is_number(params.alt) or not math.isfinite(params.alt):
            errors.add(f"{label} has invalid altitude: {params.alt}")
        elif params.alt < ALTITUDE_MIN:
            errors.add(f"{label} has negative altitude")
        elif params.alt > ALTITUDE_MAX:
            errors.add(
                f"{label} exceeds maximum altitude of {_format_number(ALTITUDE_MAX)}m: "
                f"{_format_number(params.alt)}"
            )

    for field in ("lat", "lng"):
        value = getattr(params, field)
        if value is None:
            continue
        bound = FIELD_BOUNDS[field]
        if not _is_number(value) or not math.isfinite(value) or not bound.contains(value):
            errors.add(f"{label} has invalid {bound.label}: {value}")


def _collect_path_points(items: Sequence[MissionItem]) -> list[tuple[float, float]]:
    return [
        (item.params.lat, item.params.lng)
        for item in items
        if item.params.has_coordinates
        and math.isfinite(item.params.lat)
        and math.isfinite(item.params.lng)
    ]


def validate_mission_sequence(items: Sequence[MissionItem]) -> SequenceValidationResult:
    """Validate a whole mission without stopping at the first problem.

    Runs, in order: empty check, takeoff-first, land-last, per-item
    coordinate and altitude sanity, consecutive altitude change, total path
    length, and duplicate sequence numbers. Pure: identical input always
    yields an identical result.

    Args:
        items: Mission items in flight order.

    Returns:
        Result with every error and warning found.
    """
    errors = _MessageCollector(MAX_VALIDATION_ERRORS, "validation errors")
    warnings = _MessageCollector(MAX_VALIDATION_WARNINGS, "validation warnings")

    if not items:
        warnings.add("Mission is empty")
        return SequenceValidationResult(valid=True, warnings=warnings.to_list())

    if items[0].type != MissionItemType.TAKEOFF:
        errors.add("Mission must start with a takeoff item")

    if items[-1].type != MissionItemType.LAND:
        warnings.add("Mission should end with a landing item")

    for number, item in enumerate(items, start=1):
        _check_item_bounds(number, item, errors)

    for number in range(1, len(items)):
        previous_altitude = items[number - 1].params.alt
        current_altitude = items[number].params.alt
        if previous_altitude is None or current_altitude is None:
            continue
        altitude_change = abs(current_altitude - previous_altitude)
        if altitude_change > MAX_ALTITUDE_CHANGE_METERS:
            warnings.add(
                f"Large altitude change ({_format_number(altitude_change)}m) "
                f"between items {number} and {number + 1}"
            )

    path_length = calculate_path_length(_collect_path_points(items))
    if path_length > MAX_PATH_LENGTH_METERS:
        errors.add(
            f"Mission path length {path_length:.0f}m exceeds maximum of "
            f"{_format_number(MAX_PATH_LENGTH_METERS)}m"
        )

    positions_by_sequence: dict[int, list[int]] = defaultdict(list)
    for number, item in enumerate(items, start=1):
        if item.sequence is not None:
            positions_by_sequence[item.sequence].append(number)
    for sequence, numbers in sorted(positions_by_sequence.items()):
        if len(numbers) > 1:
            errors.add(
                f"Duplicate sequence number {sequence} on items {', '.join(map(str, numbers))}"
            )

    return SequenceValidationResult(
        valid=not errors,
        errors=errors.to_list(),
        warnings=warnings.to_list(),
        omitted_errors=errors.omitted,
        omitted_warnings=warnings.omitted,
    )
