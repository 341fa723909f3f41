"""Great-circle geometry helpers."""

import math

from mission_engine.constants import EARTH_RADIUS_METERS

_DEGREES_TO_RADIANS: float = math.pi / 180.0


def calculate_distance(
    latitude_1: float,
    longitude_1: float,
    latitude_2: float,
    longitude_2: float,
) -> float:
    """Compute the Haversine distance between two GPS coordinates.

    No bounds checking is done on the inputs; callers validate coordinates
    first.

    Args:
        latitude_1: First point latitude in degrees.
        longitude_1: First point longitude in degrees.
        latitude_2: Second point latitude in degrees.
        longitude_2: Second point longitude in degrees.

    Returns:
        Distance between the two points in meters.
    """
    if latitude_1 == latitude_2 and longitude_1 == longitude_2:
        return 0.0

    delta_latitude = (latitude_2 - latitude_1) * _DEGREES_TO_RADIANS
    delta_longitude = (longitude_2 - longitude_1) * _DEGREES_TO_RADIANS

    latitude_1_radians = latitude_1 * _DEGREES_TO_RADIANS
    latitude_2_radians = latitude_2 * _DEGREES_TO_RADIANS

    haversine = (
        math.sin(delta_latitude / 2.0) ** 2
        + math.cos(latitude_1_radians)
        * math.cos(latitude_2_radians)
        * math.sin(delta_longitude / 2.0) ** 2
    )
    # Rounding can push the term just outside [0, 1] near antipodal points
    haversine = min(1.0, max(0.0, haversine))
    angular_distance = 2.0 * math.atan2(math.sqrt(haversine), math.sqrt(1.0 - haversine))

    return EARTH_RADIUS_METERS * angular_distance


def calculate_path_length(points: list[tuple[float, float]]) -> float:
    """Sum the great-circle distances between consecutive points.

    Args:
        points: Ordered ``(latitude, longitude)`` pairs.

    Returns:
        Total path length in meters; 0 for fewer than two points.
    """
    return sum(
        calculate_distance(start[0], start[1], end[0], end[1])
        for start, end in zip(points, points[1:])
    )
