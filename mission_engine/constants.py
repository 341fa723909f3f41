"""Mission engine constants.

Safety bounds, sequence limits and collection capacities. Bounds are
inclusive unless the name says ``EXCLUSIVE``.
"""

# Geodesy
EARTH_RADIUS_METERS: float = 6_371_000.0

# Collection capacities
MAX_MISSION_ITEMS = 100
MAX_VALIDATION_ERRORS = 100
MAX_VALIDATION_WARNINGS = 50

# Coordinate bounds (degrees)
LATITUDE_MIN: float = -90.0
LATITUDE_MAX: float = 90.0
LONGITUDE_MIN: float = -180.0
LONGITUDE_MAX: float = 180.0

# Altitude bounds (meters above home)
ALTITUDE_MIN: float = 0.0
ALTITUDE_MAX: float = 500.0

# Motion bounds
SPEED_MIN_EXCLUSIVE: float = 0.1
SPEED_MAX: float = 30.0
HOLD_TIME_MIN: float = 0.0
HOLD_TIME_MAX: float = 300.0
ACCEPTANCE_RADIUS_MIN_EXCLUSIVE: float = 0.0
ACCEPTANCE_RADIUS_MAX: float = 100.0
PASS_RADIUS_MIN_EXCLUSIVE: float = 0.0
PASS_RADIUS_MAX: float = 50.0
YAW_ANGLE_MIN: float = -180.0
YAW_ANGLE_MAX: float = 180.0
MIN_PITCH_MIN: float = -90.0
MIN_PITCH_MAX: float = 90.0
ABORT_ALTITUDE_MIN_EXCLUSIVE: float = 0.0
ABORT_ALTITUDE_MAX: float = 500.0

# Text bounds (characters)
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_ACTION_LENGTH = 100

# Waypoint spacing (meters)
MIN_WAYPOINT_SPACING_METERS: float = 1.0
MAX_WAYPOINT_SPACING_METERS: float = 10_000.0

# Whole-sequence limits
MAX_ALTITUDE_CHANGE_METERS: float = 200.0
MAX_PATH_LENGTH_METERS: float = 50_000.0

# Factory defaults per item type (m/s)
DEFAULT_TAKEOFF_SPEED: float = 5.0
DEFAULT_LAND_SPEED: float = 3.0
DEFAULT_CRUISE_SPEED: float = 10.0
DEFAULT_LOITER_HOLD_TIME: float = 30.0
