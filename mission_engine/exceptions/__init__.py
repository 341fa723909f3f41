"""Mission engine exception hierarchy.

Architecture:
    MissionEngineError (base)
    ├── ClientError (caller-local, raised before any mutation)
    │   ├── ValidationError
    │   │   └── CapacityError
    │   └── NotFoundError
    └── ServerError
        ├── BackendError (raised after optimistic apply + rollback)
        └── ConfigurationError

Usage:
    from mission_engine.exceptions import NotFoundError

    def require_item(state: MissionState, item_id: str) -> MissionItem:
        item = state.get_item(item_id)
        if item is None:
            raise NotFoundError(
                f"Mission item {item_id} not found",
                resource_type="MissionItem",
                resource_id=item_id,
            )
        return item
"""

from mission_engine.exceptions.base import MissionEngineError
from mission_engine.exceptions.client_errors import (
    CapacityError,
    ClientError,
    NotFoundError,
    ValidationError,
)
from mission_engine.exceptions.server_errors import (
    BackendError,
    ConfigurationError,
    ServerError,
)

__all__ = [
    "BackendError",
    "CapacityError",
    "ClientError",
    "ConfigurationError",
    "MissionEngineError",
    "NotFoundError",
    "ServerError",
    "ValidationError",
]
