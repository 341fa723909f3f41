"""Observable mission state.

``MissionState`` is the single shared mutable resource of the engine. UI
collaborators read it and subscribe to it; only ``MissionOperations``
calls the write methods.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager

from mission_engine.constants import MAX_MISSION_ITEMS
from mission_engine.exceptions.client_errors import ValidationError
from mission_engine.mission.models import MissionItem, MissionSnapshot
from mission_engine.utils.bounded_collection import BoundedCollection

logger = logging.getLogger(__name__)

Subscriber = Callable[[MissionSnapshot], None]


class MissionState:
    """Holder of mission items, selection, loading flag and error message.

    Every write publishes a ``MissionSnapshot`` to subscribers. Writes made
    inside ``batch()`` publish once, when the batch closes, so subscribers
    never see a half-applied mutation.
    """

    def __init__(self, capacity: int = MAX_MISSION_ITEMS) -> None:
        """Initialize empty mission state.

        Args:
            capacity: Maximum number of mission items.
        """
        self._items: BoundedCollection[MissionItem] = BoundedCollection(
            capacity, label="mission items"
        )
        self._selected_item_id: str | None = None
        self._loading = False
        self._error: str | None = None
        self._last_updated = 0.0
        self._subscribers: dict[int, Subscriber] = {}
        self._next_subscriber_token = 0
        self._batch_depth = 0
        self._pending_notification = False

    # Read projections

    @property
    def capacity(self) -> int:
        """Return the maximum number of items."""
        return self._items.capacity

    @property
    def items(self) -> tuple[MissionItem, ...]:
        """Return the ordered mission items."""
        return self._items.to_tuple()

    @property
    def selected_item_id(self) -> str | None:
        """Return the raw selection, which may be stale."""
        return self._selected_item_id

    @property
    def selected_item(self) -> MissionItem | None:
        """Return the selected item; a stale selection resolves to None."""
        if self._selected_item_id is None:
            return None
        return self.get_item(self._selected_item_id)

    @property
    def loading(self) -> bool:
        """Return whether a backend fetch is outstanding."""
        return self._loading

    @property
    def error(self) -> str | None:
        """Return the last backend error message, if any."""
        return self._error

    @property
    def last_updated(self) -> float:
        """Return the monotonic time of the last committed mutation."""
        return self._last_updated

    def is_full(self) -> bool:
        """Return whether the mission is at capacity."""
        return self._items.is_full()

    def get_item(self, item_id: str) -> MissionItem | None:
        """Return the item with ``item_id``, or None."""
        return self._items.find(lambda item: item.id == item_id)

    def index_of(self, item_id: str) -> int | None:
        """Return the position of ``item_id``, or None."""
        return self._items.index_where(lambda item: item.id == item_id)

    def contains(self, item_id: str) -> bool:
        """Return whether an item with ``item_id`` exists."""
        return self.index_of(item_id) is not None

    def snapshot(self) -> MissionSnapshot:
        """Return an immutable copy of the whole state."""
        return MissionSnapshot(
            items=self._items.to_tuple(),
            selected_item_id=self._selected_item_id,
            loading=self._loading,
            error=self._error,
            last_updated=self._last_updated,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for snapshots.

        The callback is invoked immediately with the current snapshot, then
        after every change.

        Args:
            callback: Receives each new snapshot.

        Returns:
            A function that removes the subscription.
        """
        token = self._next_subscriber_token
        self._next_subscriber_token += 1
        self._subscribers[token] = callback
        callback(self.snapshot())

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        """Return the number of active subscriptions."""
        return len(self._subscribers)

    def __len__(self) -> int:
        return len(self._items)

    # Writes (MissionOperations only)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Defer notifications until the outermost batch closes."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending_notification:
                self._pending_notification = False
                self._publish()

    def append_item(self, item: MissionItem) -> None:
        """Append ``item``; raises CapacityError when full."""
        self._items.append(item)
        self._notify()

    def remove_item(self, item_id: str) -> MissionItem | None:
        """Remove the item with ``item_id``.

        Returns:
            The removed item, or None if it was not present.
        """
        removed = self._items.remove_where(lambda item: item.id == item_id)
        if not removed:
            return None
        self._notify()
        return removed[0]

    def move_item(self, item_id: str, new_index: int) -> int | None:
        """Splice the item out and back in at ``new_index`` (clamped to the end).

        Returns:
            The index the item was moved from, or None if it was not present.
        """
        current_index = self.index_of(item_id)
        if current_index is None:
            return None
        moved = self._items.pop(current_index)
        self._items.insert(min(new_index, len(self._items)), moved)
        self._notify()
        return current_index

    def replace_item(self, item: MissionItem) -> MissionItem | None:
        """Swap in ``item`` for the stored item with the same id.

        Returns:
            The previous item, or None if no item has that id.
        """
        index = self.index_of(item.id)
        if index is None:
            return None
        previous = self._items.replace_at(index, item)
        self._notify()
        return previous

    def replace_items(self, items: Iterable[MissionItem]) -> None:
        """Replace every item at once.

        Raises:
            CapacityError: If there are more items than capacity.
            ValidationError: If two items share an id.
        """
        incoming: BoundedCollection[MissionItem] = BoundedCollection(
            self._items.capacity, items, label="mission items"
        )
        seen: set[str] = set()
        for item in incoming:
            if item.id in seen:
                raise ValidationError(
                    f"Duplicate mission item id {item.id}", field="id", value=item.id
                )
            seen.add(item.id)
        self._items = incoming
        self._notify()

    def set_selected_item_id(self, item_id: str | None) -> None:
        """Select ``item_id``, or clear the selection with None."""
        self._selected_item_id = item_id
        self._notify()

    def set_loading(self, loading: bool) -> None:
        """Set the loading flag."""
        self._loading = loading
        self._notify()

    def set_error(self, message: str | None) -> None:
        """Set or clear the shared error message."""
        self._error = message
        self._notify()

    def touch(self) -> None:
        """Refresh ``last_updated`` after a committed mutation."""
        self._last_updated = time.monotonic()
        self._notify()

    def clear_subscribers(self) -> None:
        """Drop every subscription."""
        self._subscribers.clear()

    def _notify(self) -> None:
        if self._batch_depth > 0:
            self._pending_notification = True
            return
        self._publish()

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers.values()):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Mission state subscriber failed")
