"""Fixed-capacity ordered container.

Insertion past capacity raises ``CapacityError``; nothing is ever dropped
or truncated to make room.
"""

from collections.abc import Callable, Iterable, Iterator

from mission_engine.exceptions.client_errors import CapacityError


class BoundedCollection[T]:
    """Ordered collection with a capacity checked on every insertion.

    Attributes:
        capacity: Maximum number of elements the collection can hold.
    """

    def __init__(
        self,
        capacity: int,
        items: Iterable[T] = (),
        *,
        label: str = "collection",
    ) -> None:
        """Initialize the collection.

        Args:
            capacity: Maximum number of elements; must be positive.
            items: Initial elements, subject to the same capacity check.
            label: Name used in error messages (e.g. "mission items").

        Raises:
            ValueError: If capacity is not positive.
            CapacityError: If the initial items exceed capacity.
        """
        if capacity <= 0:
            raise ValueError(f"BoundedCollection capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._label = label
        self._items: list[T] = []
        self.extend(items)

    @property
    def capacity(self) -> int:
        """Return the maximum number of elements."""
        return self._capacity

    @property
    def remaining(self) -> int:
        """Return how many more elements fit."""
        return self._capacity - len(self._items)

    def is_full(self) -> bool:
        """Return whether another insertion would be rejected."""
        return len(self._items) >= self._capacity

    def append(self, item: T) -> None:
        """Append an element to the end.

        Raises:
            CapacityError: If the collection is full.
        """
        self._require_room(1)
        self._items.append(item)

    def insert(self, index: int, item: T) -> None:
        """Insert an element before ``index`` (list semantics, clamped).

        Raises:
            CapacityError: If the collection is full.
        """
        self._require_room(1)
        self._items.insert(index, item)

    def extend(self, items: Iterable[T]) -> None:
        """Append several elements, all or nothing.

        Raises:
            CapacityError: If the elements do not all fit.
        """
        incoming = list(items)
        self._require_room(len(incoming))
        self._items.extend(incoming)

    def pop(self, index: int = -1) -> T:
        """Remove and return the element at ``index``."""
        return self._items.pop(index)

    def remove_where(self, predicate: Callable[[T], bool]) -> list[T]:
        """Remove every element matching ``predicate``.

        Returns:
            The removed elements, in their original order.
        """
        removed = [item for item in self._items if predicate(item)]
        if removed:
            self._items = [item for item in self._items if not predicate(item)]
        return removed

    def replace_at(self, index: int, item: T) -> T:
        """Swap the element at ``index`` for ``item``.

        Replacement does not change the size, so no capacity check applies.

        Returns:
            The element that was replaced.
        """
        previous = self._items[index]
        self._items[index] = item
        return previous

    def index_where(self, predicate: Callable[[T], bool]) -> int | None:
        """Return the index of the first matching element, or None."""
        for index, item in enumerate(self._items):
            if predicate(item):
                return index
        return None

    def find(self, predicate: Callable[[T], bool]) -> T | None:
        """Return the first matching element, or None."""
        index = self.index_where(predicate)
        return None if index is None else self._items[index]

    def clear(self) -> None:
        """Remove every element."""
        self._items.clear()

    def to_tuple(self) -> tuple[T, ...]:
        """Return an immutable copy of the elements."""
        return tuple(self._items)

    def to_list(self) -> list[T]:
        """Return a mutable copy of the elements."""
        return list(self._items)

    def _require_room(self, count: int) -> None:
        if len(self._items) + count > self._capacity:
            raise CapacityError(
                f"Cannot add {count} element(s) to {self._label}: "
                f"{len(self._items)} of {self._capacity} slots used",
                capacity=self._capacity,
                context={"size": len(self._items), "requested": count},
            )

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(tuple(self._items))

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return (
            f"BoundedCollection(label={self._label!r}, size={len(self._items)}, "
            f"capacity={self._capacity})"
        )
