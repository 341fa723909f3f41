"""Optimistic mutation transactions.

A transaction pairs a forward mutation with its inverse, both built before
anything is applied. Inverses address items by id rather than by index so
they stay correct when other mutations interleave.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mission_engine.mission.models import MissionItem
    from mission_engine.mission.state import MissionState

Mutation = Callable[["MissionState"], None]


@dataclass(frozen=True)
class MutationTransaction:
    """Forward/inverse pair for one optimistic mutation.

    Attributes:
        description: Short human-readable summary for logs.
        forward: Applies the change to mission state.
        inverse: Undoes the change; None when the change is not reversible.
    """

    description: str
    forward: Mutation
    inverse: Mutation | None = None

    @property
    def reversible(self) -> bool:
        """Return whether the transaction can be rolled back."""
        return self.inverse is not None

    def apply(self, state: MissionState) -> None:
        """Run the forward mutation as a single published change."""
        with state.batch():
            self.forward(state)

    def rollback(self, state: MissionState) -> bool:
        """Replay the inverse mutation.

        Returns:
            True if an inverse was replayed.
        """
        if self.inverse is None:
            return False
        with state.batch():
            self.inverse(state)
        return True


def build_add_transaction(item: MissionItem) -> MutationTransaction:
    """Append ``item``; the inverse removes it by id."""

    def forward(state: MissionState) -> None:
        state.append_item(item)

    def inverse(state: MissionState) -> None:
        state.remove_item(item.id)

    return MutationTransaction(f"add {item.id}", forward, inverse)


def build_remove_transaction(item: MissionItem, *, clear_selection: bool) -> MutationTransaction:
    """Remove ``item``; the inverse re-appends the captured item.

    The original position is not restored. The selection, if it was
    cleared, is not restored either.
    """

    def forward(state: MissionState) -> None:
        state.remove_item(item.id)
        if clear_selection and state.selected_item_id == item.id:
            state.set_selected_item_id(None)

    def inverse(state: MissionState) -> None:
        if not state.contains(item.id):
            state.append_item(item)

    return MutationTransaction(f"remove {item.id}", forward, inverse)


def build_reorder_transaction(
    item_id: str,
    *,
    from_index: int,
    to_index: int,
) -> MutationTransaction:
    """Move ``item_id`` to ``to_index``; the inverse moves it back to ``from_index``."""

    def forward(state: MissionState) -> None:
        state.move_item(item_id, to_index)

    def inverse(state: MissionState) -> None:
        state.move_item(item_id, from_index)

    return MutationTransaction(f"reorder {item_id} {from_index}->{to_index}", forward, inverse)


def build_update_transaction(
    before: MissionItem,
    after: MissionItem,
    *,
    item_fields: Iterable[str] = (),
    param_fields: Iterable[str] = (),
) -> MutationTransaction:
    """Replace ``before`` with ``after``; the inverse restores only the touched fields.

    Restoring just the touched fields, onto whatever the item looks like at
    rollback time, keeps a concurrent update to other fields intact.

    Args:
        before: Item as captured before the update.
        after: Item with the update applied.
        item_fields: Top-level fields the update changed (e.g. "name", "position").
        param_fields: Parameter fields the update changed (e.g. "lat", "speed").
    """
    touched_items = tuple(item_fields)
    previous_params = {name: getattr(before.params, name) for name in param_fields}

    def forward(state: MissionState) -> None:
        state.replace_item(after)

    def inverse(state: MissionState) -> None:
        current = state.get_item(before.id)
        if current is None:
            return
        changes = {name: getattr(before, name) for name in touched_items}
        if previous_params:
            changes["params"] = current.params.model_copy(update=previous_params)
        state.replace_item(current.model_copy(update=changes))

    return MutationTransaction(f"update {before.id}", forward, inverse)
