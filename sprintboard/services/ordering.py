"""
Column ordering algorithm.

Works on plain snapshots of the rows involved in a move and returns the
minimal set of position writes needed to reach a dense, strictly increasing
left-to-right numbering. Nothing in this module touches the database.
"""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


class Positioned(Protocol):
    id: uuid.UUID
    order_index: int


class PositionedTask(Positioned, Protocol):
    sprint_id: uuid.UUID


@dataclass(frozen=True)
class Placement:
    """Target position of one row after a move."""

    id: uuid.UUID
    order_index: int
    sprint_id: uuid.UUID | None = None


def display_order(items: Sequence[Positioned]) -> list[Positioned]:
    """
    Sort by order_index. The sort is stable, so rows sharing an index keep
    the order they arrived in (the store returns them by creation time).
    """
    return sorted(items, key=lambda item: item.order_index)


def next_order_index(items: Sequence[Positioned]) -> int:
    """Index that appends after every item of a column."""
    if not items:
        return 0
    return max(item.order_index for item in items) + 1


def position_of(items: Sequence[Positioned], item_id: uuid.UUID) -> int:
    for position, item in enumerate(items):
        if item.id == item_id:
            return position
    raise KeyError(item_id)


def reorder(items: Sequence[Positioned], item_id: uuid.UUID, target_index: int) -> list[Positioned]:
    """Return items with item_id removed and reinserted at target_index."""
    reordered = list(items)
    moved = reordered.pop(position_of(reordered, item_id))
    reordered.insert(min(target_index, len(reordered)), moved)
    return reordered


def renumber(items: Sequence[Positioned]) -> list[Placement]:
    """Dense 0..n-1 numbering; only rows whose index changes are returned."""
    return [
        Placement(id=item.id, order_index=position)
        for position, item in enumerate(items)
        if item.order_index != position
    ]


def _renumber_column(items: Sequence[PositionedTask], sprint_id: uuid.UUID) -> list[Placement]:
    return [
        Placement(id=item.id, order_index=position, sprint_id=sprint_id)
        for position, item in enumerate(items)
        if item.order_index != position or item.sprint_id != sprint_id
    ]


def plan_move(
    source: Sequence[PositionedTask],
    target: Sequence[PositionedTask] | None,
    *,
    task_id: uuid.UUID,
    source_sprint_id: uuid.UUID,
    target_sprint_id: uuid.UUID,
    target_index: int,
) -> list[Placement]:
    """
    Plan the writes for moving task_id to target_index of target_sprint_id.

    source and target must be the visible columns in display order; target is
    ignored for an intra-column move. Returns an empty list when the task
    already sits at the requested position.
    """
    if source_sprint_id == target_sprint_id:
        if position_of(source, task_id) == target_index:
            return []
        return _renumber_column(reorder(source, task_id, target_index), source_sprint_id)

    remaining = list(source)
    moved = remaining.pop(position_of(remaining, task_id))
    destination = list(target or [])
    destination.insert(target_index, moved)

    # The moved task always changes sprint, so it is always written.
    return _renumber_column(destination, target_sprint_id) + _renumber_column(
        remaining, source_sprint_id
    )


def is_strictly_ordered(items: Sequence[Positioned]) -> bool:
    """True when the column's indices are unique and strictly increasing."""
    indices = [item.order_index for item in display_order(items)]
    return all(a < b for a, b in zip(indices, indices[1:]))
