"""
Diff detection for sync engine.

Compares the target collection's items against the union of the source
collections to determine which items must be added or removed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ..steam.models import Item


class Direction(Enum):
    """Direction of a membership change on the target collection."""

    # In the sources but not in the target - add to target
    ADD = "add"

    # In the target but not in any source - remove from target
    REMOVE = "remove"


@dataclass(frozen=True)
class ItemDiff:
    """
    A single membership change.

    Attributes:
        item: The item whose membership differs
        direction: Whether the item must be added to or removed from the target
    """
    item: Item
    direction: Direction

    @property
    def is_add(self) -> bool:
        return self.direction is Direction.ADD

    @property
    def is_remove(self) -> bool:
        return self.direction is Direction.REMOVE

    def __repr__(self) -> str:
        return f"ItemDiff({self.direction.name}, {self.item.id})"


def _missing_from(items: Iterable[Item], others: Iterable[Item], direction: Direction) -> list[ItemDiff]:
    """
    Return entries for items whose ID does not occur in ``others``.

    Order follows ``items``.
    """
    other_ids = {other.id for other in others}
    return [ItemDiff(item=item, direction=direction) for item in items if item.id not in other_ids]


def compute_diff(
    target_items: Iterable[Item],
    source_items: Iterable[Item],
) -> list[ItemDiff]:
    """
    Compute the membership difference between target and sources.

    Presence is decided by item ID only; sort order and kind are ignored.
    Two inputs with the same set of IDs always yield an empty diff.

    Rules:
    - In source, not in target → ADD
    - In target, not in source → REMOVE

    Args:
        target_items: Current items of the target collection
        source_items: Union of the items of all source collections

    Returns:
        ADD entries (in source order) followed by REMOVE entries (in target order)
    """
    target_items = list(target_items)
    source_items = list(source_items)

    return (
        _missing_from(source_items, target_items, Direction.ADD)
        + _missing_from(target_items, source_items, Direction.REMOVE)
    )
