"""
Display-order bookkeeping for sibling rows (categories, items, variants)

Indices are kept contiguous 0..n-1 per parent and recomputed after every
insert, move or delete.
"""

from datetime import datetime
from typing import List, Sequence, TypeVar

from sqlmodel import Session

T = TypeVar("T")


def sort_siblings(siblings: Sequence[T]) -> List[T]:
    """Stable order: display_order, then creation time"""
    return sorted(siblings, key=lambda row: (row.display_order, row.created_at or datetime.min))


def renumber(session: Session, siblings: Sequence[T]) -> List[T]:
    """Rewrite display_order as 0..n-1 following the current order"""
    ordered = sort_siblings(siblings)
    for index, row in enumerate(ordered):
        if row.display_order != index:
            row.display_order = index
            session.add(row)
    return ordered


def next_position(siblings: Sequence[T]) -> int:
    """Position for a row appended after its siblings"""
    return len(siblings)


def move(session: Session, siblings: Sequence[T], target: T, direction: str) -> bool:
    """
    Swap target with its neighbour in the given direction ("up" or "down").

    Returns False when the row is already first/last; the siblings are
    renumbered either way.
    """
    if direction not in ("up", "down"):
        raise ValueError(f"Unknown direction: {direction}")

    ordered = renumber(session, siblings)
    index = next(i for i, row in enumerate(ordered) if row is target)
    neighbour = index - 1 if direction == "up" else index + 1
    if neighbour < 0 or neighbour >= len(ordered):
        return False

    ordered[index], ordered[neighbour] = ordered[neighbour], ordered[index]
    for position, row in enumerate(ordered):
        if row.display_order != position:
            row.display_order = position
            session.add(row)
    return True
