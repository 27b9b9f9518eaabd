"""Pure list transforms for card ordering.

Two strategies exist side by side: the dashboard grid moves a card and
shifts everything in between, while the goals grid exchanges the ``order``
values of the two cards involved. Neither function mutates its input.
"""

from __future__ import annotations

from typing import Sequence

from ..errors import LayoutError
from ..schemas import CardLayout


def sort_by_order(layouts: Sequence[CardLayout]) -> list[CardLayout]:
    """Stable sort by ``order``; ties keep their list position."""
    return sorted(layouts, key=lambda card: card.order)


def renumber(layouts: Sequence[CardLayout]) -> list[CardLayout]:
    """Assign orders 0..n-1 following the list position."""
    return [card.model_copy(update={"order": index}) for index, card in enumerate(layouts)]


def next_order(layouts: Sequence[CardLayout]) -> int:
    if not layouts:
        return 0
    return max(card.order for card in layouts) + 1


def reorder(layouts: Sequence[CardLayout], from_index: int, to_index: int) -> list[CardLayout]:
    """Move the card at ``from_index`` to ``to_index`` and shift the rest.

    Indices refer to display order (the list sorted by ``order``). The
    result is renumbered 0..n-1.
    """
    ordered = sort_by_order(layouts)
    size = len(ordered)
    if not (0 <= from_index < size) or not (0 <= to_index < size):
        raise LayoutError(f"Reorder index out of range: {from_index} -> {to_index} (size {size})")

    moved = ordered.pop(from_index)
    ordered.insert(to_index, moved)
    return renumber(ordered)


def swap_order(layouts: Sequence[CardLayout], id_a: str, id_b: str) -> list[CardLayout]:
    """Exchange the ``order`` values of two cards, leaving the others untouched."""
    by_id = {card.id: card for card in layouts}
    if id_a not in by_id or id_b not in by_id:
        missing = id_a if id_a not in by_id else id_b
        raise LayoutError(f"Card not found: {missing}")
    if id_a == id_b:
        return list(layouts)

    order_a = by_id[id_a].order
    order_b = by_id[id_b].order
    result = []
    for card in layouts:
        if card.id == id_a:
            result.append(card.model_copy(update={"order": order_b}))
        elif card.id == id_b:
            result.append(card.model_copy(update={"order": order_a}))
        else:
            result.append(card)
    return result
