"""Card registry — static per-card-type size constraints and deletability."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from ..schemas import CARD_SIZES, CardLayout

TEXT_CARD_PREFIX = "text-card-"

CardType = Literal["api", "text"]


@dataclass(frozen=True)
class CardConfig:
    type: CardType
    allowed_sizes: tuple[str, ...]
    deletable: bool


ALL_SIZES = CARD_SIZES

PANEL_CONFIGS: dict[str, CardConfig] = {
    # Data panels backed by external sources
    "readiness": CardConfig("api", ("medium", "large"), False),
    "nutrition": CardConfig("api", ALL_SIZES, False),
    "hydration": CardConfig("api", ("small", "medium"), False),
    "training": CardConfig("api", ALL_SIZES, False),
    "habits": CardConfig("api", ("medium", "large"), False),
    "milestones": CardConfig("api", ALL_SIZES, False),
    "goals": CardConfig("api", ALL_SIZES, False),
    # Goal-category content cards
    "long-term-goal": CardConfig("text", ALL_SIZES, True),
    "challenge": CardConfig("text", ALL_SIZES, True),
}

TEXT_CARD_CONFIG = CardConfig("text", ALL_SIZES, True)
FALLBACK_CONFIG = CardConfig("api", ("medium", "large"), False)


def is_text_card(card_id: str) -> bool:
    """True iff the id belongs to a user-created text card."""
    return card_id.startswith(TEXT_CARD_PREFIX)


def is_known_card(card_id: str) -> bool:
    return is_text_card(card_id) or card_id in PANEL_CONFIGS


def get_card_config(card_id: str) -> CardConfig:
    if is_text_card(card_id):
        return TEXT_CARD_CONFIG
    return PANEL_CONFIGS.get(card_id, FALLBACK_CONFIG)


def is_card_deletable(card_id: str) -> bool:
    return get_card_config(card_id).deletable


def is_size_allowed(card_id: str, size: str) -> bool:
    return size in get_card_config(card_id).allowed_sizes


def validate_layout_ids(layouts: Iterable[CardLayout]) -> list[str]:
    """Return a problem per duplicate or unresolvable card id, in list order."""
    problems = []
    seen: set[str] = set()
    for card in layouts:
        if card.id in seen:
            problems.append(f"Duplicate card id: {card.id}")
        seen.add(card.id)
        if not is_known_card(card.id):
            problems.append(f"Unknown card id: {card.id}")
        elif not is_size_allowed(card.id, card.size):
            problems.append(f"Size {card.size} not allowed for card {card.id}")
    return problems
