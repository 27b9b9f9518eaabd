"""Versioned schema loader for stored layout documents.

Every layout document written by this service carries ``schemaVersion``.
Documents without it predate versioning and are treated as version 1.
Loading runs the chain of single-step migrations from the stored version
up to ``CURRENT_SCHEMA_VERSION``; the caller persists the result once.

Version history:
    1 — cards carry ``id``, ``order`` and optional ``colSpan``.
    2 — every card carries ``size``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable

from ..schemas import DEFAULT_CARD_SIZE

CURRENT_SCHEMA_VERSION = 2

SCHEMA_VERSION_KEY = "schemaVersion"


def _add_card_sizes(document: dict[str, Any]) -> dict[str, Any]:
    cards = []
    for card in document.get("layouts") or []:
        card = dict(card)
        if not card.get("size"):
            card["size"] = DEFAULT_CARD_SIZE
        cards.append(card)
    document["layouts"] = cards
    return document


# from_version -> migration producing from_version + 1
MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    1: _add_card_sizes,
}


@dataclass
class MigrationResult:
    document: dict[str, Any]
    from_version: int
    to_version: int

    @property
    def migrated(self) -> bool:
        return self.from_version != self.to_version


def detect_version(document: dict[str, Any]) -> int:
    """Stored version, lowered to 1 when any card is missing its size."""
    version = int(document.get(SCHEMA_VERSION_KEY) or 1)
    cards = document.get("layouts") or []
    if any(not card.get("size") for card in cards):
        version = min(version, 1)
    return version


def migrate_layout_document(document: dict[str, Any]) -> MigrationResult:
    """Bring a stored layout document to the current schema. Input is not mutated."""
    from_version = detect_version(document)
    migrated = copy.deepcopy(document)

    version = from_version
    while version < CURRENT_SCHEMA_VERSION:
        migrated = MIGRATIONS[version](migrated)
        version += 1

    migrated[SCHEMA_VERSION_KEY] = max(version, from_version)
    return MigrationResult(
        document=migrated,
        from_version=from_version,
        to_version=migrated[SCHEMA_VERSION_KEY],
    )
