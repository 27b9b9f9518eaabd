"""Layout engine — per-user card arrangement with edit-mode transactions.

One engine is constructed per user session. It owns the in-memory card
list of the active page and brokers every mutation of it. Outside an edit
session each mutation persists immediately; inside one, mutations stay in
memory until ``commit_edit()`` writes the final state, and ``cancel_edit()``
restores the snapshot taken by ``begin_edit()`` without any write.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from ..errors import LayoutError, NotFoundError, PersistenceError, ReadResult
from ..schemas import CARD_SIZES, CardLayout, LayoutPreset, UserContext
from ..utils.logging import get_logger
from . import registry
from .reorder import next_order, reorder, renumber, sort_by_order, swap_order
from .repository import LayoutRepository

logger = get_logger("layout.engine")

DEFAULT_LAYOUTS: dict[str, list[CardLayout]] = {
    "dashboard": [
        CardLayout(id="readiness", order=0, col_span=2, size="large"),
        CardLayout(id="hydration", order=1, size="small"),
        CardLayout(id="nutrition", order=2, size="medium"),
        CardLayout(id="training", order=3, size="medium"),
        CardLayout(id="habits", order=4, col_span=2, size="large"),
        CardLayout(id="milestones", order=5, size="medium"),
    ],
    "goals": [
        CardLayout(id="long-term-goal", order=0, size="large"),
        CardLayout(id="challenge", order=1, size="large"),
    ],
}

# Drag strategy per stored page: "shift" moves and shifts, "swap" exchanges orders
PAGE_REORDER_STRATEGY: dict[str, str] = {
    "dashboard": "shift",
    "goals": "swap",
}

LAYOUT_PAGES = tuple(DEFAULT_LAYOUTS)


def default_layout(page: str = "dashboard") -> list[CardLayout]:
    return [card.model_copy() for card in DEFAULT_LAYOUTS[page]]


def _copy(layouts: list[CardLayout]) -> list[CardLayout]:
    return [card.model_copy() for card in layouts]


class LayoutEngine:
    """Viewing/Editing state machine over one user's card layout."""

    def __init__(
        self,
        repository: LayoutRepository,
        user: UserContext,
        page: str = "dashboard",
    ):
        if page not in DEFAULT_LAYOUTS:
            raise LayoutError(f"Unknown layout page: {page}")
        self._repository = repository
        self._user = user
        self._page = page
        self._layouts: list[CardLayout] = default_layout(page)
        self._original_layouts: Optional[list[CardLayout]] = None
        self._loaded = False
        self._last_stamp = 0

    # --- State ---

    @property
    def user(self) -> UserContext:
        return self._user

    @property
    def page(self) -> str:
        return self._page

    @property
    def layouts(self) -> list[CardLayout]:
        """Cards of the active page in display order."""
        return sort_by_order(_copy(self._layouts))

    @property
    def is_edit_mode(self) -> bool:
        return self._original_layouts is not None

    @property
    def loaded(self) -> bool:
        return self._loaded

    # --- Loading ---

    async def load_layout(self) -> ReadResult[list[CardLayout]]:
        """Load the active page for the user, provisioning defaults on first read.

        Never raises for storage failures: the engine falls back to the
        built-in defaults and the returned result carries the error.
        """
        if self.is_edit_mode:
            logger.info("edit_discarded_on_reload", user_id=self._user.user_id, page=self._page)
            self._original_layouts = None

        user_id = self._user.user_id
        try:
            stored = await self._repository.read_page(user_id, self._page)
        except PersistenceError as e:
            logger.error("layout_load_failed", user_id=user_id, page=self._page, error=str(e))
            self._layouts = default_layout(self._page)
            self._loaded = True
            return ReadResult.degraded(self.layouts, e)

        if stored is None:
            self._layouts = await self._initial_layout()
            self._loaded = True
            logger.info("layout_provisioned", user_id=user_id, page=self._page, cards=len(self._layouts))
            return await self._write_through()

        try:
            self._layouts = [
                CardLayout.model_validate(card) for card in stored.document.get("layouts") or []
            ]
        except ValidationError as e:
            # Unreadable record: serve defaults and leave the stored document alone
            logger.error("layout_load_failed", user_id=user_id, page=self._page, error=str(e))
            self._layouts = default_layout(self._page)
            self._loaded = True
            return ReadResult.fatal(self.layouts, e)
        self._loaded = True
        if stored.migrated:
            logger.info(
                "layout_schema_migrated",
                user_id=user_id,
                page=self._page,
                from_version=stored.from_version,
                to_version=stored.to_version,
            )
            return await self._write_through()
        return ReadResult(self.layouts)

    async def switch_page(self, page: str) -> ReadResult[list[CardLayout]]:
        """Navigate to another stored page. An open edit session is cancelled."""
        if page not in DEFAULT_LAYOUTS:
            raise LayoutError(f"Unknown layout page: {page}")
        if self.is_edit_mode:
            logger.info("edit_cancelled_on_navigation", user_id=self._user.user_id, page=self._page, to=page)
            self.cancel_edit()
        self._page = page
        return await self.load_layout()

    async def _initial_layout(self) -> list[CardLayout]:
        if self._page == "dashboard":
            try:
                system_default = await self._repository.get_default_layout()
            except PersistenceError as e:
                logger.warning("default_layout_read_failed", error=str(e))
                system_default = None
            if system_default:
                return system_default
        return default_layout(self._page)

    async def _write_through(self) -> ReadResult[list[CardLayout]]:
        try:
            await self._repository.save_page(self._user.user_id, self._page, self._layouts)
        except PersistenceError as e:
            logger.error("layout_write_through_failed", user_id=self._user.user_id, error=str(e))
            return ReadResult.degraded(self.layouts, e)
        return ReadResult(self.layouts)

    # --- Persistence ---

    async def _persist(self) -> None:
        try:
            await self._repository.save_page(self._user.user_id, self._page, self._layouts)
        except PersistenceError as e:
            # In-memory state stays authoritative for this session
            logger.error("layout_persist_failed", user_id=self._user.user_id, page=self._page, error=str(e))
            raise

    async def _persist_unless_editing(self) -> None:
        if not self.is_edit_mode:
            await self._persist()

    # --- Edit mode ---

    def begin_edit(self) -> None:
        if self.is_edit_mode:
            return
        self._original_layouts = _copy(self._layouts)
        logger.info("edit_started", user_id=self._user.user_id, page=self._page)

    async def commit_edit(self) -> list[CardLayout]:
        """Persist the edited layout and return to viewing.

        A failed write leaves the session open so the commit can be retried.
        """
        if not self.is_edit_mode:
            return self.layouts
        await self._persist()
        self._original_layouts = None
        logger.info("edit_committed", user_id=self._user.user_id, page=self._page, cards=len(self._layouts))
        return self.layouts

    def cancel_edit(self) -> list[CardLayout]:
        """Drop every in-session mutation. Nothing is written."""
        if self._original_layouts is not None:
            self._layouts = self._original_layouts
            self._original_layouts = None
            logger.info("edit_cancelled", user_id=self._user.user_id, page=self._page)
        return self.layouts

    async def set_edit_mode(self, enabled: bool) -> None:
        if enabled:
            self.begin_edit()
        else:
            await self.commit_edit()

    # --- Mutations ---

    async def update_layout(self, new_layouts: list[CardLayout]) -> list[CardLayout]:
        """Replace the whole card list."""
        ids = [card.id for card in new_layouts]
        if len(ids) != len(set(ids)):
            raise LayoutError("Card ids must be unique within a layout")
        self._layouts = _copy(new_layouts)
        await self._persist_unless_editing()
        return self.layouts

    async def update_card_size(self, card_id: str, size: str) -> CardLayout:
        if size not in CARD_SIZES:
            raise LayoutError(f"Unknown card size: {size}")
        if not registry.is_size_allowed(card_id, size):
            raise LayoutError(f"Size {size} not allowed for card {card_id}")

        for index, card in enumerate(self._layouts):
            if card.id == card_id:
                updated = card.model_copy(update={"size": size})
                self._layouts[index] = updated
                break
        else:
            raise LayoutError(f"Card not found: {card_id}")

        await self._persist_unless_editing()
        return updated.model_copy()

    async def add_card(self, card_type: str = "text") -> CardLayout:
        """Append a new text card at the end of the layout."""
        if card_type != "text":
            raise LayoutError(f"Cannot add cards of type {card_type!r}")

        card = CardLayout(
            id=f"{registry.TEXT_CARD_PREFIX}{self._unique_stamp()}",
            order=next_order(self._layouts),
            size="medium",
        )
        self._layouts.append(card)
        logger.info("card_added", user_id=self._user.user_id, card_id=card.id, order=card.order)
        await self._persist_unless_editing()
        return card.model_copy()

    async def delete_card(self, card_id: str) -> list[CardLayout]:
        """Remove a card and renumber the remaining ones 0..n-1."""
        remaining = [card for card in sort_by_order(self._layouts) if card.id != card_id]
        if len(remaining) == len(self._layouts):
            raise LayoutError(f"Card not found: {card_id}")

        self._layouts = renumber(remaining)
        logger.info("card_deleted", user_id=self._user.user_id, card_id=card_id)
        await self._persist_unless_editing()
        return self.layouts

    async def move_card(self, from_index: int, to_index: int) -> list[CardLayout]:
        """Move-and-shift reorder by display index."""
        self._layouts = reorder(self._layouts, from_index, to_index)
        await self._persist_unless_editing()
        return self.layouts

    async def swap_cards(self, id_a: str, id_b: str) -> list[CardLayout]:
        """Exchange the display positions of two cards."""
        self._layouts = swap_order(self._layouts, id_a, id_b)
        await self._persist_unless_editing()
        return self.layouts

    async def reorder_for_page(self, active_id: str, over_id: str) -> list[CardLayout]:
        """Apply a drag of ``active_id`` onto ``over_id`` using the page's strategy."""
        if active_id == over_id:
            return self.layouts
        if PAGE_REORDER_STRATEGY[self._page] == "swap":
            return await self.swap_cards(active_id, over_id)

        ids = [card.id for card in sort_by_order(self._layouts)]
        for card_id in (active_id, over_id):
            if card_id not in ids:
                raise LayoutError(f"Card not found: {card_id}")
        return await self.move_card(ids.index(active_id), ids.index(over_id))

    def cards_for_page(self, page: str) -> list[CardLayout]:
        """Derived view: the active page shows every card, a panel page only its own."""
        if page == self._page:
            return self.layouts
        return [card for card in self.layouts if card.id == page]

    def _unique_stamp(self) -> int:
        stamp = int(time.time() * 1000)
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        existing = {card.id for card in self._layouts}
        while f"{registry.TEXT_CARD_PREFIX}{stamp}" in existing:
            stamp += 1
        self._last_stamp = stamp
        return stamp

    # --- Presets ---

    def _require_dashboard(self, action: str) -> None:
        # Presets and the system default hold dashboard cards only
        if self._page != "dashboard":
            raise LayoutError(f"Cannot {action} while on page {self._page!r}")

    async def save_layout_preset(self, name: str) -> LayoutPreset:
        self._require_dashboard("save a preset")
        name = name.strip()
        if not name:
            raise LayoutError("Preset name must not be empty")

        preset = LayoutPreset(
            id=f"preset-{self._unique_stamp()}",
            name=name,
            layouts=self.layouts,
            created_at=datetime.now(timezone.utc),
        )
        await self._repository.save_preset(self._user.user_id, preset)
        return preset

    async def get_layout_presets(self) -> list[LayoutPreset]:
        presets = await self._repository.list_presets(self._user.user_id)
        return sorted(presets, key=lambda p: p.created_at, reverse=True)

    async def load_layout_preset(self, preset_id: str) -> list[CardLayout]:
        self._require_dashboard("load a preset")
        preset = await self._repository.get_preset(self._user.user_id, preset_id)
        if preset is None:
            raise NotFoundError(f"Layout preset not found: {preset_id}")

        self._layouts = _copy(preset.layouts)
        logger.info("layout_preset_loaded", user_id=self._user.user_id, preset_id=preset_id)
        await self._persist_unless_editing()
        return self.layouts

    async def delete_layout_preset(self, preset_id: str) -> None:
        await self._repository.delete_preset(self._user.user_id, preset_id)

    async def set_default_layout(self, preset_id: Optional[str] = None) -> list[CardLayout]:
        """Store the preset's (or the current) layout as the default for new users."""
        if not self._user.is_admin:
            raise LayoutError("Only admins can set the default layout")

        if preset_id:
            preset = await self._repository.get_preset(self._user.user_id, preset_id)
            if preset is None:
                raise NotFoundError(f"Layout preset not found: {preset_id}")
            layouts = sort_by_order(preset.layouts)
        else:
            self._require_dashboard("set the default layout")
            layouts = self.layouts

        await self._repository.save_default_layout(
            layouts, updated_by=self._user.user_id, preset_id=preset_id
        )
        return layouts
