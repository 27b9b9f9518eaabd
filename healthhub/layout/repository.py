"""Layout persistence — the only code that reads and writes layout documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from ..persistence.gateway import PersistenceGateway, join_path
from ..schemas import CardLayout, LayoutPreset
from ..utils.logging import get_logger
from .migrations import CURRENT_SCHEMA_VERSION, SCHEMA_VERSION_KEY, MigrationResult, migrate_layout_document

logger = get_logger("layout.repository")

DEFAULT_LAYOUT_PATH = "system/defaultLayout"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LayoutRepository:
    """Maps users' layouts, presets and the system default onto document paths."""

    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    @staticmethod
    def page_path(user_id: str, page: str) -> str:
        return join_path("layouts", user_id, "pages", page)

    @staticmethod
    def presets_path(user_id: str) -> str:
        return join_path("layouts", user_id, "presets")

    @staticmethod
    def preset_path(user_id: str, preset_id: str) -> str:
        return join_path("layouts", user_id, "presets", preset_id)

    # --- Current layout ---

    async def read_page(self, user_id: str, page: str) -> Optional[MigrationResult]:
        """Read and migrate a stored page layout; None when absent. Never writes."""
        document = await self._gateway.get_document(self.page_path(user_id, page))
        if document is None:
            return None
        return migrate_layout_document(document)

    async def load_current(self, user_id: str, page: str = "dashboard") -> list[CardLayout]:
        """Current card list for a page, empty when nothing is stored."""
        result = await self.read_page(user_id, page)
        if result is None:
            return []
        return [CardLayout.model_validate(card) for card in result.document.get("layouts") or []]

    async def save_page(
        self,
        user_id: str,
        page: str,
        layouts: list[CardLayout],
        restored: bool = False,
    ) -> None:
        """Replace-write the page's layout document."""
        document: dict[str, Any] = {
            "layouts": [card.to_document() for card in layouts],
            SCHEMA_VERSION_KEY: CURRENT_SCHEMA_VERSION,
            "updatedAt": _now(),
        }
        if restored:
            document["restoredAt"] = document["updatedAt"]
        await self._gateway.set_document(self.page_path(user_id, page), document)
        logger.info("layout_persisted", user_id=user_id, page=page, cards=len(layouts), restored=restored)

    # --- Presets ---

    async def list_presets(self, user_id: str) -> list[LayoutPreset]:
        snapshots = await self._gateway.list_documents(self.presets_path(user_id))
        presets = []
        for snapshot in snapshots:
            data = dict(snapshot.data)
            data.setdefault("id", snapshot.id)
            presets.append(LayoutPreset.model_validate(data))
        return presets

    async def get_preset(self, user_id: str, preset_id: str) -> Optional[LayoutPreset]:
        data = await self._gateway.get_document(self.preset_path(user_id, preset_id))
        if data is None:
            return None
        data.setdefault("id", preset_id)
        return LayoutPreset.model_validate(data)

    async def save_preset(self, user_id: str, preset: LayoutPreset, restored: bool = False) -> None:
        """Upsert a preset by its id."""
        document = preset.to_document()
        if restored:
            document["restoredAt"] = _now()
        await self._gateway.set_document(self.preset_path(user_id, preset.id), document)
        logger.info("layout_preset_saved", user_id=user_id, preset_id=preset.id, restored=restored)

    async def delete_preset(self, user_id: str, preset_id: str) -> None:
        await self._gateway.delete_document(self.preset_path(user_id, preset_id))
        logger.info("layout_preset_deleted", user_id=user_id, preset_id=preset_id)

    # --- System-wide default ---

    async def get_default_layout(self) -> Optional[list[CardLayout]]:
        document = await self._gateway.get_document(DEFAULT_LAYOUT_PATH)
        if not document or not document.get("layouts"):
            return None
        migrated = migrate_layout_document(document).document
        return [CardLayout.model_validate(card) for card in migrated["layouts"]]

    async def save_default_layout(
        self,
        layouts: list[CardLayout],
        updated_by: str,
        preset_id: Optional[str] = None,
    ) -> None:
        document: dict[str, Any] = {
            "layouts": [card.to_document() for card in layouts],
            SCHEMA_VERSION_KEY: CURRENT_SCHEMA_VERSION,
            "updatedBy": updated_by,
            "updatedAt": _now(),
        }
        if preset_id:
            document["presetId"] = preset_id
        await self._gateway.set_document(DEFAULT_LAYOUT_PATH, document)
        logger.info("default_layout_saved", updated_by=updated_by, preset_id=preset_id, cards=len(layouts))
