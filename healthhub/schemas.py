"""Pydantic models for layouts, text cards, backups and settings.

Stored documents and backup files use camelCase keys, so every model
aliases its fields with ``to_camel`` and accepts either spelling on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CardSize = Literal["small", "medium", "large"]
CARD_SIZES: tuple[str, ...] = ("small", "medium", "large")
DEFAULT_CARD_SIZE = "medium"

Role = Literal["admin", "viewer"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys, as stored and exported."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserContext(BaseModel):
    """Identity handed over by the external identity provider."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role = "viewer"
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ── Layouts ──

class CardLayout(CamelModel):
    id: str
    order: int = Field(default=0, ge=0)
    col_span: Optional[int] = None
    size: CardSize = DEFAULT_CARD_SIZE


class LayoutPreset(CamelModel):
    id: str
    name: str
    layouts: list[CardLayout] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NavigationItem(CamelModel):
    title: str
    url: str
    icon: str
    order: int = 0


# ── Text cards ──

class TextCardInput(CamelModel):
    title: str
    description: Optional[str] = None
    content: str = ""
    page: str = "dashboard"


class TextCardData(CamelModel):
    id: str
    title: str = ""
    description: Optional[str] = None
    content: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""
    page: str = "dashboard"


# ── Backups ──

class BackupLayouts(CamelModel):
    current: list[CardLayout] = []
    presets: list[LayoutPreset] = []
    # Stored pages other than the dashboard, keyed by page
    pages: dict[str, list[CardLayout]] = {}


class BackupContents(CamelModel):
    layouts: BackupLayouts
    text_cards: list[TextCardData] = []
    system_settings: Optional[dict[str, Any]] = None


class BackupData(CamelModel):
    version: str
    backup_date: str
    user_id: str
    user_email: str = ""
    data: BackupContents


class BackupStats(CamelModel):
    text_cards_count: int
    presets_count: int
    layouts_count: int
    total_size: str
    pages: list[str]


class ValidationResult(CamelModel):
    valid: bool
    errors: list[str] = []


class RestoreOptions(CamelModel):
    restore_layouts: bool = True
    restore_presets: bool = True
    restore_text_cards: bool = True
    overwrite_existing: bool = False


class RestoreReport(CamelModel):
    layout_cards_restored: int = 0
    presets_restored: int = 0
    text_cards_restored: int = 0
    text_cards_skipped: int = 0
