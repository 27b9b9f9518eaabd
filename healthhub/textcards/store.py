"""Text card store — rich-text cards keyed by (user, page, card id)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from ..errors import LayoutError, PersistenceError, ReadResult
from ..layout.registry import is_text_card
from ..persistence.gateway import DocumentSnapshot, PersistenceGateway, join_path
from ..schemas import TextCardData, TextCardInput
from ..utils.logging import get_logger

logger = get_logger("textcards.store")

# Closed set of pages that can hold text cards
TEXT_CARD_PAGES: tuple[str, ...] = (
    "dashboard",
    "readiness",
    "nutrition",
    "hydration",
    "training",
    "habits",
    "goals",
)

__all__ = ["TEXT_CARD_PAGES", "TextCardStore", "is_text_card", "page_from_location"]


def page_from_location(pathname: str) -> str:
    """Map a UI route to its page key: '/' is the dashboard."""
    if pathname in ("", "/"):
        return "dashboard"
    page = pathname.split("/")[1]
    return page or "dashboard"


def _to_card(card_id: str, data: dict[str, Any]) -> TextCardData:
    payload = dict(data)
    payload["id"] = card_id
    return TextCardData.model_validate(payload)


class TextCardStore:
    """CRUD for text cards. Owns every document under ``textCards/``."""

    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    @staticmethod
    def card_path(user_id: str, page: str, card_id: str) -> str:
        return join_path("textCards", user_id, page, card_id)

    async def save_text_card(
        self,
        user_id: str,
        card_id: str,
        data: TextCardInput,
    ) -> TextCardData:
        """Upsert a card. ``createdAt`` is only set on the first write."""
        if data.page not in TEXT_CARD_PAGES:
            raise LayoutError(f"Text cards are not supported on page {data.page!r}")

        path = self.card_path(user_id, data.page, card_id)
        now = datetime.now(timezone.utc).isoformat()

        existing = await self._gateway.get_document(path)
        is_new = existing is None

        document: dict[str, Any] = {
            "title": data.title,
            "content": data.content,
            "updatedAt": now,
            "createdBy": user_id,
            "page": data.page,
        }
        if data.description is not None:
            document["description"] = data.description
        if is_new:
            document["createdAt"] = now

        try:
            await self._gateway.set_document(path, document, merge=True)
        except PersistenceError as e:
            logger.error("text_card_save_failed", user_id=user_id, card_id=card_id, error=str(e))
            raise

        logger.info("text_card_saved", user_id=user_id, card_id=card_id, page=data.page, created=is_new)
        merged = {**(existing or {}), **document}
        return _to_card(card_id, merged)

    async def load_text_card(
        self,
        user_id: str,
        card_id: str,
        page: str,
    ) -> Optional[TextCardData]:
        """The stored card, or None when it does not exist."""
        data = await self._gateway.get_document(self.card_path(user_id, page, card_id))
        if data is None:
            return None
        return _to_card(card_id, data)

    async def read_page(self, user_id: str, page: str) -> ReadResult[list[TextCardData]]:
        try:
            snapshots: list[DocumentSnapshot] = await self._gateway.list_documents(
                join_path("textCards", user_id, page)
            )
        except PersistenceError as e:
            return ReadResult.degraded([], e)
        return ReadResult([_to_card(s.id, s.data) for s in snapshots])

    async def load_text_cards_for_page(self, user_id: str, page: str) -> list[TextCardData]:
        """All cards on a page; an empty list when storage fails."""
        result = await self.read_page(user_id, page)
        if not result.ok:
            logger.warning("text_cards_page_load_failed", user_id=user_id, page=page, error=result.error)
        return result.value

    async def load_all_text_cards(self, user_id: str) -> list[TextCardData]:
        """Cards across every known page, skipping pages that fail to load."""
        cards: list[TextCardData] = []
        for page in TEXT_CARD_PAGES:
            result = await self.read_page(user_id, page)
            if not result.ok:
                logger.warning("text_cards_page_skipped", user_id=user_id, page=page, error=result.error)
                continue
            cards.extend(result.value)
        return cards

    async def delete_text_card(self, user_id: str, card_id: str, page: str) -> None:
        try:
            await self._gateway.delete_document(self.card_path(user_id, page, card_id))
        except PersistenceError as e:
            logger.error("text_card_delete_failed", user_id=user_id, card_id=card_id, error=str(e))
            raise
        logger.info("text_card_deleted", user_id=user_id, card_id=card_id, page=page)

    @staticmethod
    def is_text_card(card_id: str) -> bool:
        return is_text_card(card_id)
