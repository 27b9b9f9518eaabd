"""Text card routes — rich-text cards per user and page."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...auth.rbac import PERM_EDIT_CONTENT, PERM_VIEW_DASHBOARD, require_permission
from ...dependencies import get_text_card_store
from ...schemas import CamelModel, TextCardInput, UserContext
from ...textcards.store import TextCardStore, is_text_card

router = APIRouter(prefix="/text-cards", tags=["text-cards"])


class SaveTextCardRequest(CamelModel):
    title: str
    description: Optional[str] = None
    content: str = ""


def _require_text_card_id(card_id: str) -> None:
    if not is_text_card(card_id):
        raise HTTPException(status_code=400, detail=f"Not a text card id: {card_id}")


@router.get("/{page}")
async def list_text_cards(
    page: str,
    store: TextCardStore = Depends(get_text_card_store),
    current_user: UserContext = Depends(require_permission(PERM_VIEW_DASHBOARD)),
):
    """All text cards on a page; empty when storage is unavailable."""
    cards = await store.load_text_cards_for_page(current_user.user_id, page)
    return [card.to_document() for card in cards]


@router.get("/{page}/{card_id}")
async def get_text_card(
    page: str,
    card_id: str,
    store: TextCardStore = Depends(get_text_card_store),
    current_user: UserContext = Depends(require_permission(PERM_VIEW_DASHBOARD)),
):
    card = await store.load_text_card(current_user.user_id, card_id, page)
    if card is None:
        raise HTTPException(status_code=404, detail="Text card not found")
    return card.to_document()


@router.put("/{page}/{card_id}")
async def save_text_card(
    page: str,
    card_id: str,
    body: SaveTextCardRequest,
    store: TextCardStore = Depends(get_text_card_store),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_CONTENT)),
):
    """Create or update a text card."""
    _require_text_card_id(card_id)
    card = await store.save_text_card(
        current_user.user_id,
        card_id,
        TextCardInput(
            title=body.title,
            description=body.description,
            content=body.content,
            page=page,
        ),
    )
    return card.to_document()


@router.delete("/{page}/{card_id}")
async def delete_text_card(
    page: str,
    card_id: str,
    store: TextCardStore = Depends(get_text_card_store),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_CONTENT)),
):
    _require_text_card_id(card_id)
    await store.delete_text_card(current_user.user_id, card_id, page)
    return {"deleted": True, "id": card_id, "page": page}
