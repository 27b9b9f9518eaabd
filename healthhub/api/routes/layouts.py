"""Dashboard layout routes — per-user card arrangement, edit sessions and presets."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...auth.rbac import PERM_EDIT_LAYOUT, PERM_MANAGE_SETTINGS, PERM_VIEW_DASHBOARD, require_permission
from ...dependencies import get_session_registry
from ...layout import registry
from ...layout.engine import LayoutEngine
from ...schemas import CamelModel, CardLayout, CardSize, UserContext
from ...sessions import SessionRegistry

router = APIRouter(prefix="/layouts", tags=["layouts"])


# --- Request bodies ---

class UpdateLayoutRequest(CamelModel):
    layouts: list[CardLayout]


class UpdateSizeRequest(CamelModel):
    size: CardSize


class AddCardRequest(CamelModel):
    type: str = "text"


class MoveCardRequest(CamelModel):
    from_index: int
    to_index: int


class SwapCardsRequest(CamelModel):
    id_a: str
    id_b: str


class ReorderRequest(CamelModel):
    active_id: str
    over_id: str


class SavePresetRequest(CamelModel):
    name: str


class SetDefaultRequest(CamelModel):
    preset_id: Optional[str] = None


# --- Helpers ---

def _layout_response(engine: LayoutEngine, **extra) -> dict:
    body = {
        "page": engine.page,
        "isEditMode": engine.is_edit_mode,
        "layouts": [card.to_document() for card in engine.layouts],
    }
    body.update(extra)
    return body


# --- Page layouts ---

@router.get("/pages/{page}")
async def get_page_layout(
    page: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_VIEW_DASHBOARD)),
):
    """Current layout of a page; served from defaults when storage is unavailable."""
    engine = await sessions.get_engine(current_user, page)
    if not engine.is_edit_mode:
        result = await engine.load_layout()
        if not result.ok:
            return _layout_response(engine, degraded=True, error=result.error, errorKind=result.kind.value)
    return _layout_response(engine)


@router.put("/pages/{page}")
async def replace_page_layout(
    page: str,
    body: UpdateLayoutRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    """Replace the whole card list of a page."""
    problems = registry.validate_layout_ids(body.layouts)
    if problems:
        raise HTTPException(status_code=400, detail="; ".join(problems))

    engine = await sessions.get_engine(current_user, page)
    await engine.update_layout(body.layouts)
    return _layout_response(engine)


@router.patch("/pages/{page}/cards/{card_id}/size")
async def update_card_size(
    page: str,
    card_id: str,
    body: UpdateSizeRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    engine = await sessions.get_engine(current_user, page)
    card = await engine.update_card_size(card_id, body.size)
    return card.to_document()


@router.post("/pages/{page}/cards", status_code=201)
async def add_card(
    page: str,
    body: AddCardRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    """Append a new text card to the page."""
    engine = await sessions.get_engine(current_user, page)
    card = await engine.add_card(body.type)
    return card.to_document()


@router.delete("/pages/{page}/cards/{card_id}")
async def delete_card(
    page: str,
    card_id: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    if not registry.is_card_deletable(card_id):
        raise HTTPException(status_code=400, detail=f"Card {card_id} cannot be deleted")

    engine = await sessions.get_engine(current_user, page)
    await engine.delete_card(card_id)
    return _layout_response(engine)


@router.post("/pages/{page}/move")
async def move_card(
    page: str,
    body: MoveCardRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    """Move a card to a new display index, shifting the cards in between."""
    engine = await sessions.get_engine(current_user, page)
    await engine.move_card(body.from_index, body.to_index)
    return _layout_response(engine)


@router.post("/pages/{page}/swap")
async def swap_cards(
    page: str,
    body: SwapCardsRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    engine = await sessions.get_engine(current_user, page)
    await engine.swap_cards(body.id_a, body.id_b)
    return _layout_response(engine)


@router.post("/pages/{page}/reorder")
async def reorder_cards(
    page: str,
    body: ReorderRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    """Apply a drag of one card onto another with the page's reorder strategy."""
    engine = await sessions.get_engine(current_user, page)
    await engine.reorder_for_page(body.active_id, body.over_id)
    return _layout_response(engine)


# --- Edit sessions ---

@router.post("/pages/{page}/edit/begin")
async def begin_edit(
    page: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    engine = await sessions.get_engine(current_user, page)
    engine.begin_edit()
    return _layout_response(engine)


@router.post("/pages/{page}/edit/commit")
async def commit_edit(
    page: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    """Persist the edited layout. On a storage failure the session stays open."""
    engine = await sessions.get_engine(current_user, page)
    await engine.commit_edit()
    return _layout_response(engine)


@router.post("/pages/{page}/edit/cancel")
async def cancel_edit(
    page: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    engine = await sessions.get_engine(current_user, page)
    engine.cancel_edit()
    return _layout_response(engine)


# --- Presets ---

@router.get("/presets")
async def list_presets(
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_VIEW_DASHBOARD)),
):
    """List the user's presets, newest first."""
    engine = await sessions.get_engine(current_user)
    presets = await engine.get_layout_presets()
    return [preset.to_document() for preset in presets]


@router.post("/presets", status_code=201)
async def save_preset(
    body: SavePresetRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    engine = await sessions.get_engine(current_user, "dashboard")
    preset = await engine.save_layout_preset(body.name)
    return preset.to_document()


@router.post("/presets/{preset_id}/load")
async def load_preset(
    preset_id: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    """Replace the dashboard layout with a preset's cards. Navigates to the dashboard."""
    engine = await sessions.get_engine(current_user, "dashboard")
    await engine.load_layout_preset(preset_id)
    return _layout_response(engine)


@router.delete("/presets/{preset_id}")
async def delete_preset(
    preset_id: str,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_EDIT_LAYOUT)),
):
    engine = await sessions.get_engine(current_user)
    await engine.delete_layout_preset(preset_id)
    return {"deleted": True, "id": preset_id}


@router.put("/default")
async def set_default_layout(
    body: SetDefaultRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_SETTINGS)),
):
    """Store a preset's layout, or the caller's current one, as the default for new users."""
    engine = await sessions.get_engine(current_user, "dashboard")
    layouts = await engine.set_default_layout(body.preset_id)
    return {
        "presetId": body.preset_id,
        "layouts": [card.to_document() for card in layouts],
    }
