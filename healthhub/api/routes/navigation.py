"""Navigation routes — system-wide sidebar items."""

from fastapi import APIRouter, Depends

from ...auth.rbac import PERM_MANAGE_SETTINGS, PERM_VIEW_DASHBOARD, require_permission
from ...dependencies import get_navigation_settings
from ...navigation import NavigationSettings
from ...schemas import CamelModel, NavigationItem, UserContext

router = APIRouter(prefix="/navigation", tags=["navigation"])


class SaveNavigationRequest(CamelModel):
    items: list[NavigationItem]


@router.get("")
async def get_navigation(
    settings: NavigationSettings = Depends(get_navigation_settings),
    current_user: UserContext = Depends(require_permission(PERM_VIEW_DASHBOARD)),
):
    result = await settings.get_navigation_items()
    body = {"items": [item.to_document() for item in result.value]}
    if not result.ok:
        body["degraded"] = True
        body["error"] = result.error
    return body


@router.put("")
async def save_navigation(
    body: SaveNavigationRequest,
    settings: NavigationSettings = Depends(get_navigation_settings),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_SETTINGS)),
):
    """Replace the sidebar items in the given order (admin only)."""
    items = await settings.save_navigation_items(body.items, updated_by=current_user.user_id)
    return {"items": [item.to_document() for item in items]}
