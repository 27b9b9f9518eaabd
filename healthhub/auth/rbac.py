"""Role-Based Access Control for the two dashboard roles."""

from fastapi import Depends, HTTPException, status

from ..dependencies import get_current_user
from ..schemas import UserContext
from ..utils.logging import get_logger

logger = get_logger("auth.rbac")

# Permission constants
PERM_VIEW_DASHBOARD = "view_dashboard"
PERM_EDIT_LAYOUT = "edit_layout"
PERM_EDIT_CONTENT = "edit_content"
PERM_MANAGE_BACKUPS = "manage_backups"
PERM_MANAGE_SETTINGS = "manage_settings"

ALL_PERMISSIONS = [
    PERM_VIEW_DASHBOARD, PERM_EDIT_LAYOUT, PERM_EDIT_CONTENT,
    PERM_MANAGE_BACKUPS, PERM_MANAGE_SETTINGS,
]

DEFAULT_ROLES = {
    "admin": {
        "description": "Full access, including layout editing, backups and system settings",
        "permissions": ALL_PERMISSIONS,
    },
    "viewer": {
        "description": "Read-only dashboard access",
        "permissions": [PERM_VIEW_DASHBOARD],
    },
}


def get_user_permissions(user: UserContext) -> list[str]:
    role_def = DEFAULT_ROLES.get(user.role, DEFAULT_ROLES["viewer"])
    return role_def["permissions"]


def require_permission(*required_perms: str):
    """FastAPI dependency factory that checks the user's role grants every permission."""
    async def _check(current_user: UserContext = Depends(get_current_user)) -> UserContext:
        user_perms = get_user_permissions(current_user)

        for perm in required_perms:
            if perm not in user_perms:
                logger.info("permission_denied", user_id=current_user.user_id, permission=perm)
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission required: {perm}",
                )

        return current_user

    return _check
