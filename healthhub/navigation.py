"""Navigation settings — the system-wide sidebar items, edited by admins."""

from __future__ import annotations

from datetime import datetime, timezone

from .errors import LayoutError, PersistenceError, ReadResult
from .persistence.gateway import PersistenceGateway
from .schemas import NavigationItem
from .utils.logging import get_logger

logger = get_logger("healthhub.navigation")

SETTINGS_PATH = "system/settings"

ICON_KEYS = frozenset({
    "LayoutGrid",
    "Activity",
    "Apple",
    "Droplets",
    "Dumbbell",
    "CheckSquare",
    "Trophy",
    "Settings",
})

DEFAULT_NAVIGATION_ITEMS: list[NavigationItem] = [
    NavigationItem(title="Dashboard", url="/", icon="LayoutGrid", order=0),
    NavigationItem(title="Readiness", url="/readiness", icon="Activity", order=1),
    NavigationItem(title="Nutrition", url="/nutrition", icon="Apple", order=2),
    NavigationItem(title="Hydration", url="/hydration", icon="Droplets", order=3),
    NavigationItem(title="Training", url="/training", icon="Dumbbell", order=4),
    NavigationItem(title="Habits", url="/habits", icon="CheckSquare", order=5),
    NavigationItem(title="Goals", url="/goals", icon="Trophy", order=6),
]


def default_navigation_items() -> list[NavigationItem]:
    return [item.model_copy() for item in DEFAULT_NAVIGATION_ITEMS]


class NavigationSettings:
    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    async def get_navigation_items(self) -> ReadResult[list[NavigationItem]]:
        """Stored items sorted by order, or the defaults when none are stored or the read fails."""
        try:
            settings = await self._gateway.get_document(SETTINGS_PATH)
        except PersistenceError as e:
            logger.warning("navigation_load_failed", error=str(e))
            return ReadResult.degraded(default_navigation_items(), e)

        stored = (settings or {}).get("navigationItems")
        if not stored:
            return ReadResult(default_navigation_items())
        items = [NavigationItem.model_validate(item) for item in stored]
        return ReadResult(sorted(items, key=lambda item: item.order))

    async def save_navigation_items(
        self,
        items: list[NavigationItem],
        updated_by: str,
    ) -> list[NavigationItem]:
        """Persist items in the given sequence, renumbering orders 0..n-1."""
        unknown = sorted({item.icon for item in items} - ICON_KEYS)
        if unknown:
            raise LayoutError(f"Unknown navigation icon(s): {', '.join(unknown)}")

        urls = [item.url for item in items]
        if len(urls) != len(set(urls)):
            raise LayoutError("Navigation urls must be unique")

        renumbered = [item.model_copy(update={"order": index}) for index, item in enumerate(items)]
        await self._gateway.set_document(
            SETTINGS_PATH,
            {
                "navigationItems": [item.to_document() for item in renumbered],
                "updatedAt": datetime.now(timezone.utc).isoformat(),
                "updatedBy": updated_by,
            },
            merge=True,
        )
        logger.info("navigation_saved", updated_by=updated_by, items=len(renumbered))
        return renumbered
