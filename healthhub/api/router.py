"""Master API router — includes all sub-routers."""

from fastapi import APIRouter

from .routes.backups import router as backups_router
from .routes.drive import router as drive_router
from .routes.layouts import router as layouts_router
from .routes.maintenance import router as maintenance_router
from .routes.navigation import router as navigation_router
from .routes.text_cards import router as text_cards_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(layouts_router)
api_router.include_router(text_cards_router)
api_router.include_router(backups_router)
api_router.include_router(maintenance_router)
api_router.include_router(navigation_router)
api_router.include_router(drive_router)
