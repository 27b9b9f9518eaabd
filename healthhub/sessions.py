"""Per-user session registry — one layout engine per active user."""

from __future__ import annotations

from typing import Optional

from .errors import PersistenceError
from .layout.engine import LayoutEngine
from .layout.repository import LayoutRepository
from .schemas import UserContext
from .users import UserDirectory
from .utils.logging import get_logger

logger = get_logger("healthhub.sessions")


class SessionRegistry:
    """Hands out the user's layout engine, creating and loading it on first use.

    Requests for a different page than the engine currently shows navigate
    the engine, which cancels any open edit session.
    """

    def __init__(self, repository: LayoutRepository, users: UserDirectory):
        self._repository = repository
        self._users = users
        self._engines: dict[str, LayoutEngine] = {}

    async def get_engine(self, user: UserContext, page: Optional[str] = None) -> LayoutEngine:
        """The user's engine, navigated to ``page`` when one is given."""
        engine = self._engines.get(user.user_id)
        if engine is None or engine.user != user:
            engine = LayoutEngine(self._repository, user, page=page or "dashboard")
            self._engines[user.user_id] = engine
            try:
                await self._users.register(user)
            except PersistenceError as e:
                logger.warning("user_register_failed", user_id=user.user_id, error=str(e))
            result = await engine.load_layout()
            if not result.ok:
                logger.warning("session_started_degraded", user_id=user.user_id, error=result.error)
            logger.info("session_started", user_id=user.user_id, role=user.role, page=engine.page)
        elif page is not None and engine.page != page:
            await engine.switch_page(page)
        return engine

    def drop(self, user_id: str) -> None:
        """Forget a user's engine so the next request reloads persisted state."""
        if self._engines.pop(user_id, None) is not None:
            logger.info("session_dropped", user_id=user_id)

    def clear(self) -> None:
        self._engines.clear()
