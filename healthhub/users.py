"""User directory — users seen by this deployment, for scheduled backups."""

from __future__ import annotations

from datetime import datetime, timezone

from .persistence.gateway import PersistenceGateway, join_path
from .schemas import UserContext
from .utils.logging import get_logger

logger = get_logger("healthhub.users")


class UserDirectory:
    def __init__(self, gateway: PersistenceGateway):
        self._gateway = gateway

    async def register(self, user: UserContext) -> None:
        """Record that a user has been active; ``firstSeenAt`` is set once."""
        path = join_path("users", user.user_id)
        now = datetime.now(timezone.utc).isoformat()

        document = {"email": user.email, "role": user.role, "lastSeenAt": now}
        if await self._gateway.get_document(path) is None:
            document["firstSeenAt"] = now
            logger.info("user_registered", user_id=user.user_id, role=user.role)
        await self._gateway.set_document(path, document, merge=True)

    async def list_users(self) -> list[UserContext]:
        snapshots = await self._gateway.list_documents("users")
        return [
            UserContext(
                user_id=snapshot.id,
                role=snapshot.data.get("role", "viewer"),
                email=snapshot.data.get("email", ""),
            )
            for snapshot in snapshots
        ]
