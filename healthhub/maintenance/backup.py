"""Backup builder — versioned point-in-time snapshots of a user's content."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any, Optional

from ..errors import PersistenceError, ReadResult, UploadFailure
from ..layout.engine import LAYOUT_PAGES
from ..layout.repository import LayoutRepository
from ..persistence.gateway import BlobInfo, PersistenceGateway
from ..schemas import BackupContents, BackupData, BackupLayouts, BackupStats
from ..textcards.store import TextCardStore
from ..utils.logging import get_logger

logger = get_logger("maintenance.backup")

BACKUP_VERSION = "1.0.0"
SYSTEM_SETTINGS_PATH = "system/settings"
DRIVE_PREFIX = "drive"


def _date_part(iso_timestamp: str) -> str:
    return iso_timestamp.split("T")[0]


def serialize_backup(backup: BackupData) -> str:
    """Pretty-printed JSON in the backup file format."""
    return json.dumps(backup.to_document(), indent=2, ensure_ascii=False)


def backup_filename(backup: BackupData) -> str:
    """Download filename: ``health-hub-backup-<date>.json``."""
    return f"health-hub-backup-{_date_part(backup.backup_date)}.json"


def scheduled_backup_path(prefix: str, when: Optional[datetime] = None) -> str:
    """Blob path of a scheduled backup: ``<prefix><date>-healthhub-data.json``."""
    when = when or datetime.now(timezone.utc)
    return f"{prefix}{when.date().isoformat()}-healthhub-data.json"


def get_backup_stats(backup: BackupData | dict[str, Any]) -> BackupStats:
    """Summary counts and size of a backup, used to preview a restore.

    ``pages`` lists the pages referenced by text cards in first-seen order.
    """
    if isinstance(backup, BackupData):
        document = backup.to_document()
    else:
        document = backup

    data = document.get("data") or {}
    layouts = data.get("layouts") or {}
    text_cards = data.get("textCards") or []

    size_bytes = len(
        json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    )

    pages: list[str] = []
    for card in text_cards:
        page = card.get("page") or "dashboard"
        if page not in pages:
            pages.append(page)

    return BackupStats(
        text_cards_count=len(text_cards),
        presets_count=len(layouts.get("presets") or []),
        layouts_count=len(layouts.get("current") or []),
        total_size=f"{size_bytes / 1024:.2f} KB",
        pages=pages,
    )


class BackupBuilder:
    """Assembles backups from the layout repository and the text card store."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        layouts: LayoutRepository,
        text_cards: TextCardStore,
    ):
        self._gateway = gateway
        self._layouts = layouts
        self._text_cards = text_cards

    async def _read_system_settings(self) -> ReadResult[Optional[dict[str, Any]]]:
        try:
            return ReadResult(await self._gateway.get_document(SYSTEM_SETTINGS_PATH))
        except PersistenceError as e:
            return ReadResult.degraded(None, e)

    async def create_backup(
        self,
        user_id: str,
        user_email: str,
        backup_type: str = "manual",
    ) -> BackupData:
        """Snapshot a user's layouts, presets and text cards.

        The dashboard goes to ``layouts.current``; other stored pages with
        cards go to ``layouts.pages``.

        Layout and preset reads are integrity-critical and propagate
        ``PersistenceError``. System settings are supplementary: a failed
        read is logged and recorded as absent.

        Returns:
            BackupData ready for download or upload.
        """
        try:
            current = await self._layouts.load_current(user_id, "dashboard")
            pages = {}
            for page in LAYOUT_PAGES:
                if page == "dashboard":
                    continue
                cards = await self._layouts.load_current(user_id, page)
                if cards:
                    pages[page] = cards
            presets = await self._layouts.list_presets(user_id)
        except PersistenceError as e:
            logger.error("backup_failed", user_id=user_id, type=backup_type, error=str(e))
            raise

        text_cards = await self._text_cards.load_all_text_cards(user_id)

        settings = await self._read_system_settings()
        if not settings.ok:
            logger.warning("backup_settings_unavailable", user_id=user_id, error=settings.error)

        backup = BackupData(
            version=BACKUP_VERSION,
            backup_date=datetime.now(timezone.utc).isoformat(),
            user_id=user_id,
            user_email=user_email,
            data=BackupContents(
                layouts=BackupLayouts(current=current, presets=presets, pages=pages),
                text_cards=text_cards,
                system_settings=settings.value,
            ),
        )

        logger.info(
            "backup_created",
            user_id=user_id,
            type=backup_type,
            layout_cards=len(current),
            pages=sorted(pages),
            presets=len(presets),
            text_cards=len(text_cards),
        )
        return backup

    async def upload_backup(self, backup: BackupData, folder_id: str) -> BlobInfo:
        """Store a copy of a finished backup in cloud storage."""
        return await self.upload_document(backup.to_document(), folder_id, user_id=backup.user_id)

    async def upload_document(
        self,
        document: Any,
        folder_id: str,
        user_id: Optional[str] = None,
    ) -> BlobInfo:
        """Store a backup document under ``drive/<folder_id>/``, named by upload date.

        Raises:
            UploadFailure: the blob could not be written. The backup
            document itself stays valid.
        """
        if not folder_id or "/" in folder_id or folder_id in (".", ".."):
            raise UploadFailure(f"Invalid upload folder: {folder_id!r}")

        now = datetime.now(timezone.utc)
        file_name = f"health-hub-backup-{now.date().isoformat()}-{int(time.time() * 1000)}.json"
        path = f"{DRIVE_PREFIX}/{folder_id}/{file_name}"
        try:
            info = await self._gateway.put_blob(
                path,
                json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8"),
                content_type="application/json",
                metadata={"userId": user_id or "", "uploadedAt": now.isoformat()},
            )
        except PersistenceError as e:
            logger.error("backup_upload_failed", user_id=user_id, path=path, error=str(e))
            raise UploadFailure(f"Failed to upload backup: {e}") from e

        logger.info("backup_uploaded", user_id=user_id, path=path, size=info.size_bytes)
        return info
