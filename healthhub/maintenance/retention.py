"""Backup retention — scheduled backup upload and cleanup of aged blobs."""

import json
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import ValidationError

from ..errors import HealthHubError, PersistenceError, UploadFailure
from ..persistence.gateway import PersistenceGateway
from ..users import UserDirectory
from ..utils.logging import get_logger
from .backup import BackupBuilder, scheduled_backup_path

logger = get_logger("maintenance.retention")

DEFAULT_RETENTION_DAYS = 90
DEFAULT_PROJECT_NAME = "HealthHub"


def _storage_prefix(config) -> str:
    project = getattr(config, "backup_project_name", DEFAULT_PROJECT_NAME)
    return f"backups/{project}/"


class RetentionManager:
    """Deletes backup blobs older than the retention window.

    Nothing is deleted unless at least one backup inside the window exists,
    so a clock or metadata problem can never wipe out the whole set.
    Overlapping runs are not guarded against; schedule a single instance.
    """

    def __init__(self, gateway: PersistenceGateway, config):
        self._gateway = gateway
        self._config = config

    @property
    def prefix(self) -> str:
        return _storage_prefix(self._config)

    async def cleanup_old_backups(self, now: Optional[datetime] = None) -> dict:
        """Run one retention pass over the backup prefix.

        Returns a summary dict with keys: found, recent, old, deleted,
        failed, skipped_reason.
        """
        now = now or datetime.now(timezone.utc)
        retention_days = getattr(self._config, "backup_retention_days", DEFAULT_RETENTION_DAYS)
        cutoff = now - timedelta(days=retention_days)

        blobs = await self._gateway.list_blobs(self.prefix)
        summary = {
            "found": len(blobs),
            "recent": 0,
            "old": 0,
            "deleted": 0,
            "failed": 0,
            "skipped_reason": None,
        }

        if not blobs:
            summary["skipped_reason"] = "no_backups"
            logger.info("retention_cleanup_skipped", reason="no_backups", prefix=self.prefix)
            return summary

        recent = [blob for blob in blobs if blob.created_at > cutoff]
        old = [blob for blob in blobs if blob.created_at <= cutoff]
        summary["recent"] = len(recent)
        summary["old"] = len(old)

        if not recent:
            summary["skipped_reason"] = "no_recent_backups"
            logger.warning(
                "retention_cleanup_skipped",
                reason="no_recent_backups",
                old=len(old),
                cutoff_days=retention_days,
            )
            return summary

        for blob in old:
            try:
                await self._gateway.delete_blob(blob.path)
            except PersistenceError as e:
                summary["failed"] += 1
                logger.warning("retention_blob_delete_failed", path=blob.path, error=str(e))
                continue
            summary["deleted"] += 1
            logger.info(
                "retention_blob_deleted",
                path=blob.path,
                age_days=(now - blob.created_at).days,
            )

        logger.info("retention_cleanup_complete", cutoff_days=retention_days, **summary)
        return summary


class ScheduledBackupJob:
    """Uploads one blob with every known user's backup, then runs retention."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        builder: BackupBuilder,
        users: UserDirectory,
        config,
    ):
        self._gateway = gateway
        self._builder = builder
        self._users = users
        self._config = config
        self._retention = RetentionManager(gateway, config)

    async def run(self, now: Optional[datetime] = None) -> dict:
        """Back up all users and clean up old blobs.

        A user whose backup cannot be built is logged and listed under
        ``failed``; the other users are still backed up.

        Returns:
            dict with keys: path, users, failed, size, cleanup
        """
        now = now or datetime.now(timezone.utc)
        users = await self._users.list_users()
        if not users:
            logger.warning("scheduled_backup_no_users")

        backups = []
        failed = []
        for user in users:
            try:
                backup = await self._builder.create_backup(user.user_id, user.email, backup_type="automatic")
            except (HealthHubError, ValidationError) as e:
                logger.error("scheduled_backup_user_failed", user_id=user.user_id, error=str(e))
                failed.append(user.user_id)
                continue
            backups.append(backup.to_document())

        output = {
            "timestamp": now.isoformat(),
            "backups": backups,
            "metadata": {
                "project": getattr(self._config, "backup_project_name", DEFAULT_PROJECT_NAME),
                "totalUsers": len(backups),
                "failedUsers": failed,
                "backupDate": now.date().isoformat(),
            },
        }
        path = scheduled_backup_path(self._retention.prefix, now)
        try:
            info = await self._gateway.put_blob(
                path,
                json.dumps(output, indent=2, ensure_ascii=False).encode("utf-8"),
                content_type="application/json",
                metadata={"timestamp": now.isoformat(), "type": "automatic"},
            )
        except PersistenceError as e:
            logger.error("scheduled_backup_upload_failed", path=path, error=str(e))
            raise UploadFailure(f"Failed to upload scheduled backup: {e}") from e

        logger.info(
            "scheduled_backup_uploaded",
            path=path,
            users=len(backups),
            failed=len(failed),
            size=info.size_bytes,
        )

        cleanup = await self._retention.cleanup_old_backups(now=now)
        return {
            "path": path,
            "users": len(backups),
            "failed": failed,
            "size": info.size_bytes,
            "cleanup": cleanup,
        }
