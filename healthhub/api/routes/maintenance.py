"""Maintenance routes — scheduled backups and backup retention."""

from fastapi import APIRouter, Depends

from ...auth.rbac import PERM_MANAGE_SETTINGS, require_permission
from ...dependencies import get_app_config, get_gateway, get_retention_manager, get_scheduled_backup_job
from ...maintenance.retention import RetentionManager, ScheduledBackupJob
from ...persistence import StorageGateway
from ...schemas import UserContext

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/backup")
async def trigger_backup(
    job: ScheduledBackupJob = Depends(get_scheduled_backup_job),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_SETTINGS)),
):
    """Run the all-users backup and retention pass now (admin only)."""
    result = await job.run()
    return {
        "status": "backup_created",
        "path": result["path"],
        "users": result["users"],
        "failed": result["failed"],
        "size": result["size"],
        "cleanup": result["cleanup"],
    }


@router.get("/backups")
async def list_backups(
    gateway: StorageGateway = Depends(get_gateway),
    manager: RetentionManager = Depends(get_retention_manager),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_SETTINGS)),
):
    """List stored scheduled backups, newest first (admin only)."""
    blobs = await gateway.list_blobs(manager.prefix)
    blobs.sort(key=lambda blob: blob.created_at, reverse=True)
    backups = [
        {
            "path": blob.path,
            "size": blob.size_bytes,
            "created_at": blob.created_at.isoformat(),
        }
        for blob in blobs
    ]
    return {"backups": backups, "count": len(backups)}


@router.post("/cleanup")
async def trigger_cleanup(
    manager: RetentionManager = Depends(get_retention_manager),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_SETTINGS)),
):
    """Delete backups past the retention window (admin only)."""
    summary = await manager.cleanup_old_backups()
    return {"status": "cleanup_complete", "summary": summary}


@router.get("/retention")
async def get_retention_config(
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_SETTINGS)),
):
    """Get current retention configuration (admin only)."""
    config = get_app_config()
    return {
        "backup_retention_days": config.backup_retention_days,
        "backup_storage_prefix": config.backup_storage_prefix,
        "scheduled_backup_enabled": config.scheduled_backup_enabled,
        "scheduled_backup_interval_hours": config.scheduled_backup_interval_hours,
    }
