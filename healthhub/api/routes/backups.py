"""Backup routes — build, download, validate, preview and restore user backups."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import Response
from pydantic import Field

from ...auth.rbac import PERM_MANAGE_BACKUPS, require_permission
from ...dependencies import get_app_config, get_backup_builder, get_restore_engine, get_session_registry
from ...errors import UploadFailure
from ...maintenance.backup import BackupBuilder, backup_filename, get_backup_stats, serialize_backup
from ...maintenance.restore import RestoreEngine
from ...maintenance.validator import parse_backup, validate_backup
from ...schemas import CamelModel, RestoreOptions, UserContext
from ...sessions import SessionRegistry
from ...utils.logging import get_logger

logger = get_logger("api.backups")

router = APIRouter(prefix="/backups", tags=["backups"])


class CreateBackupRequest(CamelModel):
    upload: bool = False
    folder_id: Optional[str] = None


class RestoreRequest(CamelModel):
    backup: Any
    options: RestoreOptions = Field(default_factory=RestoreOptions)


@router.post("")
async def create_backup(
    body: Optional[CreateBackupRequest] = None,
    builder: BackupBuilder = Depends(get_backup_builder),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_BACKUPS)),
):
    """Build a backup of the caller's content, optionally uploading a copy.

    The upload outcome is reported next to the backup; a failed upload
    never discards the backup that was built.
    """
    body = body or CreateBackupRequest()
    backup = await builder.create_backup(current_user.user_id, current_user.email)
    response = {
        "backup": backup.to_document(),
        "stats": get_backup_stats(backup).to_document(),
        "fileName": backup_filename(backup),
    }

    if body.upload:
        folder_id = body.folder_id or get_app_config().drive_folder_id
        try:
            if not folder_id:
                raise UploadFailure("No upload folder configured")
            info = await builder.upload_backup(backup, folder_id)
        except UploadFailure as e:
            logger.warning("backup_upload_reported_failed", user_id=current_user.user_id, error=str(e))
            response["upload"] = {"success": False, "error": str(e)}
        else:
            response["upload"] = {"success": True, "path": info.path, "size": info.size_bytes}

    return response


@router.get("/download")
async def download_backup(
    builder: BackupBuilder = Depends(get_backup_builder),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_BACKUPS)),
):
    """Download the caller's backup as a JSON file."""
    backup = await builder.create_backup(current_user.user_id, current_user.email)
    return Response(
        content=serialize_backup(backup).encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_filename(backup)}"'},
    )


@router.post("/validate")
async def validate_backup_file(
    document: Any = Body(...),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_BACKUPS)),
):
    """Structural check of an uploaded backup file. Never writes anything."""
    return validate_backup(document).to_document()


@router.post("/stats")
async def backup_file_stats(
    document: Any = Body(...),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_BACKUPS)),
):
    """Counts and size of a backup file, shown before a restore."""
    backup = parse_backup(document)
    return get_backup_stats(backup).to_document()


@router.post("/restore")
async def restore_backup(
    body: RestoreRequest,
    restore: RestoreEngine = Depends(get_restore_engine),
    sessions: SessionRegistry = Depends(get_session_registry),
    current_user: UserContext = Depends(require_permission(PERM_MANAGE_BACKUPS)),
):
    """Restore a backup into the caller's account."""
    try:
        report = await restore.restore_from_backup(body.backup, current_user.user_id, body.options)
    finally:
        # Partially applied restores also invalidate the cached layout
        sessions.drop(current_user.user_id)
    return {"success": True, "report": report.to_document()}
