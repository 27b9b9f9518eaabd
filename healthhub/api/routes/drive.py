"""Backup upload endpoint — stores a client-built backup file in cloud storage.

Kept wire-compatible with the hosted upload function the web client
calls: plain ``{success, ...}`` bodies instead of the API error envelope.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...dependencies import get_backup_builder
from ...errors import UploadFailure
from ...maintenance.backup import BackupBuilder
from ...utils.logging import get_logger

logger = get_logger("api.drive")

router = APIRouter(tags=["backups"])

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _failure(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@router.api_route("/backup-to-drive", methods=_ALL_METHODS)
async def backup_to_drive(
    request: Request,
    builder: BackupBuilder = Depends(get_backup_builder),
):
    """Upload ``backupData`` into ``folderId``.

    Only the presence of an ``Authorization`` header is checked here; the
    token itself is verified by the identity provider in front of the app.
    """
    if request.method != "POST":
        return _failure(405, "Method Not Allowed")

    if not request.headers.get("Authorization"):
        return _failure(401, "Unauthorized")

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    if not isinstance(body, dict) or not body.get("backupData") or not body.get("folderId"):
        return _failure(400, "Missing backupData or folderId")

    backup_data = body["backupData"]
    user_id = backup_data.get("userId") if isinstance(backup_data, dict) else None
    try:
        info = await builder.upload_document(backup_data, str(body["folderId"]), user_id=user_id)
    except UploadFailure as e:
        logger.error("drive_upload_failed", folder_id=body["folderId"], error=str(e))
        return _failure(500, "Failed to upload backup", details=str(e))

    return {
        "success": True,
        "fileId": info.path,
        "fileName": info.path.rsplit("/", 1)[-1],
        "size": info.size_bytes,
    }
