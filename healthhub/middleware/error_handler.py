"""Standard error handler — consistent error responses across all routes."""

from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import (
    BackupValidationError,
    LayoutError,
    NotFoundError,
    PersistenceError,
    RestoreFailure,
    UploadFailure,
)
from ..utils.logging import get_logger

logger = get_logger("middleware.error_handler")


def _error_response(request: Request, status_code: int, detail: str, **extra: Any) -> JSONResponse:
    content = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": getattr(request.state, "request_id", None),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def register_error_handlers(app: FastAPI) -> None:
    """Register standard and domain error handlers on the app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, 422, "Validation error", errors=exc.errors())

    @app.exception_handler(BackupValidationError)
    async def backup_validation_handler(request: Request, exc: BackupValidationError):
        return _error_response(request, 422, "Invalid backup file", errors=exc.errors)

    @app.exception_handler(LayoutError)
    async def layout_error_handler(request: Request, exc: LayoutError):
        return _error_response(request, 400, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(request, 404, str(exc))

    @app.exception_handler(RestoreFailure)
    async def restore_failure_handler(request: Request, exc: RestoreFailure):
        logger.error("restore_failed", step=exc.step, error=str(exc.cause))
        return _error_response(
            request,
            500,
            "Restore did not complete; data may be partially restored",
            step=exc.step,
            reason=str(exc.cause),
        )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error("persistence_error", operation=exc.operation, path=exc.path)
        return _error_response(request, 502, "Storage is unavailable, changes may not have been saved")

    @app.exception_handler(UploadFailure)
    async def upload_failure_handler(request: Request, exc: UploadFailure):
        return _error_response(request, 502, str(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error_response(request, 400, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=str(request.url.path),
            exc_info=True,
        )
        return _error_response(request, 500, "Internal server error")
