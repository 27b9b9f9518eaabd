"""HealthHub — dashboard layout and backup service.

FastAPI entry point with lifespan management, background jobs, and CORS.
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.router import api_router
from .config import get_config
from .database import close_engine, create_tables
from .dependencies import get_scheduled_backup_job
from .middleware.error_handler import register_error_handlers
from .middleware.request_id import RequestIDMiddleware
from .utils.logging import get_logger, setup_logging

config = get_config()
setup_logging(
    debug=config.debug,
    log_dir=config.log_dir,
    log_max_bytes=config.log_max_bytes,
    log_backup_count=config.log_backup_count,
    version=__version__,
)
logger = get_logger("healthhub.main")

# Background tasks by name
_task_registry: dict[str, dict] = {}


def _register_task(name: str, coro_factory):
    """Register and start a background task."""
    task = asyncio.create_task(coro_factory())
    _task_registry[name] = {"task": task, "factory": coro_factory}
    return task


async def _scheduled_backup_loop():
    interval = config.scheduled_backup_interval_hours * 3600
    while True:
        try:
            await asyncio.sleep(interval)
            logger.info("scheduled_backup_starting")
            result = await get_scheduled_backup_job().run()
            logger.info(
                "scheduled_backup_complete",
                path=result["path"],
                users=result["users"],
                failed=len(result["failed"]),
            )
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error("scheduled_backup_error", error=str(e), exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # --- Startup ---
    logger.info("healthhub_starting", host=config.host, port=config.port)

    if config.secret_key == "CHANGE_ME_IN_PRODUCTION":
        if not config.debug:
            raise RuntimeError(
                "INSECURE_SECRET_KEY: default secret_key detected in production mode. "
                "Set a strong, unique SECRET_KEY in .env before deploying."
            )
        logger.warning("insecure_secret_key", hint="Set SECRET_KEY in .env before deploying")

    await create_tables(config)

    if config.scheduled_backup_enabled:
        _register_task("scheduled_backup", _scheduled_backup_loop)

    logger.info("healthhub_started", app=config.app_name)

    yield

    # --- Shutdown ---
    logger.info("healthhub_shutting_down")

    for entry in _task_registry.values():
        task = entry["task"]
        if not task.done():
            task.cancel()

    pending = [e["task"] for e in _task_registry.values() if not e["task"].done()]
    if pending:
        await asyncio.wait(pending, timeout=3.0)

    await close_engine()
    logger.info("healthhub_stopped")


app = FastAPI(
    title="HealthHub",
    description="Dashboard layout persistence and backup service",
    version=__version__,
    lifespan=lifespan,
)

# Register standard error handlers
register_error_handlers(app)

# CORS origins from config
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in config.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Added last so it runs first
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)


@app.get("/")
async def root():
    return {
        "name": config.app_name,
        "version": __version__,
        "status": "operational",
    }


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "scheduled_backup": config.scheduled_backup_enabled,
        "tasks": {name: not entry["task"].done() for name, entry in _task_registry.items()},
    }


def main():
    """Run the HealthHub server."""
    uvicorn.run(
        "healthhub.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
