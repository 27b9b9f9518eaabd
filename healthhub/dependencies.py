"""FastAPI dependency injection providers."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from .config import HealthHubConfig, get_config
from .database import get_session_factory
from .layout.repository import LayoutRepository
from .maintenance.backup import BackupBuilder
from .maintenance.restore import RestoreEngine
from .maintenance.retention import RetentionManager, ScheduledBackupJob
from .navigation import NavigationSettings
from .persistence import LocalBlobStore, SQLDocumentStore, StorageGateway
from .schemas import UserContext
from .sessions import SessionRegistry
from .textcards.store import TextCardStore
from .users import UserDirectory
from .utils.logging import get_logger
from .utils.security import decode_access_token

_dep_logger = get_logger("dependencies")

security_scheme = HTTPBearer(auto_error=False)

_config_instance: HealthHubConfig | None = None
_gateway = None
_layout_repository = None
_text_card_store = None
_user_directory = None
_session_registry = None
_navigation_settings = None
_backup_builder = None
_restore_engine = None
_retention_manager = None
_scheduled_backup_job = None


def get_app_config() -> HealthHubConfig:
    """Get the application config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = get_config()
    return _config_instance


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    config: HealthHubConfig = Depends(get_app_config),
) -> UserContext:
    """Validate the bearer token and return the caller's identity."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(
        credentials.credentials,
        config.secret_key,
        config.jwt_algorithm,
    )
    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UserContext(
            user_id=payload["sub"],
            role=payload.get("role", "viewer"),
            email=payload.get("email", ""),
        )
    except ValidationError as e:
        _dep_logger.warning("token_claims_invalid", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_gateway() -> StorageGateway:
    """Get the document/blob storage gateway singleton."""
    global _gateway
    if _gateway is None:
        config = get_app_config()
        _gateway = StorageGateway(
            documents=SQLDocumentStore(get_session_factory(config)),
            blobs=LocalBlobStore(config.blob_dir),
        )
    return _gateway


def get_layout_repository() -> LayoutRepository:
    global _layout_repository
    if _layout_repository is None:
        _layout_repository = LayoutRepository(get_gateway())
    return _layout_repository


def get_text_card_store() -> TextCardStore:
    global _text_card_store
    if _text_card_store is None:
        _text_card_store = TextCardStore(get_gateway())
    return _text_card_store


def get_user_directory() -> UserDirectory:
    global _user_directory
    if _user_directory is None:
        _user_directory = UserDirectory(get_gateway())
    return _user_directory


def get_session_registry() -> SessionRegistry:
    """Get the per-user layout engine registry singleton."""
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry(get_layout_repository(), get_user_directory())
    return _session_registry


def get_navigation_settings() -> NavigationSettings:
    global _navigation_settings
    if _navigation_settings is None:
        _navigation_settings = NavigationSettings(get_gateway())
    return _navigation_settings


def get_backup_builder() -> BackupBuilder:
    global _backup_builder
    if _backup_builder is None:
        _backup_builder = BackupBuilder(get_gateway(), get_layout_repository(), get_text_card_store())
    return _backup_builder


def get_restore_engine() -> RestoreEngine:
    global _restore_engine
    if _restore_engine is None:
        _restore_engine = RestoreEngine(get_layout_repository(), get_text_card_store())
    return _restore_engine


def get_retention_manager() -> RetentionManager:
    global _retention_manager
    if _retention_manager is None:
        _retention_manager = RetentionManager(get_gateway(), get_app_config())
    return _retention_manager


def get_scheduled_backup_job() -> ScheduledBackupJob:
    global _scheduled_backup_job
    if _scheduled_backup_job is None:
        _scheduled_backup_job = ScheduledBackupJob(
            get_gateway(),
            get_backup_builder(),
            get_user_directory(),
            get_app_config(),
        )
    return _scheduled_backup_job


def reset_singletons() -> None:
    """Drop every cached service so the next request rebuilds them."""
    global _config_instance, _gateway, _layout_repository, _text_card_store
    global _user_directory, _session_registry, _navigation_settings
    global _backup_builder, _restore_engine, _retention_manager, _scheduled_backup_job
    _config_instance = None
    _gateway = None
    _layout_repository = None
    _text_card_store = None
    _user_directory = None
    _session_registry = None
    _navigation_settings = None
    _backup_builder = None
    _restore_engine = None
    _retention_manager = None
    _scheduled_backup_job = None
