"""HealthHub configuration system using Pydantic Settings."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HealthHubConfig(BaseSettings):
    """Main configuration class. Loads from .env file and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "HealthHub"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Database
    database_url: str = "sqlite+aiosqlite:///./healthhub.db"

    # Auth (tokens are issued by the external identity provider)
    secret_key: str = "CHANGE_ME_IN_PRODUCTION"
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 60

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # Blob storage
    blob_dir: str = "storage"

    # Backups
    backup_project_name: str = "HealthHub"
    backup_retention_days: int = 90
    scheduled_backup_enabled: bool = False
    scheduled_backup_interval_hours: int = 24
    drive_folder_id: Optional[str] = None

    @field_validator("backup_retention_days", "scheduled_backup_interval_hours")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def backup_storage_prefix(self) -> str:
        return f"backups/{self.backup_project_name}/"


def get_config() -> HealthHubConfig:
    """Factory function to create config instance."""
    return HealthHubConfig()
