"""Application settings loaded from the environment."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "vidhub"
    app_env: str = "local"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./vidhub.db"

    access_token_secret: str = "local-access-secret-change-me-0123456789abcdef"
    refresh_token_secret: str = "local-refresh-secret-change-me-0123456789abcdef"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_minutes: int = 60 * 24 * 10
    allow_insecure_http_cookies: bool = False
    rotation_single_flight: bool = False

    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "vidhub-media"
    minio_secure: bool = False
    # Public base for stored object URLs; defaults to the MinIO endpoint.
    media_public_base_url: str | None = None

    upload_max_bytes: int = 5 * 1024 * 1024
    upload_staging_dir: str | None = None

    directory_timeout_seconds: float = 5.0
    storage_timeout_seconds: float = 30.0

    orphan_sweep_grace_minutes: int = 60


settings = Settings()
