from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VITRINE_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "vitrine"
    env: str = "dev"

    # Cache namespace. Bumping cache_version orphans every previously cached key.
    cache_version: str = Field(default="1.0.1", validation_alias="VITRINE_CACHE_VERSION")
    cache_key_prefix: str = Field(default="vitrine", validation_alias="VITRINE_CACHE_PREFIX")
    cache_ttl_seconds: float = Field(default=300.0, validation_alias="VITRINE_CACHE_TTL")

    # In-memory cache capacities
    page_cache_size: int = Field(default=50, validation_alias="VITRINE_PAGE_CACHE_SIZE")
    data_cache_size: int = Field(default=100, validation_alias="VITRINE_DATA_CACHE_SIZE")
    asset_cache_size: int = Field(default=30, validation_alias="VITRINE_ASSET_CACHE_SIZE")
    app_cache_size: int = Field(default=50, validation_alias="VITRINE_APP_CACHE_SIZE")

    # Session persistence
    session_lifetime_seconds: float = Field(
        default=24 * 60 * 60, validation_alias="VITRINE_SESSION_LIFETIME"
    )
    session_refresh_interval_seconds: float = Field(
        default=300.0, validation_alias="VITRINE_SESSION_REFRESH_INTERVAL"
    )

    # Durable storage (JSON file) and platform response caches
    storage_path: str = Field(
        default="~/.local/state/vitrine/storage.json", validation_alias="VITRINE_STORAGE_PATH"
    )
    response_cache_dir: str | None = Field(
        default=None, validation_alias="VITRINE_RESPONSE_CACHE_DIR"
    )

    # Authentication backend (GoTrue-compatible)
    auth_url: str | None = Field(default=None, validation_alias="VITRINE_AUTH_URL")
    auth_api_key: str | None = Field(default=None, validation_alias="VITRINE_AUTH_API_KEY")
    auth_timeout_seconds: float = Field(default=10.0, validation_alias="VITRINE_AUTH_TIMEOUT")

    # Error boundary retry policy
    recovery_max_attempts: int = Field(default=3, validation_alias="VITRINE_RECOVERY_MAX_ATTEMPTS")
    recovery_cooldown_seconds: float = Field(
        default=5.0, validation_alias="VITRINE_RECOVERY_COOLDOWN"
    )

    # Observability
    log_level: str = "INFO"
    log_json: bool = Field(default=False, validation_alias="VITRINE_LOG_JSON")


settings = Settings()
