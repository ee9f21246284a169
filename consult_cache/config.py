from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class Settings(BaseSettings):
    """Application configuration"""

    # Storage Settings
    storage_backend: Literal["sqlite", "memory"] = "sqlite"
    storage_path: str = "./data/consult_cache.db"
    storage_key: str = "smart_consultation_cache"
    storage_quota_bytes: int = 5 * 1024 * 1024

    # Cache Settings
    max_entries: int = 100
    default_ttl_ms: int = DAY_MS
    draft_ttl_ms: int = 2 * HOUR_MS
    draft_recovery_window_ms: int = 2 * HOUR_MS
    template_ttl_ms: int = 30 * DAY_MS
    emergency_prune_age_ms: int = 7 * DAY_MS

    # Cleanup Settings
    cleanup_interval_seconds: float = 3600

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CONSULT_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
