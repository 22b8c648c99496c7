"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Local durable store (SQLAlchemy async URL); in-memory when unset
    database_url: str | None = None

    # Remote snapshot service; in-process store when unset
    remote_store_url: str | None = None
    remote_timeout_seconds: float = 4.0

    # Autosave debounce (milliseconds)
    autosave_delay_ms: int = 300

    # Segment defaults
    default_currency: str = "EUR"
    seed_sample_segments: bool = True

    # Conflict summary
    conflict_summary_limit: int = 5

    # Storage keys
    snapshot_key: str = "segments:snapshot"
    outbox_key: str = "segments:outbox"
    remote_snapshot_key: str = "cloud:segments"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
