"""Client settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the journal client."""

    api_url: str = Field(default="http://localhost:8080")
    api_version: str = Field(default="v1")
    request_timeout: float = Field(default=30.0)
    # Autosave debounce and preference lifetime
    autosave_delay_ms: int = Field(default=2000, ge=0)
    preference_ttl_days: int = Field(default=365, ge=1)
    # Durable client state (token, preferences, cached prompt)
    state_dir: Path = Field(default_factory=lambda: Path.home() / ".journal-client")
    log_level: str = Field(default="INFO")
    service_name: str = Field(default="journal-client")
    environment: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def base_url(self) -> str:
        """Root of the versioned REST API, e.g. ``http://host/api/v1``."""
        return f"{self.api_url.rstrip('/')}/api/{self.api_version}"


@lru_cache
def get_settings() -> Settings:
    """Return application settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
