"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for newsfab.

    All settings can be overridden via environment variables prefixed
    with NEWSFAB_ (e.g., NEWSFAB_REFRESH_INTERVAL_SECONDS=60).
    Command-line options take precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEWSFAB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Files
    config_file: str = "newsfab.yaml"
    output_file: str = "newsfab.html"  # empty string writes to stdout
    template_file: str = "html.tmpl"

    # Scheduling
    fetch_timeout_seconds: float = Field(default=10.0, gt=0.0, le=600.0)
    refresh_interval_seconds: float = Field(default=300.0, gt=0.0)
    shutdown_grace_seconds: float = Field(default=1.0, ge=0.0, le=60.0)

    # HTTP
    user_agent: str = "newsfab/0.1.0 (+feed aggregator)"
    max_connections: int = Field(default=20, ge=1, le=500)

    # Response cache
    cache_enabled: bool = True
    cache_dir: str = ".cache"

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def output_path(self) -> str | None:
        """Destination file, or None when output goes to stdout."""
        return self.output_file or None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
