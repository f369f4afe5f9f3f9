"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
Each concern has its own settings block with a dedicated env prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TraversalSettings(BaseSettings):
    """Path enumeration and loop detection configuration."""

    model_config = SettingsConfigDict(env_prefix="TRAVERSAL_")

    # Cooperative scheduling
    progress_interval_ms: int = Field(default=100, ge=0, le=10000)

    # Result publication
    batch_size: int = Field(default=10, ge=1, le=10000)

    # Bounds
    path_length_multiplier: int = Field(
        default=2, ge=1, le=10,
        description="Maximum path length as a multiple of the step count"
    )
    max_visits_per_step: int = Field(
        default=1, ge=1, le=2,
        description="How often a step may appear in one path (1 = simple paths)"
    )

    @property
    def progress_interval_seconds(self) -> float:
        """Progress interval converted to seconds."""
        return self.progress_interval_ms / 1000


class SearchSettings(BaseSettings):
    """Search controller configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    # Pagination
    page_size: int = Field(default=250, ge=1, le=10000)


class GuardSettings(BaseSettings):
    """Duplicate request guard configuration."""

    model_config = SettingsConfigDict(env_prefix="GUARD_")

    duplicate_window_ms: int = Field(default=500, ge=0, le=60000)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    include_timestamp: bool = True
    include_caller: bool = True


class Settings(BaseSettings):
    """Main application settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application info
    app_name: str = "StepGraph"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Sub-configurations
    traversal: TraversalSettings = Field(default_factory=TraversalSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    guard: GuardSettings = Field(default_factory=GuardSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
