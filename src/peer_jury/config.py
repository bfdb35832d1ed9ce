"""
Configuration management for the Peer Jury system.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every variable is prefixed with ``PEER_JURY_`` (e.g. ``PEER_JURY_DATA_FILE``).
    """

    model_config = SettingsConfigDict(
        env_prefix="PEER_JURY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================
    data_file: Path = Field(
        default=Path("./peer_jury_db.json"),
        description="JSON document holding users, projects, deliverables and grades",
    )

    # ==========================================================================
    # Jury Configuration
    # ==========================================================================
    default_jury_size: int = Field(
        default=3,
        ge=3,
        description="Jury size offered when a deliverable is created without one",
    )

    default_edit_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Minutes after the due instant during which jurors may edit grades",
    )

    random_seed: int | None = Field(
        default=None,
        description="Seed for jury selection (unset = system entropy)",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level for the CLI",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("data_file")
    @classmethod
    def validate_data_file(cls, v: Path) -> Path:
        """Ensure the directory holding the data file exists."""
        v.parent.mkdir(parents=True, exist_ok=True)
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
