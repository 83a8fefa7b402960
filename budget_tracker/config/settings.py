"""
Configuration Management for Budget Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every setting has a working default, so the tracker runs with no .env file
at all; the file only overrides paths and display preferences.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Ledger persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    ledger_path: Path = Field(
        default=Path("budget_data.json"),
        description="JSON file holding the whole ledger"
    )
    audit_log_path: Optional[Path] = Field(
        default=None,
        description="JSON-lines file for audit events (None = log locally only)"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a ledger write is attempted before failing"
    )

    @property
    def metadata_path(self) -> Path:
        """Sidecar file for backup reminder state."""
        return self.ledger_path.with_suffix(".meta.json")


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Standard library log level name"
    )

    # Browsing range offered by the year selector
    first_year: int = Field(
        default=2023,
        ge=1970,
        description="First selectable year"
    )
    last_year: int = Field(
        default=2035,
        le=2200,
        description="Last selectable year"
    )

    currency_symbol: str = Field(
        default="€",
        max_length=3,
        description="Symbol appended to formatted amounts"
    )
    taxonomy_path: Optional[Path] = Field(
        default=None,
        description="Optional JSON file overriding the built-in categories"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lowercase level names."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode='after')
    def validate_year_range(self) -> 'AppSettings':
        """The year selector needs at least one year."""
        if self.last_year < self.first_year:
            raise ValueError("last_year cannot be before first_year")
        return self

    @property
    def year_range(self) -> list[int]:
        """Selectable years, inclusive."""
        return list(range(self.first_year, self.last_year + 1))


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<setting_name>_error" entry for each failure.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except ValueError as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except ValueError as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
