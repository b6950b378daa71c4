"""
Configuration Management for Wallet Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Ledger policy (edit window, filter windows, defaults) lives next to the
storage wiring so every tunable rule is visible in one place and
validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger policy configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    # Edit-lock window
    edit_window_hours: float = Field(
        default=12.0,
        gt=0,
        description="Hours after creation during which a transaction can be edited"
    )

    # Time-window filter sizes
    weekly_window_hours: float = Field(
        default=168.0,
        gt=0,
        description="Size of the Weekly filter window in hours"
    )
    monthly_window_hours: float = Field(
        default=720.0,
        gt=0,
        description="Size of the Monthly filter window in hours"
    )

    # Field defaults
    default_category: str = Field(
        default="General",
        min_length=1,
        description="Category applied when none is given"
    )
    default_division: str = Field(
        default="Personal",
        min_length=1,
        description="Division applied when none is given"
    )
    max_description_length: int = Field(
        default=200,
        ge=1,
        description="Maximum description length"
    )
    max_name_length: int = Field(
        default=50,
        ge=1,
        description="Maximum length of category and division names"
    )

    # Read retries (writes are never retried)
    read_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for idempotent reads on transient store failure"
    )
    read_retry_min_wait_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Minimum backoff between read attempts"
    )
    read_retry_max_wait_seconds: float = Field(
        default=4.0,
        ge=0.0,
        description="Maximum backoff between read attempts"
    )

    @model_validator(mode='after')
    def validate_windows(self) -> 'LedgerSettings':
        """Monthly window must not be narrower than the weekly one."""
        if self.monthly_window_hours < self.weekly_window_hours:
            raise ValueError("Monthly window cannot be shorter than weekly window")
        if self.read_retry_max_wait_seconds < self.read_retry_min_wait_seconds:
            raise ValueError("Retry max wait cannot be below min wait")
        return self


class StorageSettings(BaseSettings):
    """Which storage backend holds the ledger."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "json_file", "google_sheets"] = Field(
        default="memory",
        description="Storage backend"
    )
    json_path: str = Field(
        default="data/ledger.json",
        description="Path of the JSON ledger file (json_file backend)"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet holding transactions"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with a matching
    ``<name>_error`` entry for each section that failed.
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "storage", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if results["storage"] and settings.storage.backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
