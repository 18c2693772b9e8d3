"""
Configuration Management for EstateFlow Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Matching thresholds, storage backend selection and external service
credentials are all visible in one place and validated at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackend(str, Enum):
    """Where the ledger blobs are kept."""
    FILE = "file"
    MEMORY = "memory"
    SHEETS = "sheets"


class LedgerSettings(BaseSettings):
    """
    Core ledger settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: StorageBackend = Field(
        default=StorageBackend.FILE,
        description="Blob store backend (file, memory or sheets)"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the JSON file blob store"
    )

    # Reconciliation thresholds
    match_date_window_days: int = Field(
        default=3,
        ge=0,
        le=31,
        description="Max days between statement line and ledger transaction"
    )
    match_amount_tolerance: float = Field(
        default=0.01,
        gt=0.0,
        le=1.0,
        description="Amounts closer than this are considered equal"
    )
    match_description_prefix_length: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Statement description prefix compared against vendor/description"
    )

    # Receipt draft checks
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a receipt date can be"
    )
    max_receipt_age_days: int = Field(
        default=730,
        ge=1,
        description="Receipts older than this are flagged for review"
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

    # Sheet names within the spreadsheet
    blobs_sheet_name: str = Field(
        default="LedgerData",
        description="Name of the sheet holding the ledger key/value blobs"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
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


class MindeeSettings(BaseSettings):
    """Mindee receipt OCR configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MINDEE_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Mindee API key"
    )


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

    # Sub-settings are loaded lazily so the ledger runs without
    # Google or Mindee credentials.

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def mindee(self) -> MindeeSettings:
        return MindeeSettings()


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

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries describing what is missing. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "google_sheets", "mindee"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
