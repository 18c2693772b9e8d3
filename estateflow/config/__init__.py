"""Configuration package."""

from estateflow.config.settings import (
    GoogleSheetsSettings,
    LedgerSettings,
    MindeeSettings,
    Settings,
    StorageBackend,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GoogleSheetsSettings",
    "LedgerSettings",
    "MindeeSettings",
    "Settings",
    "StorageBackend",
    "get_settings",
    "validate_all_settings",
]
