"""Configuration package."""

from sheetbudget.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    TrialSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "TrialSettings",
    "get_settings",
    "validate_all_settings",
]
