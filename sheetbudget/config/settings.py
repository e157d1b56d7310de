"""
Configuration Management for sheetbudget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

Sheet layouts (which rows and columns hold which entity) are NOT
configuration: they describe the budget workbook template and live in
``sheetbudget.store.layouts``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets access configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        default="credentials/service_account.json",
        description="Path to Google service account credentials JSON"
    )
    open_retry_attempts: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Attempts when opening a spreadsheet (1 = no retry). Data reads/writes are never retried."
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before connecting a spreadsheet."
            )
        return v


class TrialSettings(BaseSettings):
    """Trial/license ledger configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRIAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    tracking_sheet_id: Optional[str] = Field(
        default=None,
        description="Spreadsheet ID of the trial tracking ledger"
    )
    encryption_key: Optional[str] = Field(
        default=None,
        description="Secret used to obfuscate stored email addresses"
    )
    trial_days: int = Field(
        default=30,
        ge=1,
        description="Length of a new trial window in days"
    )
    first_row: int = Field(
        default=3,
        ge=1,
        description="First ledger row (rows above hold headers)"
    )
    last_row: int = Field(
        default=100,
        description="Last ledger row scanned"
    )
    sheet_name: str = Field(
        default="Users",
        description="Worksheet inside the tracking spreadsheet"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.tracking_sheet_id and self.encryption_key)


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
    log_level: str = Field(
        default="INFO",
        description="Log level for the structured logger"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False = human-readable console output)"
    )

    # Connection profile
    profile_path: str = Field(
        default=".sheetbudget/profile.json",
        description="Where the connected spreadsheet location is remembered"
    )
    user_email: Optional[str] = Field(
        default=None,
        description="Email of the user this instance acts for (used by the trial ledger)"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def trial(self) -> TrialSettings:
        return TrialSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        trial = settings.trial
        results["trial"] = trial.is_configured
        if not trial.is_configured:
            results["trial_error"] = "TRIAL_TRACKING_SHEET_ID and TRIAL_ENCRYPTION_KEY are required"
    except Exception as e:
        results["trial"] = False
        results["trial_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
