"""
Configuration Management for ArthMitra

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.credentials import GeminiCredentials


DEFAULT_TRANSACTION_BODY_PATTERN = (
    "(.*)transaction(.*)|(.*)credited(.*)|(.*)debited(.*)|(.*)payment(.*)"
)


class GeminiSettings(BaseSettings):
    """
    Gemini LLM configuration.

    SMS scanning and the insights chat use separate key pairs so that a
    burst of SMS extraction calls cannot exhaust the chat quota.
    """

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    sms_primary_api_key: Optional[str] = Field(
        default=None,
        description="Primary Gemini API key for SMS scanning"
    )
    sms_backup_api_key: Optional[str] = Field(
        default=None,
        description="Backup Gemini API key for SMS scanning"
    )
    insights_primary_api_key: Optional[str] = Field(
        default=None,
        description="Primary Gemini API key for the insights chat"
    )
    insights_backup_api_key: Optional[str] = Field(
        default=None,
        description="Backup Gemini API key for the insights chat"
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model to use"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )

    @property
    def sms_credentials(self) -> GeminiCredentials:
        return GeminiCredentials(
            primary=self.sms_primary_api_key,
            backup=self.sms_backup_api_key,
        )

    @property
    def insights_credentials(self) -> GeminiCredentials:
        return GeminiCredentials(
            primary=self.insights_primary_api_key,
            backup=self.insights_backup_api_key,
        )


class SupabaseSettings(BaseSettings):
    """Hosted backend (Supabase) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL"
    )
    key: str = Field(
        ...,
        description="Supabase anon or service key"
    )
    transactions_table: str = Field(
        default="transactions",
        description="Table holding user transactions"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
        description="Name of the sheet for transactions"
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


class ScanSettings(BaseSettings):
    """SMS scanning configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMS_SCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    state_path: Path = Field(
        default=Path.home() / ".arthmitra" / "state.json",
        description="File backing the scan-state key-value store"
    )
    body_pattern: Optional[str] = Field(
        default=DEFAULT_TRANSACTION_BODY_PATTERN,
        description="Regex used to prefilter inbox messages (empty = no prefilter)"
    )
    inbox_limit: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of inbox messages read per scan"
    )
    termux_command: str = Field(
        default="termux-sms-list",
        description="Termux:API command used to read the inbox"
    )


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Signed-in user whose transactions are read and written"
    )
    transaction_store_backend: Literal["supabase", "google_sheets"] = Field(
        default="supabase",
        description="Which transaction store implementation to use"
    )
    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone for transaction dates (default: device local time)"
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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def scan(self) -> ScanSettings:
        return ScanSettings()

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

    for name in ("gemini", "supabase", "google_sheets", "scan", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if results.get("gemini"):
        results["gemini_sms_key"] = settings.gemini.sms_credentials.has_any

    return results
