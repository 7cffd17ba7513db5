"""
Configuration Management for BizTrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Process-level configuration lives here, business settings
(currency, platforms, stock policy) live in the ledger state. The values
below only seed a brand-new business; once state has been saved, the
stored settings win.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
    
    # Each ledger collection gets its own worksheet: "<prefix><collection>"
    worksheet_prefix: str = Field(
        default="biztrack_",
        description="Prefix for collection worksheet names"
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for business insights."""
    
    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )
    
    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.
    
    Loads configuration from BIZTRACK_* environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="BIZTRACK_",
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
        description="Minimum level for structured logs"
    )
    
    # Storage
    storage_backend: Literal["memory", "json", "google_sheets"] = Field(
        default="json",
        description="Where ledger collections are persisted"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the JSON file backend"
    )
    
    # Validation
    strict_validation: bool = Field(
        default=False,
        description="Reject negative prices, amounts and charges"
    )
    
    # Defaults for a fresh business
    default_currency: Literal["BDT", "USD"] = Field(
        default="BDT",
        description="Currency used when no settings were saved yet"
    )
    default_low_stock_threshold: int = Field(
        default=5,
        ge=0,
        description="Products below this stock count are flagged"
    )
    default_allow_negative_stock: bool = Field(
        default=False,
        description="Allow sales that take stock below zero"
    )
    
    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Log levels are matched upper-case."""
        level = v.strip().upper()
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
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()
    
    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()
    
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
    
    Returns a dict of {setting_name: is_valid}, with a
    "<name>_error" entry for each failure. Useful for startup checks.
    """
    results = {}
    settings = get_settings()
    
    for name in ("app", "google_sheets", "gemini"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results
