"""
Tests for Configuration

Environment variables are set per test with monkeypatch; the cached
settings object is cleared around every test.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from biztrack.config import get_settings, validate_all_settings
from biztrack.config.settings import AppSettings, GeminiSettings
from biztrack.models.ledger import Currency
from biztrack.orchestrator import default_business_settings


APP_ENV_VARS = [
    "BIZTRACK_LOG_LEVEL",
    "BIZTRACK_STORAGE_BACKEND",
    "BIZTRACK_DATA_DIR",
    "BIZTRACK_STRICT_VALIDATION",
    "BIZTRACK_DEFAULT_CURRENCY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in APP_ENV_VARS + ["GEMINI_API_KEY", "GOOGLE_SHEETS_CREDENTIALS_PATH", "GOOGLE_SHEETS_SPREADSHEET_ID"]:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self):
        """Test the settings of an unconfigured install."""
        settings = AppSettings()
        assert settings.storage_backend == "json"
        assert settings.data_dir == Path("data")
        assert settings.strict_validation is False
        assert settings.default_currency == "BDT"
        assert settings.default_low_stock_threshold == 5
        assert settings.log_level == "INFO"

    def test_environment_override(self, monkeypatch):
        """Test BIZTRACK_* variables."""
        monkeypatch.setenv("BIZTRACK_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("BIZTRACK_STRICT_VALIDATION", "true")
        monkeypatch.setenv("BIZTRACK_DEFAULT_CURRENCY", "USD")

        settings = AppSettings()
        assert settings.storage_backend == "memory"
        assert settings.strict_validation is True
        assert settings.default_currency == "USD"

    def test_log_level_normalized(self, monkeypatch):
        """Test that log levels are matched case-insensitively."""
        monkeypatch.setenv("BIZTRACK_LOG_LEVEL", " debug ")
        assert AppSettings().log_level == "DEBUG"

    def test_unknown_log_level(self):
        """Test that a misspelt level is rejected."""
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")

    def test_unknown_backend(self):
        """Test that only known backends are accepted."""
        with pytest.raises(ValidationError):
            AppSettings(storage_backend="postgres")

    def test_default_business_settings(self):
        """Test seeding a new business from app settings."""
        settings = default_business_settings(AppSettings(default_currency="USD", default_low_stock_threshold=2))
        assert settings.currency == Currency.USD
        assert settings.currency_symbol == "$"
        assert settings.low_stock_threshold == 2


class TestGeminiSettings:
    """Tests for GeminiSettings."""

    def test_defaults(self):
        """Test the model defaults."""
        settings = GeminiSettings(api_key="k")
        assert settings.model_name == "gemini-1.5-flash"
        assert settings.temperature == 0.2

    def test_temperature_bounds(self):
        """Test that temperature stays within 0..1."""
        with pytest.raises(ValidationError):
            GeminiSettings(api_key="k", temperature=1.5)

    def test_api_key_required(self):
        """Test that the API key has no default."""
        with pytest.raises(ValidationError):
            GeminiSettings()


class TestSettingsLoading:
    """Tests for get_settings and validate_all_settings."""

    def test_get_settings_cached(self):
        """Test that the settings object is built once."""
        assert get_settings() is get_settings()

    def test_validate_all_settings(self, monkeypatch):
        """Test that missing integrations are reported, not raised."""
        monkeypatch.setenv("GEMINI_API_KEY", "k")

        results = validate_all_settings()

        assert results["app"] is True
        assert results["gemini"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results

    def test_validate_reports_missing_gemini_key(self):
        """Test the error entry for an unconfigured Gemini key."""
        results = validate_all_settings()
        assert results["gemini"] is False
        assert "gemini_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
