"""Tests for configuration loading."""

import pytest
from decimal import Decimal

from finance_tracker.config import AppSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CURRENCY_SYMBOL", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.currency_symbol == "Rp"
        assert settings.thousands_separator == "."
        assert settings.top_categories_limit == 5
        assert settings.overspend_ratio == 1.2
        assert settings.savings_keywords_list == ["savings", "tabungan"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CURRENCY_SYMBOL", "$")
        monkeypatch.setenv("MONTH_LOCALE", "id")
        monkeypatch.setenv("SAVINGS_KEYWORDS", " Nest Egg , ,Tabungan")
        settings = AppSettings(_env_file=None)
        assert settings.currency_symbol == "$"
        assert settings.month_locale == "id"
        assert settings.savings_keywords_list == ["nest egg", "tabungan"]

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, storage_backend="postgres")

    def test_max_amount_is_decimal(self):
        settings = AppSettings(_env_file=None, max_amount="500")
        assert settings.max_amount == Decimal("500")


class TestValidateAll:
    """Tests for the startup check."""

    def test_missing_google_sheets_config_is_reported(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        status = validate_all_settings()

        assert status["google_sheets"] is False
        assert "google_sheets_error" in status
        assert status["app"] is True
