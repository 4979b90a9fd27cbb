"""Tests for month keys and display formatting."""

import pytest
from datetime import date
from decimal import Decimal

from finance_tracker.formatting import format_currency, format_percent, format_signed
from finance_tracker.months import (
    current_month_key,
    is_valid_month_key,
    make_month_key,
    month_name,
    month_options,
    parse_month_key,
    previous_month_key,
    year_options,
)


class TestMonthKeys:
    """Tests for YYYY-MM month keys."""

    @pytest.mark.parametrize("key", ["2024-01", "2024-08", "1999-12"])
    def test_valid_keys(self, key):
        assert is_valid_month_key(key)

    @pytest.mark.parametrize("key", ["2024-8", "2024-00", "2024-13", "24-08", "", None, 202408])
    def test_invalid_keys(self, key):
        assert not is_valid_month_key(key)

    def test_parse_and_make(self):
        assert parse_month_key("2024-08") == (2024, 8)
        assert make_month_key(2024, 8) == "2024-08"

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_month_key("August")

    def test_make_rejects_bad_month(self):
        with pytest.raises(ValueError):
            make_month_key(2024, 13)

    def test_current_month_key(self):
        assert current_month_key(date(2024, 8, 17)) == "2024-08"

    def test_previous_month_wraps_year(self):
        assert previous_month_key("2024-01") == "2023-12"
        assert previous_month_key("2024-08") == "2024-07"

    def test_keys_sort_chronologically(self):
        keys = ["2024-10", "2023-12", "2024-02"]
        assert sorted(keys) == ["2023-12", "2024-02", "2024-10"]


class TestMonthNames:
    """Tests for display names."""

    def test_english_name(self):
        assert month_name("2024-08") == "August 2024"

    def test_indonesian_name(self):
        assert month_name("2024-08", locale="id") == "Agustus 2024"

    def test_unknown_locale_falls_back_to_english(self):
        assert month_name("2024-05", locale="xx") == "May 2024"

    def test_month_options(self):
        options = month_options("id")
        assert len(options) == 12
        assert options[0] == (1, "Januari")
        assert options[11] == (12, "Desember")

    def test_year_options_window(self):
        years = year_options(around=2024, before=5, after=20)
        assert years[0] == 2019
        assert years[-1] == 2044
        assert 2024 in years


class TestFormatting:
    """Tests for currency and percent text."""

    def test_rupiah_grouping(self):
        assert format_currency(Decimal("1200000")) == "Rp 1.200.000"

    def test_negative_amount(self):
        assert format_currency(Decimal("-500000")) == "-Rp 500.000"

    def test_comma_grouping_with_decimals(self):
        assert format_currency(1234.5, symbol="$", thousands_sep=",", decimals=2) == "$ 1,234.50"

    def test_dot_grouping_with_decimals(self):
        assert format_currency(1234.5, symbol="€", thousands_sep=".", decimals=2) == "€ 1.234,50"

    def test_signed(self):
        assert format_signed(Decimal("1000")) == "+Rp 1.000"
        assert format_signed(Decimal("-1000")) == "-Rp 1.000"

    def test_percent(self):
        assert format_percent(12.345) == "12.3%"
        assert format_percent(Decimal("50"), decimals=0) == "50%"
