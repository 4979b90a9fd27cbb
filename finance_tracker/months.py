"""
Month key helpers.

A month key is the canonical ``YYYY-MM`` string that identifies a ledger
period. Incomes and expenses are keyed by it, and it sorts correctly as a
plain string.
"""

import re
from datetime import date
from typing import Optional

MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

MONTH_LABELS = {
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
    "id": [
        "Januari", "Februari", "Maret", "April", "Mei", "Juni",
        "Juli", "Agustus", "September", "Oktober", "November", "Desember",
    ],
}


def is_valid_month_key(value: object) -> bool:
    return isinstance(value, str) and MONTH_KEY_PATTERN.match(value) is not None


def parse_month_key(key: str) -> tuple[int, int]:
    """Split a month key into (year, month). Raises ValueError if malformed."""
    match = MONTH_KEY_PATTERN.match(key or "")
    if match is None:
        raise ValueError(f"Invalid month key: {key!r} (expected YYYY-MM)")
    return int(match.group(1)), int(match.group(2))


def make_month_key(year: int, month: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    return f"{year:04d}-{month:02d}"


def current_month_key(today: Optional[date] = None) -> str:
    today = today or date.today()
    return make_month_key(today.year, today.month)


def previous_month_key(key: str) -> str:
    year, month = parse_month_key(key)
    if month == 1:
        return make_month_key(year - 1, 12)
    return make_month_key(year, month - 1)


def month_name(key: str, locale: str = "en") -> str:
    """Display name for a month key, e.g. '2024-08' -> 'August 2024'."""
    year, month = parse_month_key(key)
    labels = MONTH_LABELS.get(locale, MONTH_LABELS["en"])
    return f"{labels[month - 1]} {year}"


def month_options(locale: str = "en") -> list[tuple[int, str]]:
    """(month number, label) pairs for select boxes."""
    labels = MONTH_LABELS.get(locale, MONTH_LABELS["en"])
    return [(index + 1, label) for index, label in enumerate(labels)]


def year_options(
    around: Optional[int] = None,
    before: int = 5,
    after: int = 20,
) -> list[int]:
    """Years offered by the forms: a window around the current year."""
    around = around or date.today().year
    return list(range(around - before, around + after + 1))
