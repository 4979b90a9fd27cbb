"""Form validation package."""

from finance_tracker.validation.validator import LedgerValidator, parse_amount

__all__ = ["LedgerValidator", "parse_amount"]
