"""Ledger aggregation package."""

from finance_tracker.analytics.aggregator import (
    category_breakdown,
    category_totals,
    expense_analytics,
    finance_summary,
    monthly_balances,
    monthly_trend,
    percentage_change,
    spending_suggestions,
    top_categories,
)

__all__ = [
    "category_breakdown",
    "category_totals",
    "expense_analytics",
    "finance_summary",
    "monthly_balances",
    "monthly_trend",
    "percentage_change",
    "spending_suggestions",
    "top_categories",
]
