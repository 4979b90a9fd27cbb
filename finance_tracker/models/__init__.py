"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseItem,
    Income,
    User,
)
from finance_tracker.models.summary import (
    BalanceOptions,
    CategoryBreakdown,
    CategoryTotal,
    ExpenseAnalytics,
    FinanceSummary,
    MonthlyBalance,
    MonthlyTotal,
)
from finance_tracker.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Expense",
    "ExpenseCategory",
    "ExpenseItem",
    "Income",
    "User",
    # Summary models
    "BalanceOptions",
    "CategoryBreakdown",
    "CategoryTotal",
    "ExpenseAnalytics",
    "FinanceSummary",
    "MonthlyBalance",
    "MonthlyTotal",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
