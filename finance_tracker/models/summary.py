"""
Summary Models

Read-only views derived from the current incomes and expenses.
They are recomputed on every render and never persisted.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.ledger import ExpenseCategory, ExpenseItem


class BalanceOptions(BaseModel):
    """
    Behaviour switches for the monthly balance view.

    with_carry_over: fold the previous month's leftover into the
        current month's available funds (single-ledger mode).
    multi_user: the ledger belongs to one of several selectable users,
        so records of different owners must never be combined.
    """

    with_carry_over: bool = False
    multi_user: bool = True


class MonthlyBalance(BaseModel):
    """Income, spending and what is left for one month."""

    month: str
    month_name: str
    income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    carry_over: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    savings: Decimal = Decimal("0")
    expense_details: list[ExpenseItem] = Field(default_factory=list)
    has_income: bool = False
    has_expense: bool = False

    @property
    def available(self) -> Decimal:
        return self.income + self.carry_over

    @property
    def is_surplus(self) -> bool:
        return self.balance >= 0


class FinanceSummary(BaseModel):
    """Totals shown on the dashboard cards."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    total_savings: Decimal = Decimal("0")
    average_income: Decimal = Decimal("0")
    average_expenses: Decimal = Decimal("0")
    income_count: int = 0
    expense_count: int = 0

    @property
    def record_count(self) -> int:
        return self.income_count + self.expense_count


class CategoryTotal(BaseModel):
    """Summed amount for one label across all months."""

    label: str
    amount: Decimal
    share: float = Field(
        default=0.0,
        description="Percent of the overall item total"
    )


class CategoryBreakdown(BaseModel):
    """Summed amount for one explicit category."""

    category: ExpenseCategory
    amount: Decimal


class MonthlyTotal(BaseModel):
    month: str
    month_name: str
    amount: Decimal


class ExpenseAnalytics(BaseModel):
    """Everything the analytics section renders."""

    top_categories: list[CategoryTotal] = Field(default_factory=list)
    category_breakdown: list[CategoryBreakdown] = Field(default_factory=list)
    monthly_trend: list[MonthlyTotal] = Field(default_factory=list)
    average_spending: Decimal = Decimal("0")
    total_items_amount: Decimal = Decimal("0")
    latest_change_percent: Optional[float] = Field(
        default=None,
        description="Change between the two most recent months, if known"
    )
    suggestions: list[str] = Field(default_factory=list)
