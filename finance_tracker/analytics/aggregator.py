"""
Ledger Aggregations

DESIGN DECISION: Every number on the dashboard is a pure, deterministic
reduction over the incomes and expenses currently held in memory.
Nothing here touches storage, so the same inputs always give the same
summary and the functions can be tested without a backend.

GUARANTEES:
- One entry per month key; if a month appears twice, the last record wins
- No division by zero (treated as 0%)
- Empty input gives "no data" (None or zeros), never an exception
"""

from decimal import Decimal
from typing import Callable, Iterable, Optional

from finance_tracker.formatting import format_currency
from finance_tracker.models.ledger import Expense, ExpenseCategory, Income
from finance_tracker.models.summary import (
    BalanceOptions,
    CategoryBreakdown,
    CategoryTotal,
    ExpenseAnalytics,
    FinanceSummary,
    MonthlyBalance,
    MonthlyTotal,
)

ZERO = Decimal("0")


def _latest_by_month(records: Iterable) -> list:
    """Collapse records to one per month key, keeping first-seen order."""
    by_month: dict = {}
    for record in records:
        by_month[record.month] = record
    return list(by_month.values())


def _most_recent_first(expenses: Iterable[Expense]) -> list[Expense]:
    return sorted(_latest_by_month(expenses), key=lambda e: e.month, reverse=True)


def percentage_change(previous: Decimal, current: Decimal) -> float:
    """
    Percent change from previous to current.

    A previous value of zero gives 0.0 rather than dividing by zero.
    """
    if not previous:
        return 0.0
    return float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100)


# =============================================================================
# MONTHLY BALANCE
# =============================================================================

def monthly_balances(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
    options: Optional[BalanceOptions] = None,
) -> list[MonthlyBalance]:
    """
    Build the monthly balance table, newest month first.

    balance = salary (+ carry-over) - expense total. A month with only an
    expense has a negative balance; a month with only an income keeps the
    full salary.
    """
    options = options or BalanceOptions()
    incomes = list(incomes)
    expenses = list(expenses)
    if options.multi_user:
        owners = {r.user_id for r in incomes} | {r.user_id for r in expenses}
        if len(owners) > 1:
            raise ValueError("Monthly balances can only be built for one user at a time")
    month_map: dict[str, MonthlyBalance] = {}

    for income in incomes:
        entry = month_map.setdefault(
            income.month,
            MonthlyBalance(month=income.month, month_name=income.month_name),
        )
        entry.month_name = income.month_name
        entry.income = income.salary
        entry.has_income = True

    for expense in expenses:
        entry = month_map.setdefault(
            expense.month,
            MonthlyBalance(month=expense.month, month_name=expense.month_name),
        )
        if not entry.has_income:
            entry.month_name = expense.month_name
        entry.total_expenses = expense.total_expenses
        entry.savings = expense.savings
        entry.expense_details = list(expense.expense_items)
        entry.has_expense = True

    # Carry-over needs chronological order
    carry = ZERO
    for key in sorted(month_map):
        entry = month_map[key]
        entry.carry_over = carry if options.with_carry_over else ZERO
        entry.balance = entry.income + entry.carry_over - entry.total_expenses
        carry = max(entry.balance, ZERO)

    return sorted(month_map.values(), key=lambda b: b.month, reverse=True)


# =============================================================================
# DASHBOARD TOTALS
# =============================================================================

def finance_summary(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
) -> FinanceSummary:
    """Totals and per-record averages for the summary cards."""
    incomes = _latest_by_month(incomes)
    expenses = _latest_by_month(expenses)

    total_income = sum((i.salary for i in incomes), ZERO)
    total_expenses = sum((e.total_expenses for e in expenses), ZERO)

    return FinanceSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        total_savings=sum((e.savings for e in expenses), ZERO),
        average_income=total_income / len(incomes) if incomes else ZERO,
        average_expenses=total_expenses / len(expenses) if expenses else ZERO,
        income_count=len(incomes),
        expense_count=len(expenses),
    )


# =============================================================================
# CATEGORY ANALYTICS
# =============================================================================

def category_totals(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """
    Sum item amounts by label across all months.

    Labels are compared exactly after trimming, so "Food" and "food" are
    separate entries. Insertion order is first-encountered order.
    """
    totals: dict[str, Decimal] = {}
    for expense in _latest_by_month(expenses):
        for item in expense.expense_items:
            label = item.label.strip()
            if not label:
                continue
            totals[label] = totals.get(label, ZERO) + item.amount
    return totals


def top_categories(
    expenses: Iterable[Expense],
    limit: int = 5,
) -> list[CategoryTotal]:
    """Biggest labels by summed amount. Ties keep first-encountered order."""
    totals = category_totals(expenses)
    overall = sum(totals.values(), ZERO)

    # sorted() is stable, so equal amounts stay in insertion order
    ranked = sorted(totals.items(), key=lambda pair: pair[1], reverse=True)[:limit]

    return [
        CategoryTotal(
            label=label,
            amount=amount,
            share=float(amount / overall * 100) if overall else 0.0,
        )
        for label, amount in ranked
    ]


def category_breakdown(expenses: Iterable[Expense]) -> list[CategoryBreakdown]:
    """Totals per explicit category, largest first."""
    totals: dict[ExpenseCategory, Decimal] = {}
    for expense in _latest_by_month(expenses):
        for item in expense.expense_items:
            totals[item.category] = totals.get(item.category, ZERO) + item.amount

    ranked = sorted(totals.items(), key=lambda pair: pair[1], reverse=True)
    return [CategoryBreakdown(category=c, amount=a) for c, a in ranked]


def monthly_trend(expenses: Iterable[Expense]) -> list[MonthlyTotal]:
    """Expense total per month, oldest first (chart order)."""
    return [
        MonthlyTotal(month=e.month, month_name=e.month_name, amount=e.total_expenses)
        for e in sorted(_latest_by_month(expenses), key=lambda e: e.month)
    ]


def spending_suggestions(
    expenses: Iterable[Expense],
    top: Optional[list[CategoryTotal]] = None,
    trend_threshold_percent: float = 10.0,
    overspend_ratio: float = 1.2,
    currency: Callable[[Decimal], str] = format_currency,
) -> list[str]:
    """
    Plain-language tips derived from the spending pattern.

    1. Which label costs the most
    2. Whether the latest month went up or down against the one before
    3. Whether the latest month is well above the average
    """
    expenses = list(expenses)
    recent = _most_recent_first(expenses)
    if not recent:
        return []

    top = top if top is not None else top_categories(expenses, limit=1)
    suggestions = []

    if top:
        highest = top[0]
        suggestions.append(
            f'"{highest.label}" is your biggest spending category '
            f"({currency(highest.amount)})."
        )

    if len(recent) >= 2:
        change = percentage_change(recent[1].total_expenses, recent[0].total_expenses)
        if change > trend_threshold_percent:
            suggestions.append(
                f"Spending in {recent[0].month_name} went up {change:.1f}% "
                f"compared to {recent[1].month_name}."
            )
        elif change < -trend_threshold_percent:
            suggestions.append(
                f"Nice! Spending in {recent[0].month_name} went down "
                f"{abs(change):.1f}% compared to {recent[1].month_name}."
            )

    average = sum((e.total_expenses for e in recent), ZERO) / len(recent)
    current = recent[0].total_expenses
    if average > 0 and current > average * Decimal(str(overspend_ratio)):
        over = float((current / average - 1) * 100)
        suggestions.append(
            f"Careful! {recent[0].month_name} spending is {over:.1f}% "
            f"higher than your usual month."
        )

    return suggestions


def expense_analytics(
    expenses: Iterable[Expense],
    limit: int = 5,
    trend_threshold_percent: float = 10.0,
    overspend_ratio: float = 1.2,
    currency: Callable[[Decimal], str] = format_currency,
) -> Optional[ExpenseAnalytics]:
    """
    Full analytics section. Returns None when there is nothing to analyse.
    """
    expenses = list(expenses)
    recent = _most_recent_first(expenses)
    if not recent:
        return None

    # Rankings follow input order so ties match top_categories(expenses)
    top = top_categories(expenses, limit=limit)
    totals = category_totals(expenses)

    latest_change = None
    if len(recent) >= 2:
        latest_change = percentage_change(
            recent[1].total_expenses, recent[0].total_expenses
        )

    return ExpenseAnalytics(
        top_categories=top,
        category_breakdown=category_breakdown(expenses),
        monthly_trend=monthly_trend(recent),
        average_spending=sum((e.total_expenses for e in recent), ZERO) / len(recent),
        total_items_amount=sum(totals.values(), ZERO),
        latest_change_percent=latest_change,
        suggestions=spending_suggestions(
            recent,
            top=top,
            trend_threshold_percent=trend_threshold_percent,
            overspend_ratio=overspend_ratio,
            currency=currency,
        ),
    )
