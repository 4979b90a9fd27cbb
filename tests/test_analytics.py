"""
Tests for the ledger aggregations.

All functions are pure, so these tests build records directly.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from finance_tracker.analytics import (
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
from finance_tracker.models.ledger import Expense, ExpenseCategory, ExpenseItem, Income
from finance_tracker.models.summary import BalanceOptions
from finance_tracker.months import month_name

USER_ID = uuid4()


def make_income(month: str, salary: str) -> Income:
    return Income(
        user_id=USER_ID,
        month=month,
        month_name=month_name(month),
        salary=Decimal(salary),
    )


def make_expense(month: str, *items: tuple) -> Expense:
    return Expense(
        user_id=USER_ID,
        month=month,
        month_name=month_name(month),
        expense_items=[
            ExpenseItem(
                label=label,
                amount=Decimal(amount),
                category=ExpenseCategory.from_label(label),
            )
            for label, amount in items
        ],
    )


class TestMonthlyBalances:
    """Tests for the monthly balance table."""

    def test_august_scenario(self):
        """Salary 5,000,000 with Food + Savings items."""
        balances = monthly_balances(
            [make_income("2024-08", "5000000")],
            [make_expense("2024-08", ("Food", "1200000"), ("Savings", "800000"))],
        )
        assert len(balances) == 1
        august = balances[0]
        assert august.month_name == "August 2024"
        assert august.income == Decimal("5000000")
        assert august.total_expenses == Decimal("2000000")
        assert august.balance == Decimal("3000000")
        assert august.savings == Decimal("800000")
        assert [i.label for i in august.expense_details] == ["Food", "Savings"]

    def test_income_only_month_keeps_full_salary(self):
        balances = monthly_balances([make_income("2024-09", "4000000")], [])
        assert balances[0].balance == Decimal("4000000")
        assert balances[0].has_expense is False

    def test_expense_only_month_is_negative(self):
        balances = monthly_balances([], [make_expense("2024-09", ("Rent", "1500000"))])
        assert balances[0].balance == Decimal("-1500000")
        assert balances[0].has_income is False

    def test_newest_month_first(self):
        balances = monthly_balances(
            [make_income("2024-07", "1"), make_income("2024-09", "1")],
            [make_expense("2024-08", ("Food", "1"))],
        )
        assert [b.month for b in balances] == ["2024-09", "2024-08", "2024-07"]

    def test_last_record_for_a_month_wins(self):
        balances = monthly_balances(
            [make_income("2024-08", "100"), make_income("2024-08", "300")],
            [],
        )
        assert len(balances) == 1
        assert balances[0].income == Decimal("300")

    def test_carry_over_off_by_default(self):
        balances = monthly_balances(
            [make_income("2024-07", "1000"), make_income("2024-08", "1000")],
            [make_expense("2024-08", ("Food", "500"))],
        )
        august = balances[0]
        assert august.carry_over == Decimal("0")
        assert august.balance == Decimal("500")

    def test_carry_over_adds_positive_leftover(self):
        balances = monthly_balances(
            [make_income("2024-07", "1000"), make_income("2024-08", "1000")],
            [make_expense("2024-08", ("Food", "500"))],
            BalanceOptions(with_carry_over=True),
        )
        august, july = balances
        assert july.carry_over == Decimal("0")
        assert august.carry_over == Decimal("1000")
        assert august.balance == Decimal("1500")

    def test_negative_balance_is_not_carried(self):
        balances = monthly_balances(
            [make_income("2024-08", "1000")],
            [make_expense("2024-07", ("Rent", "400"))],
            BalanceOptions(with_carry_over=True),
        )
        august, july = balances
        assert july.balance == Decimal("-400")
        assert august.carry_over == Decimal("0")
        assert august.balance == Decimal("1000")

    def test_empty(self):
        assert monthly_balances([], []) == []

    def test_multi_user_rejects_mixed_owners(self):
        stranger = Income(
            user_id=uuid4(), month="2024-08", month_name="August 2024", salary=Decimal("1"),
        )
        with pytest.raises(ValueError, match="one user"):
            monthly_balances([make_income("2024-07", "1"), stranger], [])

    def test_single_ledger_pools_records(self):
        stranger = Income(
            user_id=uuid4(), month="2024-08", month_name="August 2024", salary=Decimal("1"),
        )
        balances = monthly_balances(
            [make_income("2024-07", "1"), stranger],
            [],
            BalanceOptions(multi_user=False),
        )
        assert len(balances) == 2


class TestFinanceSummary:
    """Tests for the summary cards."""

    def test_totals_and_averages(self):
        summary = finance_summary(
            [make_income("2024-07", "4000000"), make_income("2024-08", "5000000")],
            [make_expense("2024-08", ("Food", "1200000"), ("Savings", "800000"))],
        )
        assert summary.total_income == Decimal("9000000")
        assert summary.total_expenses == Decimal("2000000")
        assert summary.balance == Decimal("7000000")
        assert summary.total_savings == Decimal("800000")
        assert summary.average_income == Decimal("4500000")
        assert summary.average_expenses == Decimal("2000000")
        assert summary.income_count == 2
        assert summary.expense_count == 1

    def test_empty_gives_zeros(self):
        summary = finance_summary([], [])
        assert summary.total_income == Decimal("0")
        assert summary.average_expenses == Decimal("0")
        assert summary.record_count == 0


class TestCategories:
    """Tests for label and category rankings."""

    def test_labels_grouped_by_exact_spelling(self):
        totals = category_totals([
            make_expense("2024-07", ("Food", "100")),
            make_expense("2024-08", ("Food ", "50"), ("food", "30"), ("Rent", "70")),
        ])
        assert totals == {
            "Food": Decimal("150"),
            "food": Decimal("30"),
            "Rent": Decimal("70"),
        }

    def test_top_categories_limit_and_share(self):
        expense = make_expense(
            "2024-08",
            ("A", "10"), ("B", "60"), ("C", "30"), ("D", "5"), ("E", "20"), ("F", "25"),
        )
        top = top_categories([expense], limit=5)
        assert [c.label for c in top] == ["B", "C", "F", "E", "A"]
        assert top[0].share == pytest.approx(60 / 150 * 100)

    def test_ties_keep_first_encountered_order(self):
        expense = make_expense("2024-08", ("Zeta", "10"), ("Alpha", "10"), ("Mid", "10"))
        assert [c.label for c in top_categories([expense])] == ["Zeta", "Alpha", "Mid"]

    def test_analytics_ranks_ties_like_top_categories(self):
        expenses = [
            make_expense("2024-07", ("Rent", "10")),
            make_expense("2024-08", ("Food", "10")),
        ]
        analytics = expense_analytics(expenses)
        assert [c.label for c in analytics.top_categories] == [
            c.label for c in top_categories(expenses)
        ] == ["Rent", "Food"]

    def test_category_breakdown(self):
        expense = make_expense(
            "2024-08", ("Food", "100"), ("Groceries", "50"), ("Tabungan", "300"),
        )
        breakdown = category_breakdown([expense])
        assert breakdown[0].category == ExpenseCategory.SAVINGS
        assert breakdown[0].amount == Decimal("300")
        assert breakdown[1].category == ExpenseCategory.FOOD
        assert breakdown[1].amount == Decimal("150")

    def test_monthly_trend_is_ascending(self):
        trend = monthly_trend([
            make_expense("2024-09", ("Food", "3")),
            make_expense("2024-07", ("Food", "1")),
        ])
        assert [t.month for t in trend] == ["2024-07", "2024-09"]
        assert trend[1].amount == Decimal("3")


class TestPercentageChange:
    """Tests for percent change."""

    def test_increase(self):
        assert percentage_change(Decimal("100"), Decimal("150")) == pytest.approx(50.0)

    def test_decrease(self):
        assert percentage_change(Decimal("200"), Decimal("150")) == pytest.approx(-25.0)

    def test_zero_previous_is_zero(self):
        assert percentage_change(Decimal("0"), Decimal("150")) == 0.0


class TestSuggestions:
    """Tests for the plain-language tips."""

    def test_biggest_category(self):
        suggestions = spending_suggestions(
            [make_expense("2024-08", ("Food", "1200000"), ("Savings", "800000"))]
        )
        assert suggestions == ['"Food" is your biggest spending category (Rp 1.200.000).']

    def test_spending_went_up(self):
        suggestions = spending_suggestions([
            make_expense("2024-07", ("Food", "1000")),
            make_expense("2024-08", ("Food", "1500")),
        ])
        assert "Spending in August 2024 went up 50.0% compared to July 2024." in suggestions

    def test_spending_went_down(self):
        suggestions = spending_suggestions([
            make_expense("2024-07", ("Food", "2000")),
            make_expense("2024-08", ("Food", "1000")),
        ])
        assert (
            "Nice! Spending in August 2024 went down 50.0% compared to July 2024."
            in suggestions
        )

    def test_small_change_is_not_reported(self):
        suggestions = spending_suggestions([
            make_expense("2024-07", ("Food", "1000")),
            make_expense("2024-08", ("Food", "1050")),
        ])
        assert not any("went" in s for s in suggestions)

    def test_higher_than_usual(self):
        suggestions = spending_suggestions([
            make_expense("2024-06", ("Food", "1000")),
            make_expense("2024-07", ("Food", "1000")),
            make_expense("2024-08", ("Food", "4000")),
        ])
        # average 2000, latest 4000
        assert "Careful! August 2024 spending is 100.0% higher than your usual month." in suggestions

    def test_no_expenses(self):
        assert spending_suggestions([]) == []


class TestExpenseAnalytics:
    """Tests for the combined analytics section."""

    def test_no_data(self):
        assert expense_analytics([]) is None

    def test_full_section(self):
        analytics = expense_analytics([
            make_expense("2024-07", ("Food", "1000")),
            make_expense("2024-08", ("Food", "1200"), ("Savings", "800")),
        ])
        assert analytics is not None
        assert analytics.top_categories[0].label == "Food"
        assert analytics.total_items_amount == Decimal("3000")
        assert analytics.average_spending == Decimal("1500")
        assert analytics.latest_change_percent == pytest.approx(100.0)
        assert [t.month for t in analytics.monthly_trend] == ["2024-07", "2024-08"]
        assert analytics.suggestions

    def test_custom_currency_formatter(self):
        analytics = expense_analytics(
            [make_expense("2024-08", ("Food", "10"))],
            currency=lambda amount: f"${amount}",
        )
        assert analytics.suggestions[0] == '"Food" is your biggest spending category ($10).'
