"""
Tests for Finance Tracker

Test strategy:
1. Unit tests for individual components (models, validators, aggregations)
2. Integration tests for flows (with in-memory or fake storage)
3. No real API calls in tests
"""

import json

import pytest
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseItem,
    Income,
    User,
)
from finance_tracker.models.validation import ValidationIssue, ValidationResult
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_user_strips_whitespace(self):
        """Test that whitespace is stripped from the user name."""
        user = User(name="  Budi  ")
        assert user.name == "Budi"

    def test_user_rejects_blank_name(self):
        with pytest.raises(ValueError):
            User(name="   ")

    def test_expense_item_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            ExpenseItem(label="Food", amount=Decimal("-100"))

    def test_expense_item_defaults_to_other(self):
        item = ExpenseItem(label="Misc", amount=Decimal("10"))
        assert item.category == ExpenseCategory.OTHER
        assert item.is_savings is False

    def test_income_rejects_bad_month_key(self):
        with pytest.raises(ValueError, match="YYYY-MM"):
            Income(
                user_id=uuid4(),
                month="2024-13",
                month_name="Nope",
                salary=Decimal("1"),
            )

    def test_expense_total_is_sum_of_items(self):
        """The total always follows the items."""
        expense = Expense(
            user_id=uuid4(),
            month="2024-08",
            month_name="August 2024",
            total_expenses=Decimal("1"),  # ignored, items win
            expense_items=[
                ExpenseItem(label="Food", amount=Decimal("1200000")),
                ExpenseItem(
                    label="Savings",
                    amount=Decimal("800000"),
                    category=ExpenseCategory.SAVINGS,
                ),
            ],
        )
        assert expense.total_expenses == Decimal("2000000")
        assert expense.savings == Decimal("800000")

    def test_expense_items_are_linked(self):
        expense = Expense(
            user_id=uuid4(),
            month="2024-08",
            month_name="August 2024",
            expense_items=[ExpenseItem(label="Food", amount=Decimal("5"))],
        )
        assert expense.expense_items[0].expense_id == expense.id

    def test_expense_without_items_keeps_stored_total(self):
        """A header read back without items keeps its stored total."""
        expense = Expense(
            user_id=uuid4(),
            month="2024-08",
            month_name="August 2024",
            total_expenses=Decimal("750"),
        )
        assert expense.total_expenses == Decimal("750")


class TestExpenseCategories:
    """Tests for the category enum and label matching."""

    def test_category_values(self):
        assert ExpenseCategory.SAVINGS.value == "savings"
        assert ExpenseCategory("food") is ExpenseCategory.FOOD

    @pytest.mark.parametrize("label", ["Savings", "tabungan bulanan", "TABUNGAN"])
    def test_savings_keywords(self, label):
        assert ExpenseCategory.from_label(label) == ExpenseCategory.SAVINGS

    def test_keyword_table(self):
        assert ExpenseCategory.from_label("Groceries") == ExpenseCategory.FOOD
        assert ExpenseCategory.from_label("Taxi") == ExpenseCategory.TRANSPORT
        assert ExpenseCategory.from_label("Something else") == ExpenseCategory.OTHER

    def test_custom_savings_keywords(self):
        assert ExpenseCategory.from_label("Nest egg", ["nest egg"]) == ExpenseCategory.SAVINGS
        assert ExpenseCategory.from_label("Savings", ["nest egg"]) != ExpenseCategory.SAVINGS


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.INCOME_SAVED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.INCOME_SAVED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_sheets_row(self):
        """Test conversion to Google Sheets row."""
        user_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description="Failed",
            details={"operation": "save"},
            error_message="boom",
        )
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "save_failed"
        assert row[6] == str(user_id)
        assert json.loads(row[9]) == {"operation": "save"}
        assert row[10] == "boom"

    def test_record_written_description(self):
        income_id = uuid4()
        event = AuditEventBuilder.record_written(
            event_type=AuditEventType.INCOME_SAVED,
            entity_type="income",
            entity_id=income_id,
            user_id=uuid4(),
            month="2024-08",
            amount="5000000",
        )
        assert event.description == "Income saved for 2024-08"
        assert event.details == {"month": "2024-08", "amount": "5000000"}
        assert event.is_user_action is True

    def test_user_switched_to_none_is_cleared(self):
        event = AuditEventBuilder.user_switched(None)
        assert event.event_type == AuditEventType.USER_CLEARED

    def test_offline_load_is_warning(self):
        event = AuditEventBuilder.data_loaded(uuid4(), 1, 2, offline=True)
        assert event.event_type == AuditEventType.OFFLINE_FALLBACK
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            form="income",
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="salary",
                    issue_type="missing",
                    message="Salary is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.error_messages == ["Salary is required"]

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            form="expense",
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="items[1].amount",
                    issue_type="zero_amount",
                    message="Zero amount ignored",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
