"""Tests for the in-memory storage backend."""

import asyncio

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models.audit import AuditEvent, AuditEventType
from finance_tracker.models.ledger import Expense, ExpenseItem, Income, User
from finance_tracker.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    NotFoundError,
)


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


def make_expense(user_id, month="2024-08", *amounts):
    return Expense(
        user_id=user_id,
        month=month,
        month_name="August 2024",
        expense_items=[ExpenseItem(label=f"Item {n}", amount=Decimal(a)) for n, a in enumerate(amounts)],
    )


class TestUsers:
    """Tests for user records."""

    def test_create_and_list_newest_first(self, storage):
        first = asyncio.run(storage.create_user(User(name="Ana", created_at=datetime(2024, 1, 1))))
        second = asyncio.run(storage.create_user(User(name="Budi", created_at=datetime(2024, 2, 1))))
        users = asyncio.run(storage.list_users())
        assert [u.id for u in users] == [second.id, first.id]

    def test_duplicate_id(self, storage):
        user = User(name="Ana")
        asyncio.run(storage.create_user(user))
        with pytest.raises(DuplicateError):
            asyncio.run(storage.create_user(user))

    def test_get_user(self, storage):
        user = asyncio.run(storage.create_user(User(name="Ana")))
        assert asyncio.run(storage.get_user(user.id)).name == "Ana"
        assert asyncio.run(storage.get_user(uuid4())) is None


class TestIncomes:
    """Tests for income records."""

    def test_list_filters_by_user_and_sorts(self, storage):
        user_id = uuid4()
        for month in ("2024-07", "2024-09", "2024-08"):
            asyncio.run(storage.create_income(Income(
                user_id=user_id, month=month, month_name=month, salary=Decimal("1"),
            )))
        asyncio.run(storage.create_income(Income(
            user_id=uuid4(), month="2024-10", month_name="x", salary=Decimal("1"),
        )))

        incomes = asyncio.run(storage.list_incomes(user_id))
        assert [i.month for i in incomes] == ["2024-09", "2024-08", "2024-07"]

    def test_update_and_delete(self, storage):
        income = asyncio.run(storage.create_income(Income(
            user_id=uuid4(), month="2024-08", month_name="x", salary=Decimal("1"),
        )))
        updated = asyncio.run(storage.update_income(
            income.model_copy(update={"salary": Decimal("2")})
        ))
        assert updated.salary == Decimal("2")
        assert updated.updated_at >= income.updated_at

        assert asyncio.run(storage.delete_income(income.id)) is True
        assert asyncio.run(storage.delete_income(income.id)) is False

    def test_update_missing(self, storage):
        income = Income(user_id=uuid4(), month="2024-08", month_name="x", salary=Decimal("1"))
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_income(income))

    def test_returned_records_are_copies(self, storage):
        user_id = uuid4()
        asyncio.run(storage.create_income(Income(
            user_id=user_id, month="2024-08", month_name="x", salary=Decimal("1"),
        )))
        listed = asyncio.run(storage.list_incomes(user_id))
        listed[0].salary = Decimal("999")
        assert asyncio.run(storage.list_incomes(user_id))[0].salary == Decimal("1")


class TestExpenses:
    """Tests for expense headers and items."""

    def test_create_with_items(self, storage):
        user_id = uuid4()
        expense = make_expense(user_id, "2024-08", "100", "50")
        asyncio.run(storage.create_expense(expense))
        asyncio.run(storage.create_expense_items(expense.id, expense.expense_items))

        listed = asyncio.run(storage.list_expenses(user_id))
        assert len(listed) == 1
        assert listed[0].total_expenses == Decimal("150")
        assert {i.expense_id for i in listed[0].expense_items} == {expense.id}

    def test_items_need_an_expense(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.create_expense_items(
                uuid4(), [ExpenseItem(label="x", amount=Decimal("1"))]
            ))

    def test_replace_items(self, storage):
        user_id = uuid4()
        expense = make_expense(user_id, "2024-08", "100", "50")
        asyncio.run(storage.create_expense(expense))
        asyncio.run(storage.create_expense_items(expense.id, expense.expense_items))

        asyncio.run(storage.replace_expense_items(
            expense.id, [ExpenseItem(label="Only", amount=Decimal("7"))]
        ))
        listed = asyncio.run(storage.list_expenses(user_id))
        assert [i.label for i in listed[0].expense_items] == ["Only"]
        assert listed[0].total_expenses == Decimal("7")

    def test_delete_cascades_items(self, storage):
        user_id = uuid4()
        expense = make_expense(user_id, "2024-08", "100")
        asyncio.run(storage.create_expense(expense))
        asyncio.run(storage.create_expense_items(expense.id, expense.expense_items))

        assert asyncio.run(storage.delete_expense(expense.id)) is True
        assert asyncio.run(storage.list_expenses(user_id)) == []
        assert storage._items == {}


class TestAuditStorage:
    """Tests for the in-memory audit log."""

    def test_recent_events_newest_first(self):
        audit = InMemoryAuditStorage()
        for n in range(3):
            asyncio.run(audit.append_event(AuditEvent(
                event_type=AuditEventType.DATA_LOADED, description=f"event {n}",
            )))
        events = asyncio.run(audit.get_recent_events(limit=2))
        assert len(events) == 2
        assert events[0].timestamp >= events[1].timestamp
