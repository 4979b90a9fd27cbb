"""
In-Memory Storage Implementation

Used by the test suite and when no remote store is configured.
Records are copied on the way in and on the way out, so callers can't
mutate stored state by accident - the same isolation a remote store gives.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import Expense, ExpenseItem, Income, User
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger storage."""

    def __init__(self):
        self._users: dict[UUID, User] = {}
        self._incomes: dict[UUID, Income] = {}
        self._expenses: dict[UUID, Expense] = {}
        self._items: dict[UUID, ExpenseItem] = {}

    # Users

    async def create_user(self, user: User) -> User:
        if user.id in self._users:
            raise DuplicateError(f"User already exists: {user.id}")
        self._users[user.id] = user.model_copy(deep=True)
        return user.model_copy(deep=True)

    async def list_users(self) -> list[User]:
        users = [u.model_copy(deep=True) for u in self._users.values()]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    async def get_user(self, user_id: UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    # Incomes

    async def create_income(self, income: Income) -> Income:
        if income.id in self._incomes:
            raise DuplicateError(f"Income already exists: {income.id}")
        self._incomes[income.id] = income.model_copy(deep=True)
        return income.model_copy(deep=True)

    async def list_incomes(self, user_id: UUID) -> list[Income]:
        incomes = [
            i.model_copy(deep=True)
            for i in self._incomes.values()
            if i.user_id == user_id
        ]
        incomes.sort(key=lambda i: i.month, reverse=True)
        return incomes

    async def update_income(self, income: Income) -> Income:
        if income.id not in self._incomes:
            raise NotFoundError(f"Income not found: {income.id}")
        stored = income.model_copy(update={"updated_at": datetime.utcnow()}, deep=True)
        self._incomes[income.id] = stored
        return stored.model_copy(deep=True)

    async def delete_income(self, income_id: UUID) -> bool:
        return self._incomes.pop(income_id, None) is not None

    # Expenses

    def _items_for(self, expense_id: UUID) -> list[ExpenseItem]:
        return [
            item.model_copy(deep=True)
            for item in self._items.values()
            if item.expense_id == expense_id
        ]

    def _with_items(self, expense: Expense) -> Expense:
        data = expense.model_dump()
        data["expense_items"] = [item.model_dump() for item in self._items_for(expense.id)]
        return Expense.model_validate(data)

    async def create_expense(self, expense: Expense) -> Expense:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        header = expense.model_copy(update={"expense_items": []}, deep=True)
        self._expenses[expense.id] = header
        return header.model_copy(deep=True)

    async def list_expenses(self, user_id: UUID) -> list[Expense]:
        expenses = [
            self._with_items(e)
            for e in self._expenses.values()
            if e.user_id == user_id
        ]
        expenses.sort(key=lambda e: e.month, reverse=True)
        return expenses

    async def update_expense(self, expense: Expense) -> Expense:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        header = expense.model_copy(
            update={"expense_items": [], "updated_at": datetime.utcnow()},
            deep=True,
        )
        self._expenses[expense.id] = header
        return self._with_items(header)

    async def delete_expense(self, expense_id: UUID) -> bool:
        # Cascade: items first, then the header
        for item_id in [i.id for i in self._items.values() if i.expense_id == expense_id]:
            del self._items[item_id]
        return self._expenses.pop(expense_id, None) is not None

    # Expense items

    async def create_expense_items(
        self,
        expense_id: UUID,
        items: list[ExpenseItem],
    ) -> list[ExpenseItem]:
        if expense_id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense_id}")
        stored = []
        for item in items:
            linked = item.model_copy(update={"expense_id": expense_id}, deep=True)
            self._items[linked.id] = linked
            stored.append(linked.model_copy(deep=True))
        return stored

    async def replace_expense_items(
        self,
        expense_id: UUID,
        items: list[ExpenseItem],
    ) -> list[ExpenseItem]:
        for item_id in [i.id for i in self._items.values() if i.expense_id == expense_id]:
            del self._items[item_id]
        if not items:
            return []
        return await self.create_expense_items(expense_id, items)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
