"""
Application State

The in-session view of the ledger: the known users, the selected user and
that user's incomes and expenses. The UI reads from here; the flows in
finance_tracker.orchestrator write to it after each successful storage call.

Lists are kept newest month first, one record per month. Saving a month
that is already present replaces that entry instead of adding a second one.
"""

from typing import Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.models.ledger import Expense, Income, User

_Record = TypeVar("_Record", Income, Expense)


def _merge_by_month(records: list[_Record], record: _Record) -> list[_Record]:
    for index, existing in enumerate(records):
        if existing.month == record.month:
            return records[:index] + [record] + records[index + 1:]
    return [record] + records


def _replace_by_id(records: list[_Record], record: _Record) -> list[_Record]:
    return [record if r.id == record.id else r for r in records]


class AppState(BaseModel):
    """Mutable session state."""

    users: list[User] = Field(default_factory=list)
    current_user: Optional[User] = None
    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    offline: bool = Field(
        default=False,
        description="True when the ledger was loaded from the offline snapshot",
    )

    @property
    def current_user_id(self) -> Optional[UUID]:
        return self.current_user.id if self.current_user else None

    def find_user(self, user_id: UUID) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def add_user(self, user: User) -> None:
        self.users = [user] + [u for u in self.users if u.id != user.id]

    # Ledger updates

    def merge_income(self, income: Income) -> None:
        self.incomes = _merge_by_month(self.incomes, income)

    def merge_expense(self, expense: Expense) -> None:
        self.expenses = _merge_by_month(self.expenses, expense)

    def replace_income(self, income: Income) -> None:
        self.incomes = _replace_by_id(self.incomes, income)

    def replace_expense(self, expense: Expense) -> None:
        self.expenses = _replace_by_id(self.expenses, expense)

    def remove_income(self, income_id: UUID) -> None:
        self.incomes = [i for i in self.incomes if i.id != income_id]

    def remove_expense(self, expense_id: UUID) -> None:
        self.expenses = [e for e in self.expenses if e.id != expense_id]

    def set_ledger(
        self,
        incomes: list[Income],
        expenses: list[Expense],
        offline: bool = False,
    ) -> None:
        self.incomes = sorted(incomes, key=lambda i: i.month, reverse=True)
        self.expenses = sorted(expenses, key=lambda e: e.month, reverse=True)
        self.offline = offline

    def reset_ledger(self) -> None:
        self.incomes = []
        self.expenses = []
        self.offline = False

    # Lookups

    def income_for(self, month: str) -> Optional[Income]:
        return next((i for i in self.incomes if i.month == month), None)

    def expense_for(self, month: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.month == month), None)

