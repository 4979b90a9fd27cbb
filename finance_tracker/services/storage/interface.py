"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for another hosted store later
2. Use in-memory storage for testing
3. Keep the flows and the UI decoupled from the backend

The interface mirrors the four tables of the ledger: users, incomes,
expenses and expense_items. It is intentionally simple - we're not
building an ORM.

Error contract: any backend failure surfaces as a StorageError with no
partial-success detail. Callers must treat it as "nothing was durably
changed" and re-fetch to confirm state.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import Expense, ExpenseItem, Income, User


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """
        Persist a new user.

        Returns:
            The stored user

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_users(self) -> list[User]:
        """
        List all users, newest first.
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: UUID) -> Optional[User]:
        """
        Retrieve a user by ID.

        Returns:
            The user if found, None otherwise
        """
        pass

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_income(self, income: Income) -> Income:
        """
        Persist a new income record.

        Returns:
            The stored income

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_incomes(self, user_id: UUID) -> list[Income]:
        """
        List a user's incomes ordered by month descending.
        """
        pass

    @abstractmethod
    async def update_income(self, income: Income) -> Income:
        """
        Replace the stored fields of an existing income.

        Returns:
            The updated income (with a fresh updated_at)

        Raises:
            NotFoundError: If the income doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_income(self, income_id: UUID) -> bool:
        """
        Delete an income by ID.

        Returns:
            True if a record was deleted
        """
        pass

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_expense(self, expense: Expense) -> Expense:
        """
        Persist a new expense header (without its items).

        Items are written with create_expense_items.
        """
        pass

    @abstractmethod
    async def list_expenses(self, user_id: UUID) -> list[Expense]:
        """
        List a user's expenses ordered by month descending,
        each with its items attached.
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> Expense:
        """
        Replace the stored header fields of an existing expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense and, first, all of its items.

        Returns:
            True if a record was deleted
        """
        pass

    # -------------------------------------------------------------------------
    # Expense items
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_expense_items(
        self,
        expense_id: UUID,
        items: list[ExpenseItem],
    ) -> list[ExpenseItem]:
        """
        Batch-insert items for an expense.

        Returns:
            The stored items, each linked to expense_id
        """
        pass

    @abstractmethod
    async def replace_expense_items(
        self,
        expense_id: UUID,
        items: list[ExpenseItem],
    ) -> list[ExpenseItem]:
        """
        Delete all items of an expense, then insert the given ones.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
