"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Users (load → restore selection → create / switch / clear)
2. Ledger (load → validate → write → update local state)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches storage without passing validation
- Local state changes only after storage confirms the write
- Every write and every failure is audited

Each month holds at most one income and one expense per user. Saving a
month that already has a record updates that record (for expenses, its
items are replaced) instead of adding a second one.
"""

from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import Expense, ExpenseItem, Income, User
from finance_tracker.models.validation import ValidationResult
from finance_tracker.months import month_name
from finance_tracker.services.cache import LocalCache
from finance_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.state import AppState
from finance_tracker.validation import LedgerValidator

logger = structlog.get_logger(__name__)


class LedgerValidationError(Exception):
    """A form failed validation. Nothing was sent to storage."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.error_messages) or "Validation failed")


class NoUserSelectedError(Exception):
    """A ledger operation was attempted without a current user."""
    pass


def _issue_dicts(result: ValidationResult) -> list[dict]:
    return [issue.model_dump() for issue in result.issues if issue.severity == "error"]


class UserFlow:
    """
    Orchestrates user selection.

    The selected user is remembered in the local cache so it survives a
    restart. A cached ID that no longer matches a stored user is dropped.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        cache: LocalCache,
        state: AppState,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._cache = cache
        self._state = state
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def load_users(self, correlation_id: Optional[UUID] = None) -> list[User]:
        """
        Fetch all users and restore the cached selection.

        Raises:
            StorageError: If the users can't be listed
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            users = await self._storage.list_users()
        except StorageError as e:
            await self._audit_logger.log_external_service_error(
                service="storage",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._state.users = users

        cached_id = self._cache.get_current_user_id()
        if cached_id is not None:
            user = self._state.find_user(cached_id)
            if user is None:
                logger.info("stale_user_selection_dropped", user_id=str(cached_id))
                self._cache.clear()
            self._state.current_user = user
        elif self._state.current_user and not self._state.find_user(self._state.current_user.id):
            self._state.current_user = None

        return users

    async def create_user(
        self,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Create a user and make it the current one.

        Raises:
            LedgerValidationError: If the name is blank
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_user_name(name)
        if not result.is_valid:
            await self._audit_logger.log_validation_failed(
                form="user",
                issues=_issue_dicts(result),
                correlation_id=correlation_id,
            )
            raise LedgerValidationError(result)

        try:
            user = await self._storage.create_user(User(name=name.strip()))
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                entity_type="user",
                operation="create",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._state.add_user(user)
        self._select(user)
        await self._audit_logger.log_user_created(user.id, user.name, correlation_id)
        return user

    async def switch_user(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Make another user current. The ledger in state is cleared; call
        LedgerFlow.load_user_data afterwards.

        Raises:
            NotFoundError: If no such user exists
        """
        user = self._state.find_user(user_id)
        if user is None:
            user = await self._storage.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")

        self._select(user)
        await self._audit_logger.log_user_switched(user.id, correlation_id)
        return user

    async def clear_current_user(self, correlation_id: Optional[UUID] = None) -> None:
        self._state.current_user = None
        self._state.reset_ledger()
        self._cache.clear()
        await self._audit_logger.log_user_switched(None, correlation_id)

    def _select(self, user: User) -> None:
        self._state.current_user = user
        self._state.reset_ledger()
        self._cache.set_current_user_id(user.id)


class LedgerFlow:
    """
    Orchestrates incomes and expenses of the current user.

    Flow for every write:
    1. Validate → reject early with LedgerValidationError
    2. Write → storage (create, or update when the month already exists)
    3. Merge → local state, only once storage succeeded
    4. Audit → success or failure
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        cache: LocalCache,
        state: AppState,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().app
        self._storage = storage
        self._cache = cache
        self._state = state
        self._validator = validator or LedgerValidator(self._settings)
        self._audit_logger = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_user(self) -> User:
        if self._state.current_user is None:
            raise NoUserSelectedError("Select or create a user first")
        return self._state.current_user

    def _month_name(self, month: str) -> str:
        return month_name(month, self._settings.month_locale)

    def _save_snapshot(self, user: User) -> None:
        """Keep the offline copy in step with the local ledger."""
        self._cache.save_snapshot(user.id, self._state.incomes, self._state.expenses)

    async def _reject(
        self,
        result: ValidationResult,
        user_id: Optional[UUID],
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_validation_failed(
            form=result.form,
            issues=_issue_dicts(result),
            user_id=user_id,
            correlation_id=correlation_id,
        )
        raise LedgerValidationError(result)

    async def _failed(
        self,
        entity_type: str,
        operation: str,
        error: Exception,
        user_id: Optional[UUID],
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_save_failed(
            entity_type=entity_type,
            operation=operation,
            error_message=str(error),
            user_id=user_id,
            correlation_id=correlation_id,
        )

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load_user_data(self, correlation_id: Optional[UUID] = None) -> AppState:
        """
        Fetch the current user's incomes and expenses.

        On success the result is also written to the offline snapshot.
        When storage fails, the last snapshot is used and the state is
        marked offline; without a snapshot the error is re-raised.
        """
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()

        try:
            incomes = await self._storage.list_incomes(user.id)
            expenses = await self._storage.list_expenses(user.id)
        except StorageError as e:
            await self._audit_logger.log_external_service_error(
                service="storage",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            snapshot = self._cache.load_snapshot(user.id)
            if snapshot is None:
                raise
            incomes, expenses = snapshot
            self._state.set_ledger(incomes, expenses, offline=True)
            await self._audit_logger.log_data_loaded(
                user.id, len(incomes), len(expenses), offline=True,
                correlation_id=correlation_id,
            )
            return self._state

        self._state.set_ledger(incomes, expenses)
        self._cache.save_snapshot(user.id, incomes, expenses)
        await self._audit_logger.log_data_loaded(
            user.id, len(incomes), len(expenses), correlation_id=correlation_id,
        )
        return self._state

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    def validate_income(
        self,
        month: str,
        salary: Any,
        month_name: Optional[str] = None,
    ) -> ValidationResult:
        return self._validator.validate_income(month, salary, month_name)

    async def save_income(
        self,
        month: str,
        salary: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Income:
        """
        Save the salary for a month.

        Creates the income, or updates it when the month already has one.

        Raises:
            LedgerValidationError: If the form is invalid
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()

        result = self.validate_income(month, salary)
        if not result.is_valid:
            await self._reject(result, user.id, correlation_id)

        amount = self._validator.parse_amount(salary)
        existing = self._state.income_for(month)

        try:
            if existing:
                income = await self._storage.update_income(
                    existing.model_copy(update={"salary": amount})
                )
                event_type = AuditEventType.INCOME_UPDATED
            else:
                income = await self._storage.create_income(Income(
                    user_id=user.id,
                    month=month,
                    month_name=self._month_name(month),
                    salary=amount,
                ))
                event_type = AuditEventType.INCOME_SAVED
        except StorageError as e:
            await self._failed("income", "save", e, user.id, correlation_id)
            raise

        self._state.merge_income(income)
        self._save_snapshot(user)
        await self._audit_logger.log_record_written(
            event_type=event_type,
            entity_type="income",
            entity_id=income.id,
            user_id=user.id,
            month=month,
            amount=str(amount),
            correlation_id=correlation_id,
        )
        return income

    async def update_income(
        self,
        income_id: UUID,
        salary: Any,
        month_name: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Income:
        """
        Change the salary, and optionally the month label, of an existing income.

        A blank or missing month_name keeps the current label.

        Raises:
            NotFoundError: If the income isn't in the loaded ledger
            LedgerValidationError: If the salary or label is invalid
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()

        existing = next((i for i in self._state.incomes if i.id == income_id), None)
        if existing is None:
            raise NotFoundError(f"Income not found: {income_id}")

        result = self.validate_income(existing.month, salary, month_name)
        if not result.is_valid:
            await self._reject(result, user.id, correlation_id)

        changes = {"salary": self._validator.parse_amount(salary)}
        if month_name and month_name.strip():
            changes["month_name"] = month_name.strip()

        try:
            income = await self._storage.update_income(existing.model_copy(update=changes))
        except StorageError as e:
            await self._failed("income", "update", e, user.id, correlation_id)
            raise

        self._state.replace_income(income)
        self._save_snapshot(user)
        await self._audit_logger.log_record_written(
            event_type=AuditEventType.INCOME_UPDATED,
            entity_type="income",
            entity_id=income.id,
            user_id=user.id,
            month=income.month,
            amount=str(income.salary),
            correlation_id=correlation_id,
        )
        return income

    async def delete_income(
        self,
        income_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an income. Returns False if storage had no such record."""
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()
        existing = next((i for i in self._state.incomes if i.id == income_id), None)

        try:
            deleted = await self._storage.delete_income(income_id)
        except StorageError as e:
            await self._failed("income", "delete", e, user.id, correlation_id)
            raise

        self._state.remove_income(income_id)
        self._save_snapshot(user)
        if deleted:
            await self._audit_logger.log_record_written(
                event_type=AuditEventType.INCOME_DELETED,
                entity_type="income",
                entity_id=income_id,
                user_id=user.id,
                month=existing.month if existing else "",
                correlation_id=correlation_id,
            )
        return deleted

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def validate_expense(
        self,
        month: str,
        items: Iterable[dict],
    ) -> tuple[ValidationResult, list[ExpenseItem]]:
        return self._validator.validate_expense(month, items)

    async def _rewrite_expense(
        self,
        existing: Expense,
        items: list[ExpenseItem],
    ) -> Expense:
        """Update the header total, then swap in the new items."""
        expense = Expense(
            id=existing.id,
            user_id=existing.user_id,
            month=existing.month,
            month_name=existing.month_name,
            expense_items=items,
            created_at=existing.created_at,
        )
        saved = await self._storage.update_expense(expense)
        stored_items = await self._storage.replace_expense_items(
            expense.id, expense.expense_items
        )
        return expense.model_copy(update={
            "expense_items": stored_items,
            "updated_at": saved.updated_at,
        })

    async def save_expense(
        self,
        month: str,
        items: Iterable[dict],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Save the expense items for a month.

        Creates the expense with its items, or replaces the items of the
        month's existing expense. The total is always the sum of the items.

        Raises:
            LedgerValidationError: If the form is invalid
            StorageError: If a write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()

        result, cleaned = self.validate_expense(month, items)
        if not result.is_valid:
            await self._reject(result, user.id, correlation_id)

        existing = self._state.expense_for(month)

        try:
            if existing:
                expense = await self._rewrite_expense(existing, cleaned)
                event_type = AuditEventType.EXPENSE_UPDATED
            else:
                expense = Expense(
                    user_id=user.id,
                    month=month,
                    month_name=self._month_name(month),
                    expense_items=cleaned,
                )
                await self._storage.create_expense(expense)
                stored_items = await self._storage.create_expense_items(
                    expense.id, expense.expense_items
                )
                expense = expense.model_copy(update={"expense_items": stored_items})
                event_type = AuditEventType.EXPENSE_SAVED
        except StorageError as e:
            await self._failed("expense", "save", e, user.id, correlation_id)
            raise

        self._state.merge_expense(expense)
        self._save_snapshot(user)
        await self._audit_logger.log_record_written(
            event_type=event_type,
            entity_type="expense",
            entity_id=expense.id,
            user_id=user.id,
            month=month,
            amount=str(expense.total_expenses),
            correlation_id=correlation_id,
        )
        return expense

    async def update_expense(
        self,
        expense_id: UUID,
        items: Iterable[dict],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace the items of an existing expense.

        Raises:
            NotFoundError: If the expense isn't in the loaded ledger
            LedgerValidationError: If the items are invalid
            StorageError: If a write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()

        existing = next((e for e in self._state.expenses if e.id == expense_id), None)
        if existing is None:
            raise NotFoundError(f"Expense not found: {expense_id}")

        result, cleaned = self.validate_expense(existing.month, items)
        if not result.is_valid:
            await self._reject(result, user.id, correlation_id)

        try:
            expense = await self._rewrite_expense(existing, cleaned)
        except StorageError as e:
            await self._failed("expense", "update", e, user.id, correlation_id)
            raise

        self._state.replace_expense(expense)
        self._save_snapshot(user)
        await self._audit_logger.log_record_written(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense.id,
            user_id=user.id,
            month=expense.month,
            amount=str(expense.total_expenses),
            correlation_id=correlation_id,
        )
        return expense

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an expense together with its items."""
        correlation_id = correlation_id or create_correlation_id()
        user = self._require_user()
        existing = next((e for e in self._state.expenses if e.id == expense_id), None)

        try:
            deleted = await self._storage.delete_expense(expense_id)
        except StorageError as e:
            await self._failed("expense", "delete", e, user.id, correlation_id)
            raise

        self._state.remove_expense(expense_id)
        self._save_snapshot(user)
        if deleted:
            await self._audit_logger.log_record_written(
                event_type=AuditEventType.EXPENSE_DELETED,
                entity_type="expense",
                entity_id=expense_id,
                user_id=user.id,
                month=existing.month if existing else "",
                correlation_id=correlation_id,
            )
        return deleted


def create_app_components(
    use_storage: bool = True,
) -> tuple[UserFlow, LedgerFlow, AppState, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing or running without credentials;
                    the in-memory backend is used instead.

    Returns:
        (user_flow, ledger_flow, state, sheets_client)
    """
    app_settings = get_settings().app
    sheets_client = None
    ledger_storage: LedgerStorageInterface
    audit_logger: AuditLogger

    if use_storage and app_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            ledger_storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            ledger_storage = InMemoryLedgerStorage()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        ledger_storage = InMemoryLedgerStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    state = AppState()
    cache = LocalCache(app_settings.cache_path)
    validator = LedgerValidator(app_settings)

    user_flow = UserFlow(
        storage=ledger_storage,
        cache=cache,
        state=state,
        validator=validator,
        audit_logger=audit_logger,
    )
    ledger_flow = LedgerFlow(
        storage=ledger_storage,
        cache=cache,
        state=state,
        validator=validator,
        audit_logger=audit_logger,
        settings=app_settings,
    )

    return user_flow, ledger_flow, state, sheets_client
