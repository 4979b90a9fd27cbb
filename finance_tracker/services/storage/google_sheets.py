"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each table of the ledger lives in its own worksheet with a header row:
users, incomes, expenses, expense_items (+ audit_log). Foreign keys are
plain ID columns: incomes.user_id / expenses.user_id -> users.id and
expense_items.expense_id -> expenses.id.

TRADEOFFS:
- No transactions (we handle this with careful ordering: items are
  deleted before their expense, and written after it)
- Limited query capabilities (we filter in Python)
- Reads are retried; writes are not, since a retried append could
  create a duplicate record
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseItem,
    Income,
    User,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


USER_COLUMNS = ["id", "name", "created_at"]

INCOME_COLUMNS = [
    "id",
    "user_id",
    "month",
    "month_name",
    "salary",
    "created_at",
    "updated_at",
]

EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "month",
    "month_name",
    "total_expenses",
    "created_at",
    "updated_at",
]

EXPENSE_ITEM_COLUMNS = ["id", "expense_id", "label", "amount", "category"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

logger = structlog.get_logger(__name__)

# Raised while parsing a hand-edited or truncated row
MALFORMED_ROW_ERRORS = (ValueError, InvalidOperation)


def _safe_getter(row: list) -> Callable[..., str]:
    """Column accessor that tolerates short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
            logger.info("worksheet_created", title=title)

        self._worksheets[title] = sheet
        return sheet

    def get_users_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.users_sheet_name, USER_COLUMNS)

    def get_incomes_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.incomes_sheet_name, INCOME_COLUMNS)

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_expense_items_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.expense_items_sheet_name,
            EXPENSE_ITEM_COLUMNS,
            rows=5000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
def _read_rows(sheet: gspread.Worksheet) -> list[list[str]]:
    """All data rows of a worksheet (header excluded, blank rows skipped)."""
    return [row for row in sheet.get_all_values()[1:] if row and row[0]]


def _find_row_index(sheet: gspread.Worksheet, record_id: UUID) -> Optional[int]:
    """1-based sheet row of a record, or None. Row 1 is the header."""
    for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
        if row and row[0] == str(record_id):
            return idx
    return None


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One record per row. Amounts are stored as decimal strings so no
    precision is lost to spreadsheet floats.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _user_to_row(user: User) -> list:
        return [str(user.id), user.name, user.created_at.isoformat()]

    @staticmethod
    def _row_to_user(row: list) -> User:
        safe_get = _safe_getter(row)
        return User(
            id=UUID(safe_get(0)),
            name=safe_get(1),
            created_at=datetime.fromisoformat(safe_get(2)),
        )

    @staticmethod
    def _income_to_row(income: Income) -> list:
        return [
            str(income.id),
            str(income.user_id),
            income.month,
            income.month_name,
            str(income.salary),
            income.created_at.isoformat(),
            income.updated_at.isoformat(),
        ]

    @staticmethod
    def _row_to_income(row: list) -> Income:
        safe_get = _safe_getter(row)
        return Income(
            id=UUID(safe_get(0)),
            user_id=UUID(safe_get(1)),
            month=safe_get(2),
            month_name=safe_get(3),
            salary=Decimal(safe_get(4, "0")),
            created_at=datetime.fromisoformat(safe_get(5)),
            updated_at=datetime.fromisoformat(safe_get(6) or safe_get(5)),
        )

    @staticmethod
    def _expense_to_row(expense: Expense) -> list:
        return [
            str(expense.id),
            str(expense.user_id),
            expense.month,
            expense.month_name,
            str(expense.total_expenses),
            expense.created_at.isoformat(),
            expense.updated_at.isoformat(),
        ]

    @staticmethod
    def _row_to_expense(row: list, items: list[ExpenseItem]) -> Expense:
        safe_get = _safe_getter(row)
        return Expense(
            id=UUID(safe_get(0)),
            user_id=UUID(safe_get(1)),
            month=safe_get(2),
            month_name=safe_get(3),
            total_expenses=Decimal(safe_get(4, "0")),
            expense_items=items,
            created_at=datetime.fromisoformat(safe_get(5)),
            updated_at=datetime.fromisoformat(safe_get(6) or safe_get(5)),
        )

    @staticmethod
    def _item_to_row(item: ExpenseItem) -> list:
        return [
            str(item.id),
            str(item.expense_id) if item.expense_id else "",
            item.label,
            str(item.amount),
            item.category.value,
        ]

    @staticmethod
    def _row_to_item(row: list) -> ExpenseItem:
        safe_get = _safe_getter(row)
        return ExpenseItem(
            id=UUID(safe_get(0)),
            expense_id=UUID(safe_get(1)) if safe_get(1) else None,
            label=safe_get(2),
            amount=Decimal(safe_get(3, "0")),
            category=ExpenseCategory(safe_get(4, ExpenseCategory.OTHER.value)),
        )

    def _update_row(self, sheet: gspread.Worksheet, record_id: UUID, row: list) -> None:
        idx = _find_row_index(sheet, record_id)
        if idx is None:
            raise NotFoundError(f"Record not found: {record_id}")
        sheet.update(range_name=f"A{idx}", values=[row], value_input_option="RAW")

    def _delete_item_rows(self, expense_id: UUID) -> int:
        """Delete every item row of an expense. Returns the number deleted."""
        sheet = self._client.get_expense_items_sheet()
        all_rows = sheet.get_all_values()
        indexes = [
            idx
            for idx, row in enumerate(all_rows[1:], start=2)
            if len(row) > 1 and row[1] == str(expense_id)
        ]
        # Bottom-up so earlier indexes stay valid
        for idx in reversed(indexes):
            sheet.delete_rows(idx)
        return len(indexes)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def create_user(self, user: User) -> User:
        try:
            sheet = self._client.get_users_sheet()
            sheet.append_row(self._user_to_row(user), value_input_option="RAW")
            return user
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create user: {e}")

    async def list_users(self) -> list[User]:
        try:
            rows = _read_rows(self._client.get_users_sheet())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list users: {e}")

        users = []
        for row in rows:
            try:
                users.append(self._row_to_user(row))
            except MALFORMED_ROW_ERRORS:
                logger.warning("malformed_row_skipped", sheet="users", row_id=row[0])
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    async def get_user(self, user_id: UUID) -> Optional[User]:
        for user in await self.list_users():
            if user.id == user_id:
                return user
        return None

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    async def create_income(self, income: Income) -> Income:
        try:
            sheet = self._client.get_incomes_sheet()
            sheet.append_row(self._income_to_row(income), value_input_option="RAW")
            return income
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create income: {e}")

    async def list_incomes(self, user_id: UUID) -> list[Income]:
        try:
            rows = _read_rows(self._client.get_incomes_sheet())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list incomes: {e}")

        incomes = []
        for row in rows:
            if len(row) < 2 or row[1] != str(user_id):
                continue
            try:
                incomes.append(self._row_to_income(row))
            except MALFORMED_ROW_ERRORS:
                logger.warning("malformed_row_skipped", sheet="incomes", row_id=row[0])
        incomes.sort(key=lambda i: i.month, reverse=True)
        return incomes

    async def update_income(self, income: Income) -> Income:
        try:
            income = income.model_copy(update={"updated_at": datetime.utcnow()})
            self._update_row(
                self._client.get_incomes_sheet(),
                income.id,
                self._income_to_row(income),
            )
            return income
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update income: {e}")

    async def delete_income(self, income_id: UUID) -> bool:
        try:
            sheet = self._client.get_incomes_sheet()
            idx = _find_row_index(sheet, income_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete income: {e}")

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def _items_by_expense(self) -> dict[str, list[ExpenseItem]]:
        rows = _read_rows(self._client.get_expense_items_sheet())
        grouped: dict[str, list[ExpenseItem]] = {}
        for row in rows:
            try:
                item = self._row_to_item(row)
            except MALFORMED_ROW_ERRORS:
                logger.warning("malformed_row_skipped", sheet="expense_items", row_id=row[0])
                continue
            grouped.setdefault(str(item.expense_id), []).append(item)
        return grouped

    async def create_expense(self, expense: Expense) -> Expense:
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")
            return expense.model_copy(update={"expense_items": []})
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create expense: {e}")

    async def list_expenses(self, user_id: UUID) -> list[Expense]:
        try:
            rows = _read_rows(self._client.get_expenses_sheet())
            items = await self._items_by_expense()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for row in rows:
            if len(row) < 2 or row[1] != str(user_id):
                continue
            try:
                expenses.append(self._row_to_expense(row, items.get(row[0], [])))
            except MALFORMED_ROW_ERRORS:
                logger.warning("malformed_row_skipped", sheet="expenses", row_id=row[0])
        expenses.sort(key=lambda e: e.month, reverse=True)
        return expenses

    async def update_expense(self, expense: Expense) -> Expense:
        try:
            expense = expense.model_copy(update={"updated_at": datetime.utcnow()})
            self._update_row(
                self._client.get_expenses_sheet(),
                expense.id,
                self._expense_to_row(expense),
            )
            return expense
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        try:
            # Items first, so an interrupted delete never leaves orphans
            self._delete_item_rows(expense_id)
            sheet = self._client.get_expenses_sheet()
            idx = _find_row_index(sheet, expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    # -------------------------------------------------------------------------
    # Expense items
    # -------------------------------------------------------------------------

    async def create_expense_items(
        self,
        expense_id: UUID,
        items: list[ExpenseItem],
    ) -> list[ExpenseItem]:
        linked = [item.model_copy(update={"expense_id": expense_id}) for item in items]
        if not linked:
            return []
        try:
            sheet = self._client.get_expense_items_sheet()
            sheet.append_rows(
                [self._item_to_row(item) for item in linked],
                value_input_option="RAW",
            )
            return linked
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create expense items: {e}")

    async def replace_expense_items(
        self,
        expense_id: UUID,
        items: list[ExpenseItem],
    ) -> list[ExpenseItem]:
        try:
            self._delete_item_rows(expense_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to replace expense items: {e}")
        return await self.create_expense_items(expense_id, items)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            user_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            rows = _read_rows(self._client.get_audit_sheet())
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            try:
                events.append(self._row_to_event(row))
            except MALFORMED_ROW_ERRORS:
                continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
