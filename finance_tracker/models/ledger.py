"""
Core Ledger Models for Finance Tracker

These models define the strict schemas for all records flowing through the
system: users, monthly incomes, monthly expenses and their items.

DESIGN DECISION: We use Pydantic v2 so every record is validated on
construction, whether it comes from a form, from storage or from the
local cache.

DESIGN DECISION: An expense's total is always recomputed from its items.
The total is never edited on its own, so it cannot drift from the items.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from finance_tracker.months import is_valid_month_key


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Explicit category for an expense item.

    DESIGN DECISION: Labels are free text. Financial summaries such as
    "savings" must not depend on what the user happened to type, so every
    item carries a category. Label matching is only used to pre-fill it.
    """
    SAVINGS = "savings"
    FOOD = "food"
    TRANSPORT = "transport"
    HOUSING = "housing"
    UTILITIES = "utilities"
    HEALTH = "health"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    EDUCATION = "education"
    OTHER = "other"

    @classmethod
    def from_label(
        cls,
        label: str,
        savings_keywords: Iterable[str] = ("savings", "tabungan"),
    ) -> "ExpenseCategory":
        """
        Suggest a category for a free-text label.

        Savings keywords win over everything else. Matching is a
        case-insensitive substring test.
        """
        text = (label or "").lower()
        if any(kw and kw.lower() in text for kw in savings_keywords):
            return cls.SAVINGS
        for category, keywords in _LABEL_KEYWORDS.items():
            if any(kw in text for kw in keywords):
                return category
        return cls.OTHER


_LABEL_KEYWORDS = {
    ExpenseCategory.FOOD: ("food", "grocer", "makan", "meal", "restaurant", "coffee"),
    ExpenseCategory.TRANSPORT: ("transport", "fuel", "bensin", "taxi", "bus", "train", "parking"),
    ExpenseCategory.HOUSING: ("rent", "kos", "mortgage", "sewa"),
    ExpenseCategory.UTILITIES: ("electric", "listrik", "water", "internet", "phone", "pulsa"),
    ExpenseCategory.HEALTH: ("health", "medic", "doctor", "pharmacy", "obat"),
    ExpenseCategory.ENTERTAINMENT: ("movie", "netflix", "game", "hiburan", "concert"),
    ExpenseCategory.SHOPPING: ("shopping", "belanja", "clothes", "baju"),
    ExpenseCategory.EDUCATION: ("school", "course", "book", "tuition", "sekolah"),
}


def _check_month_key(value: str) -> str:
    if not is_valid_month_key(value):
        raise ValueError(f"Month must be in YYYY-MM format, got {value!r}")
    return value


# =============================================================================
# RECORDS
# =============================================================================

class User(BaseModel):
    """A person whose ledger is tracked. Owns incomes and expenses."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ExpenseItem(BaseModel):
    """
    A single line of a monthly expense.

    For example: "Food", 1,200,000.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    expense_id: Optional[UUID] = Field(
        default=None,
        description="Owning expense; set when the item is persisted"
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text label shown to the user"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent or set aside"
    )
    category: ExpenseCategory = Field(
        default=ExpenseCategory.OTHER,
        description="Explicit category used by the summaries"
    )

    @property
    def is_savings(self) -> bool:
        return self.category == ExpenseCategory.SAVINGS


class Income(BaseModel):
    """Salary received by a user in one month."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    month: str = Field(..., description="Month key (YYYY-MM)")
    month_name: str = Field(..., min_length=1, max_length=50)
    salary: Decimal = Field(..., ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        return _check_month_key(v)


class Expense(BaseModel):
    """
    All spending recorded by a user in one month.

    The total always equals the sum of the items when items are present.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    month: str = Field(..., description="Month key (YYYY-MM)")
    month_name: str = Field(..., min_length=1, max_length=50)
    total_expenses: Decimal = Field(default=Decimal("0"), ge=0)
    expense_items: list[ExpenseItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        return _check_month_key(v)

    @model_validator(mode='after')
    def recompute_total(self) -> 'Expense':
        """Keep the total in sync with the items."""
        if self.expense_items:
            self.total_expenses = sum(
                (item.amount for item in self.expense_items),
                Decimal("0"),
            )
            for item in self.expense_items:
                item.expense_id = self.id
        return self

    @property
    def savings(self) -> Decimal:
        return sum(
            (item.amount for item in self.expense_items if item.is_savings),
            Decimal("0"),
        )
