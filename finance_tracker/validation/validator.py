"""
Form Validation

DESIGN DECISION: Validation happens entirely on the client side, before
any call to the backend. A submission with errors never reaches storage.

Checks per form:
- Income: valid month key, salary present and greater than zero
- Expense: valid month key, at least one row with a label and a positive
  amount, no negative amounts
- User: non-blank name

IMPORTANT: Validation does not silently "fix" amounts. Blank rows are
dropped (they carry no data) and reported as a warning; everything else
is reported for the user to correct.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.ledger import ExpenseCategory, ExpenseItem
from finance_tracker.models.validation import ValidationIssue, ValidationResult
from finance_tracker.months import is_valid_month_key

MAX_LABEL_LENGTH = 100
MAX_MONTH_NAME_LENGTH = 50


def parse_amount(
    value: Any,
    thousands_separator: str = ".",
    decimals: int = 0,
) -> Optional[Decimal]:
    """
    Parse a form amount. Returns None for blank or unparseable input.

    Accepts numbers and strings. Spaces are ignored. A separator followed
    only by three-digit groups is a thousands separator: "500.000",
    "1.200.000" and "1,200" are all whole amounts when the currency has no
    decimals. With decimals, a single group after the other mark ("12,50")
    is the fraction. When both marks appear, the last one is the decimal
    mark ("1.200,50").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        text = str(value).strip().replace(" ", "")
        if not text:
            return None
        text = _strip_grouping(text, thousands_separator, decimals)
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


def _strip_grouping(text: str, thousands_separator: str, decimals: int) -> str:
    """Remove grouping marks and normalise the decimal mark to "."."""
    if "." in text and "," in text:
        decimal_mark = "." if text.rfind(".") > text.rfind(",") else ","
        grouping = "," if decimal_mark == "." else "."
        return text.replace(grouping, "").replace(decimal_mark, ".")

    for sep in (".", ","):
        parts = text.split(sep)
        if len(parts) < 2:
            continue
        grouped = all(len(p) == 3 and p.isdigit() for p in parts[1:])
        if grouped and (decimals == 0 or len(parts) > 2 or sep == thousands_separator):
            return "".join(parts)
    return text.replace(",", ".")


class LedgerValidator:
    """Validates income, expense and user forms."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def parse_amount(self, value: Any) -> Optional[Decimal]:
        """Parse an amount with the configured separator and decimals."""
        return parse_amount(
            value,
            thousands_separator=self._settings.thousands_separator,
            decimals=self._settings.currency_decimals,
        )

    def _check_month(self, month: str, issues: list[ValidationIssue]) -> None:
        if not is_valid_month_key(month):
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_format",
                message=f"Month must be in YYYY-MM format (got {month!r})",
                severity="error",
                suggested_fix="Pick a month and a year from the lists",
            ))

    def _check_amount_limit(
        self,
        field: str,
        amount: Decimal,
        issues: list[ValidationIssue],
    ) -> None:
        if amount > self._settings.max_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount {amount:,} seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

    def _result(self, form: str, issues: list[ValidationIssue]) -> ValidationResult:
        return ValidationResult(
            form=form,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def validate_income(
        self,
        month: str,
        salary: Any,
        month_name: Optional[str] = None,
    ) -> ValidationResult:
        """Validate the income form. month_name is only checked when given."""
        issues: list[ValidationIssue] = []
        self._check_month(month, issues)

        if month_name is not None and len(month_name.strip()) > MAX_MONTH_NAME_LENGTH:
            issues.append(ValidationIssue(
                field="month_name",
                issue_type="invalid_value",
                message=f"Month name must be at most {MAX_MONTH_NAME_LENGTH} characters",
                severity="error",
            ))

        amount = self.parse_amount(salary)
        if amount is None:
            issues.append(ValidationIssue(
                field="salary",
                issue_type="missing",
                message="Salary is required",
                severity="error",
                suggested_fix="Enter the salary as a number",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="salary",
                issue_type="invalid_value",
                message="Salary must be greater than zero",
                severity="error",
            ))
        else:
            self._check_amount_limit("salary", amount, issues)

        return self._result("income", issues)

    def validate_expense(
        self,
        month: str,
        items: Iterable[dict],
    ) -> tuple[ValidationResult, list[ExpenseItem]]:
        """
        Validate the expense form.

        Each row is a dict with "label", "amount" and an optional "category".
        Returns the result and the cleaned items (empty if invalid).
        """
        issues: list[ValidationIssue] = []
        self._check_month(month, issues)

        cleaned: list[ExpenseItem] = []
        blank_rows = 0

        for index, row in enumerate(items, start=1):
            label = str(row.get("label") or "").strip()
            raw_amount = row.get("amount")
            amount = self.parse_amount(raw_amount)

            if not label and (amount is None or amount == 0):
                blank_rows += 1
                continue

            if not label:
                issues.append(ValidationIssue(
                    field=f"items[{index}].label",
                    issue_type="missing",
                    message=f"Row {index}: label is required",
                    severity="error",
                ))
                continue

            if len(label) > MAX_LABEL_LENGTH:
                issues.append(ValidationIssue(
                    field=f"items[{index}].label",
                    issue_type="invalid_value",
                    message=(
                        f"Row {index}: label must be at most "
                        f"{MAX_LABEL_LENGTH} characters"
                    ),
                    severity="error",
                    suggested_fix="Shorten the label",
                ))
                continue

            if amount is None:
                issues.append(ValidationIssue(
                    field=f"items[{index}].amount",
                    issue_type="missing" if raw_amount in (None, "") else "invalid_format",
                    message=f"Row {index} ({label}): amount is missing or not a number",
                    severity="error",
                ))
                continue

            if amount < 0:
                issues.append(ValidationIssue(
                    field=f"items[{index}].amount",
                    issue_type="invalid_value",
                    message=f"Row {index} ({label}): amount cannot be negative",
                    severity="error",
                ))
                continue

            if amount == 0:
                issues.append(ValidationIssue(
                    field=f"items[{index}].amount",
                    issue_type="zero_amount",
                    message=f"Row {index} ({label}): zero amount ignored",
                    severity="warning",
                ))
                continue

            self._check_amount_limit(f"items[{index}].amount", amount, issues)

            category = row.get("category")
            if category is None or category == "":
                category = ExpenseCategory.from_label(
                    label, self._settings.savings_keywords_list
                )
            try:
                category = ExpenseCategory(category)
            except ValueError:
                issues.append(ValidationIssue(
                    field=f"items[{index}].category",
                    issue_type="invalid_value",
                    message=f"Row {index} ({label}): unknown category {category!r}",
                    severity="error",
                    suggested_fix="Pick a category from the list",
                ))
                continue

            cleaned.append(ExpenseItem(label=label, amount=amount, category=category))

        if blank_rows:
            issues.append(ValidationIssue(
                field="items",
                issue_type="blank_row",
                message=f"{blank_rows} empty row(s) ignored",
                severity="info",
            ))

        if not cleaned and not any(i.severity == "error" for i in issues):
            issues.append(ValidationIssue(
                field="items",
                issue_type="missing",
                message="Add at least one expense with a label and an amount",
                severity="error",
            ))

        result = self._result("expense", issues)
        return result, (cleaned if result.is_valid else [])

    def validate_user_name(self, name: Optional[str]) -> ValidationResult:
        issues: list[ValidationIssue] = []
        clean = (name or "").strip()
        if not clean:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
                severity="error",
            ))
        elif len(clean) > MAX_LABEL_LENGTH:
            issues.append(ValidationIssue(
                field="name",
                issue_type="invalid_value",
                message=f"Name must be at most {MAX_LABEL_LENGTH} characters",
                severity="error",
            ))
        return self._result("user", issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the form shows inline.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
