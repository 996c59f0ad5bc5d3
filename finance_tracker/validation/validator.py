"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Format validation
- This is pydantic model construction from raw input

STAGE 2 - SEMANTIC VALIDATION:
- Business logic checks
- Bill payments must be positive and cover exactly one canonical period
- Future date detection
- Absurd amount detection
- This catches logically impossible or suspicious data

Errors block the write. Warnings are reported and the write goes ahead.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the caller to act on.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import TypeAdapter, ValidationError

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.engine.categories import (
    BILL_CATEGORIES,
    EXPENSE_CATEGORIES,
    FREQUENCY_LABELS,
    INCOME_SOURCES,
    SUBSCRIPTION_CATEGORIES,
)
from finance_tracker.engine.periods import current_period, is_canonical_period
from finance_tracker.models.records import (
    AdditionalIncome,
    Bill,
    Expense,
    Income,
    LendingRecord,
    OneTimeExpense,
    OneTimeIncome,
    Person,
    ValidationIssue,
    ValidationResult,
)


SCHEMAS: dict[str, TypeAdapter] = {
    "expense": TypeAdapter(Expense),
    "additional_income": TypeAdapter(AdditionalIncome),
    "bill": TypeAdapter(Bill),
    "person": TypeAdapter(Person),
    "lending": TypeAdapter(LendingRecord),
    "income": TypeAdapter(Income),
}


class RecordValidationError(Exception):
    """A record failed validation with at least one error-level issue."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.record_type}: {messages}")


class RecordValidator:
    """
    Validates incoming records through a two-stage pipeline.

    Stage 1: parse() builds the model and converts pydantic errors to issues
    Stage 2: validate_*() run the semantic checks on a built model
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Stage 1
    # -------------------------------------------------------------------------

    def parse(self, record_type: str, data: dict[str, Any]) -> tuple[Optional[Any], ValidationResult]:
        """
        Stage 1: build a record of `record_type` from raw data.

        Returns:
            (record or None, ValidationResult). The record is None exactly
            when the result has errors.
        """
        try:
            record = SCHEMAS[record_type].validate_python(data)
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or record_type,
                    issue_type=err["type"],
                    message=err["msg"],
                    severity="error",
                )
                for err in e.errors()
            ]
            return None, ValidationResult(
                record_id=self._raw_id(data),
                record_type=record_type,
                issues=issues,
            )
        return record, ValidationResult(record_id=record.id, record_type=record_type)

    @staticmethod
    def _raw_id(data: dict[str, Any]) -> UUID:
        try:
            return UUID(str(data["id"]))
        except (KeyError, ValueError):
            return uuid4()

    # -------------------------------------------------------------------------
    # Stage 2
    # -------------------------------------------------------------------------

    def _check_amount(self, amount: Optional[Decimal], field: str = "amount") -> list[ValidationIssue]:
        max_amount = Decimal(str(self._settings.max_reasonable_amount))
        if amount is not None and abs(amount) > max_amount:
            return [ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            )]
        return []

    def _check_date(self, value: date, today: date, field: str = "date") -> list[ValidationIssue]:
        # Future date check (with tolerance)
        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if value > max_future_date:
            return [ValidationIssue(
                field=field,
                issue_type="future_date",
                message=f"Date ({value.isoformat()}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            )]
        return []

    @staticmethod
    def _check_category(value: str, known: tuple[str, ...], field: str = "category") -> list[ValidationIssue]:
        # Free text is allowed; names outside the list only warn
        if value.casefold() in {name.casefold() for name in known}:
            return []
        return [ValidationIssue(
            field=field,
            issue_type="unknown_category",
            message=f"'{value}' is not a known {field}",
            severity="warning",
            suggested_fix=f"Use one of: {', '.join(known)}",
        )]

    @staticmethod
    def _known_categories(expense: Expense) -> tuple[str, ...]:
        if getattr(expense, "bill_payment", None) is not None:
            return BILL_CATEGORIES
        if isinstance(expense, OneTimeExpense):
            return EXPENSE_CATEGORIES
        return SUBSCRIPTION_CATEGORIES

    def validate_expense(self, expense: Expense, today: Optional[date] = None) -> ValidationResult:
        """Semantic checks for a plain expense (one-time or recurring)."""
        today = today or date.today()
        issues = self._check_amount(expense.amount)
        if isinstance(expense, OneTimeExpense):
            issues.extend(self._check_date(expense.date, today))
        issues.extend(self._check_category(expense.category, self._known_categories(expense)))
        return ValidationResult(record_id=expense.id, record_type="expense", issues=issues)

    def validate_payment(
        self,
        expense: OneTimeExpense,
        bill: Bill,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Semantic checks for a bill payment.

        Checks:
        - The expense links to this bill
        - Amount is greater than zero
        - The linked period is exactly one period of the bill's frequency
        - Plus the plain expense checks
        """
        issues = list(self.validate_expense(expense, today).issues)
        link = expense.bill_payment

        if link is None or link.bill_id != bill.id:
            issues.append(ValidationIssue(
                field="bill_payment",
                issue_type="missing",
                message=f"Expense is not linked to bill {bill.id}",
                severity="error",
            ))
        elif not is_canonical_period(bill.frequency, link.period_start, link.period_end):
            expected = current_period(bill.frequency, link.period_start)
            issues.append(ValidationIssue(
                field="bill_payment.period",
                issue_type="invalid_value",
                message=(
                    f"Period {link.period_start.isoformat()} to {link.period_end.isoformat()} "
                    f"is not a single billing period ({FREQUENCY_LABELS[bill.frequency].lower()})"
                ),
                severity="error",
                suggested_fix=(
                    f"Use {expected.start.isoformat()} to {expected.end.isoformat()} "
                    f"({expected.label})"
                ),
            ))

        if expense.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Payment amount must be greater than zero",
                severity="error",
            ))

        return ValidationResult(record_id=expense.id, record_type="payment", issues=issues)

    def validate_additional_income(
        self,
        income: AdditionalIncome,
        today: Optional[date] = None,
    ) -> ValidationResult:
        today = today or date.today()
        issues = self._check_amount(income.amount)
        if isinstance(income, OneTimeIncome):
            issues.extend(self._check_date(income.date, today))
        issues.extend(self._check_category(income.source, INCOME_SOURCES, field="source"))
        return ValidationResult(record_id=income.id, record_type="additional_income", issues=issues)

    def validate_bill(self, bill: Bill) -> ValidationResult:
        issues = self._check_amount(bill.expected_amount, field="expected_amount")
        issues.extend(self._check_category(bill.category, BILL_CATEGORIES))
        return ValidationResult(record_id=bill.id, record_type="bill", issues=issues)

    def validate_lending(self, record: LendingRecord, today: Optional[date] = None) -> ValidationResult:
        """Zero amounts are errors; huge amounts and far-future dates are warnings."""
        today = today or date.today()
        issues = []
        if record.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Lending amount cannot be zero",
                severity="error",
                suggested_fix="Use a positive amount for money lent, negative for a repayment",
            ))
        issues.extend(self._check_amount(record.amount))
        issues.extend(self._check_date(record.date, today))
        return ValidationResult(record_id=record.id, record_type="lending", issues=issues)

    def validate_income(self, income: Income) -> ValidationResult:
        issues = self._check_amount(income.salary, field="salary")
        issues.extend(self._check_amount(income.savings, field="savings"))
        if income.savings > income.salary:
            issues.append(ValidationIssue(
                field="savings",
                issue_type="inconsistent",
                message="Savings goal is larger than salary",
                severity="warning",
            ))
        return ValidationResult(record_id=income.id, record_type="income", issues=issues)

    @staticmethod
    def ensure_valid(result: ValidationResult) -> ValidationResult:
        """
        Raise if the result has errors, otherwise hand it back.

        Raises:
            RecordValidationError: If any issue has error severity
        """
        if result.has_errors:
            raise RecordValidationError(result)
        return result
