"""
Core Data Models for the Finance Tracker

These models define the schemas of every record the tracker stores:
expenses, additional income, bills, people, lending records and the
per-owner income record.

DESIGN DECISION: A bill payment is stored as a one-time Expense that
carries a BillPaymentLink. There is no separate payments collection.
Aggregation relies on this: a bill payment is counted under "bills" and
never under "one-time" spending.

All monetary amounts are Decimals. Every owned record carries owner_id
and every read/write is filtered by it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillFrequency(str, Enum):
    """
    Supported bill frequencies.

    Periods are anchored to calendar boundaries, never to the bill's
    creation date.
    """
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"  # Jan-Feb, Mar-Apr, ...
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


# =============================================================================
# USER
# =============================================================================

class User(BaseModel):
    """
    Owner of all other records.

    Device linking and sync codes are handled outside this package;
    sync_code is only carried along.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Display currency code (presentation only)"
    )
    sync_code: Optional[str] = Field(
        default=None,
        max_length=32,
        description="Opaque pairing token"
    )
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# EXPENSES
# =============================================================================

class BillPaymentLink(BaseModel):
    """
    Extension carried by an expense that pays a bill.

    The period bounds are the canonical period of the bill's frequency,
    so matching a payment to a period is exact equality.
    """

    bill_id: UUID
    period_start: date
    period_end: date

    @model_validator(mode='after')
    def validate_period(self) -> 'BillPaymentLink':
        if self.period_end < self.period_start:
            raise ValueError("Billing period end cannot be before start")
        return self


class _ExpenseBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, description="Amount spent")
    category: str = Field(..., min_length=1, max_length=100)
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the record was added"
    )


class OneTimeExpense(_ExpenseBase):
    """A single expense on a given date, optionally paying a bill."""

    type: Literal["one-time"] = "one-time"
    date: date
    bill_payment: Optional[BillPaymentLink] = None

    @property
    def bill_id(self) -> Optional[UUID]:
        return self.bill_payment.bill_id if self.bill_payment else None

    @property
    def is_bill_payment(self) -> bool:
        return self.bill_payment is not None


class RecurringExpense(_ExpenseBase):
    """
    A subscription-like expense repeating monthly on day_of_month.

    It has no occurrence date of its own. created_at anchors the first
    occurrence and the start of the eligibility window.
    """

    type: Literal["recurring"] = "recurring"
    day_of_month: int = Field(..., ge=1, le=31)


Expense = Annotated[
    Union[OneTimeExpense, RecurringExpense],
    Field(discriminator="type"),
]


# =============================================================================
# ADDITIONAL INCOME
# =============================================================================

class _AdditionalIncomeBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    source: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Where the money came from (freelance, gift, ...)"
    )
    created_at: datetime = Field(default_factory=datetime.now)


class OneTimeIncome(_AdditionalIncomeBase):
    """Income received once on a given date."""

    type: Literal["one-time"] = "one-time"
    date: date


class RecurringIncome(_AdditionalIncomeBase):
    """Income received every month on day_of_month."""

    type: Literal["recurring"] = "recurring"
    day_of_month: int = Field(..., ge=1, le=31)


AdditionalIncome = Annotated[
    Union[OneTimeIncome, RecurringIncome],
    Field(discriminator="type"),
]


# =============================================================================
# BILLS
# =============================================================================

class Bill(BaseModel):
    """
    A period-based recurring obligation.

    Payments are OneTimeExpense records whose bill_payment.bill_id points
    here. At most one payment exists per (bill, period_start, period_end);
    the write flow enforces this, storage does not.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    frequency: BillFrequency
    expected_amount: Optional[Decimal] = Field(default=None, ge=0)
    deadline_day: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Day of the period's first month the bill is due"
    )
    reminder_days_before: Optional[int] = Field(
        default=None,
        ge=0,
        le=365,
        description="Warn this many days before the deadline (default 3)"
    )
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# LENDING
# =============================================================================

class Person(BaseModel):
    """Someone money is lent to. Their balance is derived, never stored."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=datetime.now)


class LendingRecord(BaseModel):
    """
    One lending transaction with a person.

    Positive amount: money lent out. Negative amount: repayment received.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    person_id: UUID
    amount: Decimal
    note: Optional[str] = Field(default=None, max_length=500)
    date: date
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator('amount')
    @classmethod
    def reject_zero_amount(cls, v: Decimal) -> Decimal:
        """A zero lending amount carries no meaning."""
        if v == 0:
            raise ValueError("Lending amount cannot be zero")
        return v

    @property
    def is_lent_out(self) -> bool:
        return self.amount > 0

    @property
    def is_repayment(self) -> bool:
        return self.amount < 0


# =============================================================================
# INCOME
# =============================================================================

class Income(BaseModel):
    """
    The single per-owner income record.

    salary is the net monthly figure, savings the monthly savings goal.
    Upserted, never appended.
    """

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    salary: Decimal = Field(default=Decimal("0"), ge=0)
    savings: Decimal = Field(default=Decimal("0"), ge=0)
    updated_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating an incoming record.

    Stage 1: Schema validation (pydantic model construction)
    Stage 2: Semantic validation (logic checks)
    """

    record_id: UUID = Field(
        ...,
        description="ID of the record being validated"
    )
    record_type: str
    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        """Messages of the non-blocking issues."""
        return [i.message for i in self.issues if i.severity == "warning"]
