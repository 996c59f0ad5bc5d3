"""
Computed Models

Everything the engine returns: billing periods, payment trends, deadline
warnings, spending/income breakdowns and the monthly summary.

These are derived values. None of them is ever persisted.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.models.records import (
    Bill,
    BillFrequency,
    LendingRecord,
    OneTimeExpense,
    OneTimeIncome,
    Person,
    RecurringExpense,
    RecurringIncome,
)


ZERO = Decimal("0")


# =============================================================================
# PERIODS, PAYMENTS AND DEADLINES
# =============================================================================

class BillingPeriod(BaseModel):
    """Canonical start/end of one billing cycle, plus a display label."""

    frequency: BillFrequency
    start: date
    end: date
    label: str

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class PaymentTrend(BaseModel):
    """
    Change between a bill's two most recent payments.

    percentage is None when the previous payment was zero and the change
    cannot be expressed as a percentage.
    """

    direction: Literal["up", "down", "same"]
    percentage: Optional[int] = Field(default=None, ge=0)


class DeadlineWarning(BaseModel):
    """An unpaid bill whose deadline is near or already passed."""

    bill: Bill
    period: BillingPeriod
    deadline_date: date
    days_until_deadline: int

    @property
    def is_overdue(self) -> bool:
        return self.days_until_deadline < 0


class BillWithStatus(BaseModel):
    """A bill together with its payment state for the current period."""

    bill: Bill
    period: BillingPeriod
    is_paid: bool
    payments: list[OneTimeExpense] = Field(
        default_factory=list,
        description="Payments for this bill, newest period first"
    )
    trend: Optional[PaymentTrend] = None

    @property
    def latest_payment(self) -> Optional[OneTimeExpense]:
        return self.payments[0] if self.payments else None


# =============================================================================
# DATA INTEGRITY
# =============================================================================

class DataIntegrityWarning(BaseModel):
    """
    A record skipped during aggregation because it references something
    that no longer exists. Reported, never raised.
    """

    record_type: str
    record_id: UUID
    missing_type: str
    missing_id: UUID
    message: str


# =============================================================================
# DAILY SPENDING ITEMS
# =============================================================================

class OneTimeSpending(BaseModel):
    """A one-time expense (bill payments included) on the day."""

    kind: Literal["expense"] = "expense"
    expense: OneTimeExpense

    @property
    def amount(self) -> Decimal:
        return self.expense.amount


class RecurringOccurrence(BaseModel):
    """A recurring expense that is active on the day."""

    kind: Literal["recurring"] = "recurring"
    expense: RecurringExpense
    on: date

    @property
    def amount(self) -> Decimal:
        return self.expense.amount


class LendingOut(BaseModel):
    """Money lent out on the day."""

    kind: Literal["lending"] = "lending"
    record: LendingRecord

    @property
    def amount(self) -> Decimal:
        return self.record.amount


SpendingItem = Annotated[
    Union[OneTimeSpending, RecurringOccurrence, LendingOut],
    Field(discriminator="kind"),
]


class DayTotal(BaseModel):
    """Spending shown in one calendar cell."""

    date: date
    total: Decimal = ZERO
    items: list[SpendingItem] = Field(default_factory=list)


class WeekTotals(BaseModel):
    """Seven daily totals starting on a Monday."""

    week_start: date
    days: list[DayTotal]

    @property
    def total(self) -> Decimal:
        return sum((d.total for d in self.days), ZERO)


# =============================================================================
# PERIOD BREAKDOWNS
# =============================================================================

class SpendingTotals(BaseModel):
    one_time: Decimal = ZERO
    recurring: Decimal = ZERO
    bills: Decimal = ZERO
    lending: Decimal = ZERO
    total: Decimal = ZERO


class SpendingBreakdown(BaseModel):
    """
    Spending for a [start, end] window.

    Recurring expenses are a steady-state monthly figure and are included
    whatever the window.
    """

    start_date: date
    end_date: date
    one_time_expenses: list[OneTimeExpense] = Field(default_factory=list)
    recurring_expenses: list[RecurringExpense] = Field(default_factory=list)
    bill_payments: list[OneTimeExpense] = Field(default_factory=list)
    lending_out: list[LendingRecord] = Field(default_factory=list)
    totals: SpendingTotals = Field(default_factory=SpendingTotals)
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    warnings: list[DataIntegrityWarning] = Field(default_factory=list)


class IncomeTotals(BaseModel):
    salary: Decimal = ZERO
    recurring: Decimal = ZERO
    one_time: Decimal = ZERO
    lending_repaid: Decimal = ZERO
    total: Decimal = ZERO


class IncomeBreakdown(BaseModel):
    """Income for a [start, end] window."""

    start_date: date
    end_date: date
    base_salary: Decimal = ZERO
    savings: Decimal = ZERO
    recurring_income: list[RecurringIncome] = Field(default_factory=list)
    one_time_income: list[OneTimeIncome] = Field(default_factory=list)
    lending_repayments: list[LendingRecord] = Field(default_factory=list)
    totals: IncomeTotals = Field(default_factory=IncomeTotals)


class MonthlyFinancialSummary(BaseModel):
    """Income against spending with what is left before and after savings."""

    spending: SpendingBreakdown
    income: IncomeBreakdown
    remaining: Decimal
    net_balance: Decimal


# =============================================================================
# LENDING
# =============================================================================

class PersonBalance(BaseModel):
    """A person with their derived lending balance."""

    person: Person
    balance: Decimal = ZERO
    records: list[LendingRecord] = Field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        return self.balance <= 0
