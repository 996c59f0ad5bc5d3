"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
Stored records, computed summaries and audit events all conform to these
schemas.
"""

from finance_tracker.models.records import (
    AdditionalIncome,
    Bill,
    BillFrequency,
    BillPaymentLink,
    Expense,
    Income,
    LendingRecord,
    OneTimeExpense,
    OneTimeIncome,
    Person,
    RecurringExpense,
    RecurringIncome,
    User,
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.summary import (
    BillingPeriod,
    BillWithStatus,
    DataIntegrityWarning,
    DayTotal,
    DeadlineWarning,
    IncomeBreakdown,
    IncomeTotals,
    LendingOut,
    MonthlyFinancialSummary,
    OneTimeSpending,
    PaymentTrend,
    PersonBalance,
    RecurringOccurrence,
    SpendingBreakdown,
    SpendingItem,
    SpendingTotals,
    WeekTotals,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "AdditionalIncome",
    "Bill",
    "BillFrequency",
    "BillPaymentLink",
    "Expense",
    "Income",
    "LendingRecord",
    "OneTimeExpense",
    "OneTimeIncome",
    "Person",
    "RecurringExpense",
    "RecurringIncome",
    "User",
    "ValidationIssue",
    "ValidationResult",
    # Computed
    "BillingPeriod",
    "BillWithStatus",
    "DataIntegrityWarning",
    "DayTotal",
    "DeadlineWarning",
    "IncomeBreakdown",
    "IncomeTotals",
    "LendingOut",
    "MonthlyFinancialSummary",
    "OneTimeSpending",
    "PaymentTrend",
    "PersonBalance",
    "RecurringOccurrence",
    "SpendingBreakdown",
    "SpendingItem",
    "SpendingTotals",
    "WeekTotals",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
