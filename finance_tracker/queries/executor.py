"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
Every figure shown to the user (period totals, bill status, deadlines,
lending balances) is computed here from stored records, by the pure
functions in finance_tracker.engine. Nothing is cached or stored back.

The executor's job is limited to:
1. Loading the owner's records from storage
2. Handing them to the engine
3. Reporting data-integrity problems the engine found to the audit log
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.engine import aggregator, deadlines, lending, payments
from finance_tracker.engine.dates import DateLike, format_iso_date
from finance_tracker.models.records import AdditionalIncome, Expense, LendingRecord, OneTimeExpense
from finance_tracker.models.summary import (
    BillWithStatus,
    DataIntegrityWarning,
    DeadlineWarning,
    IncomeBreakdown,
    MonthlyFinancialSummary,
    PersonBalance,
    SpendingBreakdown,
    WeekTotals,
)
from finance_tracker.services.storage import (
    FinanceStorageInterface,
    OwnershipMismatchError,
)


class FinanceQueryExecutor:
    """
    Executes read queries for one owner at a time against finance storage.

    GUARANTEES:
    - Only returns figures derived from real stored data
    - Every read is scoped to the given owner
    - Bill payments pointing at deleted bills are skipped and reported,
      never counted
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app

    async def _report(self, owner_id: UUID, warnings: list[DataIntegrityWarning]) -> None:
        for warning in warnings:
            await self._audit.log_dangling_reference(
                owner_id=owner_id,
                record_type=warning.record_type,
                record_id=warning.record_id,
                missing_type=warning.missing_type,
                missing_id=warning.missing_id,
            )

    # -------------------------------------------------------------------------
    # Period aggregation
    # -------------------------------------------------------------------------

    async def get_spending_for_period(
        self,
        owner_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
    ) -> SpendingBreakdown:
        """Spending breakdown for [start_date, end_date]."""
        breakdown = aggregator.get_spending_for_period(
            await self._storage.list_expenses(owner_id),
            await self._storage.list_lending(owner_id),
            start_date,
            end_date,
            bills=await self._storage.list_bills(owner_id),
        )
        await self._report(owner_id, breakdown.warnings)
        return breakdown

    async def get_income_for_period(
        self,
        owner_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
    ) -> IncomeBreakdown:
        """Income breakdown for [start_date, end_date]."""
        return aggregator.get_income_for_period(
            await self._storage.get_income(owner_id),
            await self._storage.list_additional_income(owner_id),
            await self._storage.list_lending(owner_id),
            start_date,
            end_date,
        )

    async def get_monthly_financial_summary(
        self,
        owner_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
    ) -> MonthlyFinancialSummary:
        """Income against spending for the window, with remaining and net balance."""
        summary = aggregator.get_monthly_financial_summary(
            await self._storage.list_expenses(owner_id),
            await self._storage.list_additional_income(owner_id),
            await self._storage.list_lending(owner_id),
            await self._storage.get_income(owner_id),
            start_date,
            end_date,
            bills=await self._storage.list_bills(owner_id),
        )
        await self._report(owner_id, summary.spending.warnings)
        await self._audit.log_summary_computed(
            owner_id=owner_id,
            start_date=format_iso_date(summary.spending.start_date),
            end_date=format_iso_date(summary.spending.end_date),
            remaining=str(summary.remaining),
        )
        return summary

    # -------------------------------------------------------------------------
    # Record listings
    # -------------------------------------------------------------------------

    async def list_expenses_between(
        self,
        owner_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
    ) -> list[Expense]:
        """One-time expenses dated in the window plus every recurring expense."""
        return aggregator.records_in_window(
            await self._storage.list_expenses(owner_id), start_date, end_date
        )

    async def list_additional_income_between(
        self,
        owner_id: UUID,
        start_date: DateLike,
        end_date: DateLike,
    ) -> list[AdditionalIncome]:
        return aggregator.records_in_window(
            await self._storage.list_additional_income(owner_id), start_date, end_date
        )

    # -------------------------------------------------------------------------
    # Calendar
    # -------------------------------------------------------------------------

    async def get_daily_total(self, owner_id: UUID, on: DateLike) -> Decimal:
        return aggregator.get_daily_total(
            await self._storage.list_expenses(owner_id),
            await self._storage.list_lending(owner_id),
            on,
            bills=await self._storage.list_bills(owner_id),
        )

    async def get_week_totals(self, owner_id: UUID, week_start: DateLike) -> WeekTotals:
        return aggregator.get_week_totals(
            await self._storage.list_expenses(owner_id),
            await self._storage.list_lending(owner_id),
            week_start,
            bills=await self._storage.list_bills(owner_id),
        )

    # -------------------------------------------------------------------------
    # Bills
    # -------------------------------------------------------------------------

    async def list_bills_with_status(
        self,
        owner_id: UUID,
        today: Optional[DateLike] = None,
        active_only: bool = True,
    ) -> list[BillWithStatus]:
        """
        Each bill with its current period, paid flag, history and trend.

        Deactivated bills are left out unless active_only is False.
        """
        return payments.bills_with_status(
            await self._storage.list_bills(owner_id, active_only=active_only),
            await self._storage.list_expenses(owner_id),
            today if today is not None else date.today(),
        )

    async def get_upcoming_deadlines(
        self,
        owner_id: UUID,
        today: Optional[DateLike] = None,
    ) -> list[DeadlineWarning]:
        """Unpaid active bills within their reminder window or overdue."""
        return deadlines.upcoming_deadlines(
            await self._storage.list_bills(owner_id, active_only=True),
            await self._storage.list_expenses(owner_id),
            today if today is not None else date.today(),
            default_reminder_days=self._settings.default_reminder_days,
        )

    async def get_bill_payments(self, owner_id: UUID, bill_id: UUID) -> list[OneTimeExpense]:
        """
        Payment history of one bill, newest period first.

        Raises:
            OwnershipMismatchError: If the bill is missing or not the owner's
        """
        bill = await self._storage.get_bill(bill_id)
        if bill is None or bill.owner_id != owner_id:
            await self._audit.log_ownership_mismatch("bill", bill_id, owner_id)
            raise OwnershipMismatchError("bill", bill_id)
        return payments.sort_newest_first(
            payments.payments_for_bill(await self._storage.list_expenses(owner_id), bill_id)
        )

    # -------------------------------------------------------------------------
    # Lending
    # -------------------------------------------------------------------------

    async def get_person_balances(self, owner_id: UUID) -> list[PersonBalance]:
        return lending.person_summaries(
            await self._storage.list_people(owner_id),
            await self._storage.list_lending(owner_id),
        )

    async def list_lending_for_person(self, owner_id: UUID, person_id: UUID) -> list[LendingRecord]:
        """
        Lending history with one person, newest first.

        Raises:
            OwnershipMismatchError: If the person is missing or not the owner's
        """
        person = await self._storage.get_person(person_id)
        if person is None or person.owner_id != owner_id:
            await self._audit.log_ownership_mismatch("person", person_id, owner_id)
            raise OwnershipMismatchError("person", person_id)
        records = [
            r for r in await self._storage.list_lending(owner_id)
            if r.person_id == person_id
        ]
        return sorted(records, key=lambda r: (r.date, r.created_at), reverse=True)
