"""
Main Orchestrator for the Finance Tracker

This module ties together all the components and defines the
end-to-end write flows for:
1. Bills (add → update/deactivate → record payment → delete with payments)
2. Everyday records (expenses, additional income, people, lending, income)
3. Accounts (delete a user and everything they own)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Ownership is checked before anything is mutated
- Nothing is stored without passing validation
- At most one payment per bill per period (checked and inserted inside
  one storage transaction)
- Every step is audited

Reads go through FinanceQueryExecutor; nothing here computes totals.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.audit.logger import configure_logging
from finance_tracker.config import get_settings
from finance_tracker.engine.dates import DateLike, format_iso_date, parse_iso_date
from finance_tracker.engine.payments import find_payment_for_period, payments_for_bill
from finance_tracker.engine.periods import current_period
from finance_tracker.models.records import (
    AdditionalIncome,
    Bill,
    Expense,
    Income,
    LendingRecord,
    OneTimeExpense,
    Person,
    User,
    ValidationResult,
)
from finance_tracker.queries import FinanceQueryExecutor
from finance_tracker.services.storage import (
    AuditStorageInterface,
    DuplicatePaymentError,
    FinanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    OwnershipMismatchError,
    StorageError,
)
from finance_tracker.validation import RecordValidator


logger = structlog.get_logger(__name__)

# Fields that identify a record and can't be changed by an update
IMMUTABLE_FIELDS = frozenset({"id", "owner_id", "created_at"})
# The variant and the bill link decide how a record is aggregated
IMMUTABLE_EXPENSE_FIELDS = IMMUTABLE_FIELDS | {"type", "bill_payment"}
IMMUTABLE_INCOME_FIELDS = IMMUTABLE_FIELDS | {"type"}


class _Flow:
    """Shared ownership and validation plumbing for the write flows."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or RecordValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def _require_owned(
        self,
        entity_type: str,
        record: Optional[Any],
        entity_id: UUID,
        owner_id: UUID,
    ) -> Any:
        """Return record if it exists and belongs to owner_id, otherwise raise."""
        if record is None or record.owner_id != owner_id:
            await self._audit_logger.log_ownership_mismatch(entity_type, entity_id, owner_id)
            raise OwnershipMismatchError(entity_type, entity_id)
        return record

    async def _require_valid(self, result: ValidationResult, owner_id: UUID) -> None:
        if result.has_errors:
            await self._audit_logger.log_validation_failed(
                record_type=result.record_type,
                record_id=result.record_id,
                owner_id=owner_id,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
            )
        self._validator.ensure_valid(result)

    @staticmethod
    def _apply_changes(
        entity_type: str,
        record: Any,
        changes: dict[str, Any],
        immutable: frozenset[str],
    ) -> Any:
        """
        Return a copy of record with changes applied and re-parsed.

        Raises:
            ValueError: If changes touch an immutable or unknown field
            pydantic.ValidationError: If the result is not a valid record
        """
        locked = immutable.intersection(changes)
        if locked:
            raise ValueError(f"Cannot change {entity_type} fields: {', '.join(sorted(locked))}")
        model = type(record)
        unknown = set(changes).difference(model.model_fields)
        if unknown:
            raise ValueError(f"Unknown {entity_type} fields: {', '.join(sorted(unknown))}")
        return model.model_validate({**record.model_dump(), **changes})

    async def _log_storage_failure(
        self,
        operation: str,
        error: StorageError,
        owner_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._audit_logger.log_error(
            error_type="storage_error",
            error_message=str(error),
            details={"operation": operation, "owner_id": str(owner_id)},
            correlation_id=correlation_id,
        )


class BillFlow(_Flow):
    """
    Orchestrates bills and their payments.

    Flow for a payment:
    1. Ownership → the bill must belong to the caller
    2. Validation → positive amount, canonical period
    3. Duplicate check + insert → one transaction
    4. Audit
    """

    async def _get_owned_bill(self, owner_id: UUID, bill_id: UUID) -> Bill:
        bill = await self._storage.get_bill(bill_id)
        return await self._require_owned("bill", bill, bill_id, owner_id)

    async def add_bill(self, bill: Bill) -> Bill:
        await self._require_valid(self._validator.validate_bill(bill), bill.owner_id)
        await self._storage.insert_bill(bill)
        await self._audit_logger.log_record_added("bill", bill.id, bill.owner_id, bill.name)
        return bill

    async def update_bill(self, owner_id: UUID, bill_id: UUID, /, **changes: Any) -> Bill:
        """
        Apply field changes to a bill.

        Raises:
            OwnershipMismatchError: If the bill is missing or not the owner's
            ValueError: If an identifying or unknown field is in changes
            pydantic.ValidationError: If the changed bill is not a valid Bill
        """
        bill = await self._get_owned_bill(owner_id, bill_id)
        updated = self._apply_changes("bill", bill, changes, IMMUTABLE_FIELDS)
        await self._require_valid(self._validator.validate_bill(updated), owner_id)
        await self._storage.update_bill(updated)

        await self._audit_logger.log_bill_updated(
            bill_id=bill_id,
            owner_id=owner_id,
            changes={k: str(v) for k, v in changes.items()},
            deactivated=bill.is_active and not updated.is_active,
        )
        return updated

    async def deactivate_bill(self, owner_id: UUID, bill_id: UUID) -> Bill:
        """Stop tracking a bill without losing its payment history."""
        return await self.update_bill(owner_id, bill_id, is_active=False)

    async def delete_bill(self, owner_id: UUID, bill_id: UUID) -> int:
        """
        Delete a bill together with every payment of it.

        Returns:
            Number of payments removed
        """
        correlation_id = create_correlation_id()
        try:
            async with self._storage.transaction():
                await self._get_owned_bill(owner_id, bill_id)
                payments = payments_for_bill(await self._storage.list_expenses(owner_id), bill_id)
                for payment in payments:
                    await self._storage.delete_expense(payment.id)
                await self._storage.delete_bill(bill_id)
        except OwnershipMismatchError:
            raise
        except StorageError as e:
            await self._log_storage_failure("delete_bill", e, owner_id, correlation_id)
            raise

        await self._audit_logger.log_record_deleted(
            "bill",
            bill_id,
            owner_id,
            cascaded={"payment": len(payments)},
            correlation_id=correlation_id,
        )
        return len(payments)

    async def record_payment(
        self,
        owner_id: UUID,
        bill_id: UUID,
        amount: Decimal,
        paid_on: DateLike,
        period_start: Optional[DateLike] = None,
        period_end: Optional[DateLike] = None,
        name: Optional[str] = None,
    ) -> OneTimeExpense:
        """
        Record a payment of a bill as a linked one-time expense.

        The period defaults to the bill's period containing paid_on. An
        explicit period needs both bounds.

        Raises:
            ValueError: If only one period bound is given
            OwnershipMismatchError: If the bill is missing or not the owner's
            RecordValidationError: If the payment is invalid
            DuplicatePaymentError: If the period is already paid
        """
        if (period_start is None) != (period_end is None):
            raise ValueError("Give both period_start and period_end, or neither")

        bill = await self._get_owned_bill(owner_id, bill_id)
        paid_on = parse_iso_date(paid_on)

        if period_start is None:
            period = current_period(bill.frequency, paid_on)
            period_start, period_end = period.start, period.end

        data = {
            "type": "one-time",
            "owner_id": owner_id,
            "name": name or bill.name,
            "amount": amount,
            "category": bill.category,
            "date": paid_on,
            "bill_payment": {
                "bill_id": bill_id,
                "period_start": period_start,
                "period_end": period_end,
            },
        }
        expense, result = self._validator.parse("expense", data)
        await self._require_valid(result, owner_id)
        await self._require_valid(self._validator.validate_payment(expense, bill), owner_id)

        link = expense.bill_payment
        try:
            async with self._storage.transaction():
                existing = find_payment_for_period(
                    payments_for_bill(await self._storage.list_expenses(owner_id), bill_id),
                    link.period_start,
                    link.period_end,
                )
                if existing is None:
                    await self._storage.insert_expense(expense)
        except StorageError as e:
            await self._log_storage_failure("record_payment", e, owner_id)
            raise

        if existing is not None:
            await self._audit_logger.log_duplicate_payment(
                bill_id=bill_id,
                owner_id=owner_id,
                period_start=format_iso_date(link.period_start),
                period_end=format_iso_date(link.period_end),
            )
            raise DuplicatePaymentError(
                bill_id,
                format_iso_date(link.period_start),
                format_iso_date(link.period_end),
            )

        await self._audit_logger.log_payment_recorded(
            expense_id=expense.id,
            bill_id=bill_id,
            owner_id=owner_id,
            amount=str(expense.amount),
            period_start=format_iso_date(link.period_start),
            period_end=format_iso_date(link.period_end),
        )
        return expense

    async def remove_payment(self, owner_id: UUID, expense_id: UUID) -> None:
        """Undo a payment; the bill's period becomes unpaid again."""
        expense = await self._storage.get_expense(expense_id)
        if expense is not None and not getattr(expense, "is_bill_payment", False):
            expense = None
        await self._require_owned("payment", expense, expense_id, owner_id)
        await self._storage.delete_expense(expense_id)
        await self._audit_logger.log_record_deleted("payment", expense_id, owner_id)


class RecordFlow(_Flow):
    """Orchestrates expenses, additional income, people, lending and income."""

    async def add_expense(self, expense: Expense, today: Optional[date] = None) -> Expense:
        """
        Add a one-time or recurring expense.

        Bill payments go through BillFlow.record_payment instead.
        """
        if getattr(expense, "bill_payment", None) is not None:
            raise ValueError("Bill payments must be recorded through BillFlow.record_payment")
        await self._require_valid(
            self._validator.validate_expense(expense, today),
            expense.owner_id,
        )
        await self._storage.insert_expense(expense)
        await self._audit_logger.log_record_added(
            "expense", expense.id, expense.owner_id, expense.name
        )
        return expense

    async def update_expense(
        self,
        owner_id: UUID,
        expense_id: UUID,
        /,
        *,
        today: Optional[date] = None,
        **changes: Any,
    ) -> Expense:
        """
        Apply field changes to a one-time or recurring expense.

        Bill payments are not edited in place; remove and re-record them.

        Raises:
            OwnershipMismatchError: If the expense is missing or not the owner's
            ValueError: If the expense is a bill payment, or changes touch
                an identifying, variant or unknown field
            RecordValidationError: If the changed expense is invalid
        """
        expense = await self._storage.get_expense(expense_id)
        await self._require_owned("expense", expense, expense_id, owner_id)
        if getattr(expense, "is_bill_payment", False):
            raise ValueError("Bill payments can't be edited; use BillFlow.remove_payment and record_payment")

        updated = self._apply_changes("expense", expense, changes, IMMUTABLE_EXPENSE_FIELDS)
        await self._require_valid(self._validator.validate_expense(updated, today), owner_id)
        await self._storage.update_expense(updated)
        await self._audit_logger.log_record_updated(
            "expense", expense_id, owner_id, {k: str(v) for k, v in changes.items()}
        )
        return updated

    async def delete_expense(self, owner_id: UUID, expense_id: UUID) -> None:
        expense = await self._storage.get_expense(expense_id)
        await self._require_owned("expense", expense, expense_id, owner_id)
        await self._storage.delete_expense(expense_id)
        await self._audit_logger.log_record_deleted("expense", expense_id, owner_id)

    async def add_additional_income(
        self,
        income: AdditionalIncome,
        today: Optional[date] = None,
    ) -> AdditionalIncome:
        await self._require_valid(
            self._validator.validate_additional_income(income, today),
            income.owner_id,
        )
        await self._storage.insert_additional_income(income)
        await self._audit_logger.log_record_added(
            "additional_income", income.id, income.owner_id, income.name
        )
        return income

    async def update_additional_income(
        self,
        owner_id: UUID,
        income_id: UUID,
        /,
        *,
        today: Optional[date] = None,
        **changes: Any,
    ) -> AdditionalIncome:
        income = await self._storage.get_additional_income(income_id)
        await self._require_owned("additional_income", income, income_id, owner_id)

        updated = self._apply_changes(
            "additional_income", income, changes, IMMUTABLE_INCOME_FIELDS
        )
        await self._require_valid(
            self._validator.validate_additional_income(updated, today),
            owner_id,
        )
        await self._storage.update_additional_income(updated)
        await self._audit_logger.log_record_updated(
            "additional_income", income_id, owner_id, {k: str(v) for k, v in changes.items()}
        )
        return updated

    async def delete_additional_income(self, owner_id: UUID, income_id: UUID) -> None:
        income = await self._storage.get_additional_income(income_id)
        await self._require_owned("additional_income", income, income_id, owner_id)
        await self._storage.delete_additional_income(income_id)
        await self._audit_logger.log_record_deleted("additional_income", income_id, owner_id)

    async def upsert_income(
        self,
        owner_id: UUID,
        salary: Union[Decimal, str],
        savings: Union[Decimal, str],
    ) -> Income:
        """Create or replace the owner's single income record."""
        existing = await self._storage.get_income(owner_id)
        data = {"owner_id": owner_id, "salary": salary, "savings": savings}
        if existing is not None:
            data["id"] = existing.id

        income, result = self._validator.parse("income", data)
        await self._require_valid(result, owner_id)
        await self._require_valid(self._validator.validate_income(income), owner_id)

        await self._storage.save_income(income)
        await self._audit_logger.log_income_updated(
            income_id=income.id,
            owner_id=owner_id,
            salary=str(income.salary),
            savings=str(income.savings),
        )
        return income

    async def add_person(self, person: Person) -> Person:
        await self._storage.insert_person(person)
        await self._audit_logger.log_record_added("person", person.id, person.owner_id, person.name)
        return person

    async def update_person(self, owner_id: UUID, person_id: UUID, /, **changes: Any) -> Person:
        """Rename a person; their lending history stays attached."""
        person = await self._storage.get_person(person_id)
        await self._require_owned("person", person, person_id, owner_id)

        updated = self._apply_changes("person", person, changes, IMMUTABLE_FIELDS)
        await self._storage.update_person(updated)
        await self._audit_logger.log_record_updated(
            "person", person_id, owner_id, {k: str(v) for k, v in changes.items()}
        )
        return updated

    async def delete_person(self, owner_id: UUID, person_id: UUID) -> int:
        """
        Delete a person together with their lending history.

        Returns:
            Number of lending records removed
        """
        correlation_id = create_correlation_id()
        try:
            async with self._storage.transaction():
                person = await self._storage.get_person(person_id)
                await self._require_owned("person", person, person_id, owner_id)
                records = [
                    r for r in await self._storage.list_lending(owner_id)
                    if r.person_id == person_id
                ]
                for record in records:
                    await self._storage.delete_lending(record.id)
                await self._storage.delete_person(person_id)
        except OwnershipMismatchError:
            raise
        except StorageError as e:
            await self._log_storage_failure("delete_person", e, owner_id, correlation_id)
            raise

        await self._audit_logger.log_record_deleted(
            "person",
            person_id,
            owner_id,
            cascaded={"lending": len(records)},
            correlation_id=correlation_id,
        )
        return len(records)

    async def add_lending(self, record: LendingRecord, today: Optional[date] = None) -> LendingRecord:
        """
        Record money lent (positive amount) or repaid (negative amount).

        Raises:
            OwnershipMismatchError: If the person is missing or not the owner's
            RecordValidationError: If the record is invalid
        """
        person = await self._storage.get_person(record.person_id)
        await self._require_owned("person", person, record.person_id, record.owner_id)
        await self._require_valid(self._validator.validate_lending(record, today), record.owner_id)

        await self._storage.insert_lending(record)
        await self._audit_logger.log_record_added(
            "lending", record.id, record.owner_id, person.name
        )
        return record

    async def delete_lending(self, owner_id: UUID, lending_id: UUID) -> None:
        record = await self._storage.get_lending(lending_id)
        await self._require_owned("lending", record, lending_id, owner_id)
        await self._storage.delete_lending(lending_id)
        await self._audit_logger.log_record_deleted("lending", lending_id, owner_id)


class AccountFlow(_Flow):
    """Orchestrates users as a whole."""

    async def create_user(self, currency: Optional[str] = None) -> User:
        user = User(currency=currency)
        await self._storage.insert_user(user)
        return user

    async def delete_user_and_data(self, user_id: UUID) -> dict[str, int]:
        """
        Delete a user and every record they own.

        Returns:
            Count of removed records per collection
        """
        correlation_id = create_correlation_id()
        try:
            async with self._storage.transaction():
                user = await self._storage.get_user(user_id)
                if user is None:
                    await self._audit_logger.log_ownership_mismatch("user", user_id, user_id)
                    raise OwnershipMismatchError("user", user_id)

                counts = {}
                expenses = await self._storage.list_expenses(user_id)
                for expense in expenses:
                    await self._storage.delete_expense(expense.id)
                counts["expense"] = len(expenses)

                extra = await self._storage.list_additional_income(user_id)
                for income in extra:
                    await self._storage.delete_additional_income(income.id)
                counts["additional_income"] = len(extra)

                records = await self._storage.list_lending(user_id)
                for record in records:
                    await self._storage.delete_lending(record.id)
                counts["lending"] = len(records)

                people = await self._storage.list_people(user_id)
                for person in people:
                    await self._storage.delete_person(person.id)
                counts["person"] = len(people)

                bills = await self._storage.list_bills(user_id)
                for bill in bills:
                    await self._storage.delete_bill(bill.id)
                counts["bill"] = len(bills)

                counts["income"] = int(await self._storage.delete_income(user_id))
                await self._storage.delete_user(user_id)
        except OwnershipMismatchError:
            raise
        except StorageError as e:
            await self._log_storage_failure("delete_user_and_data", e, user_id, correlation_id)
            raise

        await self._audit_logger.log_record_deleted(
            "user",
            user_id,
            user_id,
            cascaded=counts,
            correlation_id=correlation_id,
        )
        return counts


def create_app_components(
    storage: Optional[FinanceStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[BillFlow, RecordFlow, AccountFlow, FinanceQueryExecutor]:
    """
    Factory function to create all application components.

    Args:
        storage: Finance storage to use. If None, the backend named by
                 FINANCE_STORAGE_BACKEND is built.
        audit_storage: Audit storage to use alongside an explicit storage.

    Returns:
        (bill_flow, record_flow, account_flow, query_executor)
    """
    settings = get_settings().app
    configure_logging(settings.log_level)

    if storage is None:
        if settings.storage_backend == "google_sheets":
            try:
                sheets_client = GoogleSheetsClient()
                storage = GoogleSheetsFinanceStorage(sheets_client)
                audit_storage = GoogleSheetsAuditStorage(sheets_client)
            except Exception as e:
                # Storage not configured - continue in memory
                logger.warning("storage_not_configured", error=str(e))
                storage = None
        if storage is None:
            storage = InMemoryFinanceStorage()
            audit_storage = audit_storage or InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    validator = RecordValidator(settings)

    return (
        BillFlow(storage, validator, audit_logger),
        RecordFlow(storage, validator, audit_logger),
        AccountFlow(storage, validator, audit_logger),
        FinanceQueryExecutor(storage, audit_logger, settings),
    )
