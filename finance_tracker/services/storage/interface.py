"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
The calculation engine never talks to storage; the query executor and the
write flows do, through this interface. Implementations:
1. InMemoryFinanceStorage - tests and local use
2. GoogleSheetsFinanceStorage - hosted spreadsheet as a document store

The interface is intentionally simple - we're not building a full ORM.
Reads are owner-scoped equality lookups; anything smarter (date ranges,
grouping) happens in the engine.

Storage does NOT enforce cross-record invariants such as "one payment per
bill per period". Callers run the check and the insert inside
transaction(), which every implementation must serialize.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Optional
from uuid import UUID

from finance_tracker.models.records import (
    AdditionalIncome,
    Bill,
    Expense,
    Income,
    LendingRecord,
    Person,
    User,
)
from finance_tracker.models.audit import AuditEvent


class FinanceStorageInterface(ABC):
    """
    Abstract interface for finance record storage.

    Any storage implementation must implement these methods.
    list_* methods return only the given owner's records.
    get_* methods return None when the record does not exist; ownership
    is checked by the caller.
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager:
        """
        Serialization boundary for read-then-write sequences.

        Usage:
            async with storage.transaction():
                ...check...
                await storage.insert_expense(expense)
        """
        pass

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def insert_user(self, user: User) -> UUID:
        pass

    @abstractmethod
    async def delete_user(self, user_id: UUID) -> bool:
        """Delete the user row only. Owned records are removed by the caller."""
        pass

    # -------------------------------------------------------------------------
    # Expenses (bill payments included)
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_expenses(self, owner_id: UUID) -> list[Expense]:
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        pass

    @abstractmethod
    async def insert_expense(self, expense: Expense) -> UUID:
        """
        Insert an expense (a bill payment when it carries a bill link).

        Returns:
            The expense id
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> bool:
        """
        Replace a stored expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """Returns True if something was deleted."""
        pass

    # -------------------------------------------------------------------------
    # Additional income
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_additional_income(self, owner_id: UUID) -> list[AdditionalIncome]:
        pass

    @abstractmethod
    async def get_additional_income(self, income_id: UUID) -> Optional[AdditionalIncome]:
        pass

    @abstractmethod
    async def insert_additional_income(self, income: AdditionalIncome) -> UUID:
        pass

    @abstractmethod
    async def update_additional_income(self, income: AdditionalIncome) -> bool:
        """Raises NotFoundError if the entry doesn't exist."""
        pass

    @abstractmethod
    async def delete_additional_income(self, income_id: UUID) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Income (one per owner)
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_income(self, owner_id: UUID) -> Optional[Income]:
        pass

    @abstractmethod
    async def save_income(self, income: Income) -> UUID:
        """Replace the owner's income record, creating it if needed."""
        pass

    @abstractmethod
    async def delete_income(self, owner_id: UUID) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Bills
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_bills(self, owner_id: UUID, active_only: bool = False) -> list[Bill]:
        pass

    @abstractmethod
    async def get_bill(self, bill_id: UUID) -> Optional[Bill]:
        pass

    @abstractmethod
    async def insert_bill(self, bill: Bill) -> UUID:
        pass

    @abstractmethod
    async def update_bill(self, bill: Bill) -> bool:
        """
        Raises:
            NotFoundError: If the bill doesn't exist
        """
        pass

    @abstractmethod
    async def delete_bill(self, bill_id: UUID) -> bool:
        """Delete the bill row only. Its payments are removed by the caller."""
        pass

    # -------------------------------------------------------------------------
    # People and lending
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_people(self, owner_id: UUID) -> list[Person]:
        pass

    @abstractmethod
    async def get_person(self, person_id: UUID) -> Optional[Person]:
        pass

    @abstractmethod
    async def insert_person(self, person: Person) -> UUID:
        pass

    @abstractmethod
    async def update_person(self, person: Person) -> bool:
        pass

    @abstractmethod
    async def delete_person(self, person_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_lending(self, owner_id: UUID) -> list[LendingRecord]:
        pass

    @abstractmethod
    async def get_lending(self, lending_id: UUID) -> Optional[LendingRecord]:
        pass

    @abstractmethod
    async def insert_lending(self, record: LendingRecord) -> UUID:
        pass

    @abstractmethod
    async def delete_lending(self, lending_id: UUID) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one entity in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class DuplicatePaymentError(DuplicateError):
    """A bill already has a payment for this exact period."""

    def __init__(self, bill_id: UUID, period_start: str, period_end: str):
        self.bill_id = bill_id
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            f"Bill {bill_id} already paid for period {period_start} to {period_end}"
        )


class OwnershipMismatchError(StorageError):
    """
    A referenced record does not belong to the requesting owner.

    Also raised when the record does not exist at all, so callers cannot
    discover other owners' ids.
    """

    def __init__(self, entity_type: str, entity_id: UUID):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
