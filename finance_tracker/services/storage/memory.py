"""
In-Memory Storage Implementation

Keeps every collection in a dict keyed by record id. Used by the tests
and for local runs without a spreadsheet.

Records are copied on the way in and out so callers never share state
with the store.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.records import (
    AdditionalIncome,
    Bill,
    Expense,
    Income,
    LendingRecord,
    Person,
    User,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    FinanceStorageInterface,
    NotFoundError,
)


M = TypeVar("M", bound=BaseModel)


class InMemoryFinanceStorage(FinanceStorageInterface):
    """Dict-backed storage with a single asyncio.Lock as its transaction."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._users: dict[UUID, User] = {}
        self._expenses: dict[UUID, Expense] = {}
        self._additional_income: dict[UUID, AdditionalIncome] = {}
        self._income: dict[UUID, Income] = {}  # keyed by owner_id
        self._bills: dict[UUID, Bill] = {}
        self._people: dict[UUID, Person] = {}
        self._lending: dict[UUID, LendingRecord] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    @staticmethod
    def _copy(record: Optional[M]) -> Optional[M]:
        return record.model_copy(deep=True) if record is not None else None

    def _owned(self, collection: dict[UUID, M], owner_id: UUID) -> list[M]:
        return [
            self._copy(r) for r in collection.values()
            if r.owner_id == owner_id
        ]

    def _insert(self, collection: dict[UUID, M], record: M) -> UUID:
        collection[record.id] = self._copy(record)
        return record.id

    def _update(self, collection: dict[UUID, M], record: M, label: str) -> bool:
        if record.id not in collection:
            raise NotFoundError(f"{label} not found: {record.id}")
        collection[record.id] = self._copy(record)
        return True

    @staticmethod
    def _delete(collection: dict[UUID, BaseModel], record_id: UUID) -> bool:
        return collection.pop(record_id, None) is not None

    # Users

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return self._copy(self._users.get(user_id))

    async def insert_user(self, user: User) -> UUID:
        return self._insert(self._users, user)

    async def delete_user(self, user_id: UUID) -> bool:
        return self._delete(self._users, user_id)

    # Expenses

    async def list_expenses(self, owner_id: UUID) -> list[Expense]:
        return self._owned(self._expenses, owner_id)

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._copy(self._expenses.get(expense_id))

    async def insert_expense(self, expense: Expense) -> UUID:
        return self._insert(self._expenses, expense)

    async def update_expense(self, expense: Expense) -> bool:
        return self._update(self._expenses, expense, "Expense")

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._delete(self._expenses, expense_id)

    # Additional income

    async def list_additional_income(self, owner_id: UUID) -> list[AdditionalIncome]:
        return self._owned(self._additional_income, owner_id)

    async def get_additional_income(self, income_id: UUID) -> Optional[AdditionalIncome]:
        return self._copy(self._additional_income.get(income_id))

    async def insert_additional_income(self, income: AdditionalIncome) -> UUID:
        return self._insert(self._additional_income, income)

    async def update_additional_income(self, income: AdditionalIncome) -> bool:
        return self._update(self._additional_income, income, "Additional income")

    async def delete_additional_income(self, income_id: UUID) -> bool:
        return self._delete(self._additional_income, income_id)

    # Income

    async def get_income(self, owner_id: UUID) -> Optional[Income]:
        return self._copy(self._income.get(owner_id))

    async def save_income(self, income: Income) -> UUID:
        self._income[income.owner_id] = self._copy(income)
        return income.id

    async def delete_income(self, owner_id: UUID) -> bool:
        return self._delete(self._income, owner_id)

    # Bills

    async def list_bills(self, owner_id: UUID, active_only: bool = False) -> list[Bill]:
        bills = self._owned(self._bills, owner_id)
        if active_only:
            bills = [b for b in bills if b.is_active]
        return bills

    async def get_bill(self, bill_id: UUID) -> Optional[Bill]:
        return self._copy(self._bills.get(bill_id))

    async def insert_bill(self, bill: Bill) -> UUID:
        return self._insert(self._bills, bill)

    async def update_bill(self, bill: Bill) -> bool:
        return self._update(self._bills, bill, "Bill")

    async def delete_bill(self, bill_id: UUID) -> bool:
        return self._delete(self._bills, bill_id)

    # People and lending

    async def list_people(self, owner_id: UUID) -> list[Person]:
        return self._owned(self._people, owner_id)

    async def get_person(self, person_id: UUID) -> Optional[Person]:
        return self._copy(self._people.get(person_id))

    async def insert_person(self, person: Person) -> UUID:
        return self._insert(self._people, person)

    async def update_person(self, person: Person) -> bool:
        return self._update(self._people, person, "Person")

    async def delete_person(self, person_id: UUID) -> bool:
        return self._delete(self._people, person_id)

    async def list_lending(self, owner_id: UUID) -> list[LendingRecord]:
        return self._owned(self._lending, owner_id)

    async def get_lending(self, lending_id: UUID) -> Optional[LendingRecord]:
        return self._copy(self._lending.get(lending_id))

    async def insert_lending(self, record: LendingRecord) -> UUID:
        return self._insert(self._lending, record)

    async def delete_lending(self, lending_id: UUID) -> bool:
        return self._delete(self._lending, lending_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        matching = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(matching, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
