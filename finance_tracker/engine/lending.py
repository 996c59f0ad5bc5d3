"""
Lending Balances

A person's balance is the sum of their lending amounts: positive while
they still owe money, zero or negative once settled. Balances are always
derived from the records and never stored.
"""

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from finance_tracker.models.records import LendingRecord, Person
from finance_tracker.models.summary import ZERO, PersonBalance


def person_balances(lending: Iterable[LendingRecord]) -> dict[UUID, Decimal]:
    """Running balance per person id."""
    balances: dict[UUID, Decimal] = {}
    for record in lending:
        balances[record.person_id] = balances.get(record.person_id, ZERO) + record.amount
    return balances


def person_summaries(
    people: Iterable[Person],
    lending: Iterable[LendingRecord],
) -> list[PersonBalance]:
    """Each person with their balance and lending history (newest first)."""
    by_person: dict[UUID, list[LendingRecord]] = {}
    for record in lending:
        by_person.setdefault(record.person_id, []).append(record)

    summaries = []
    for person in people:
        records = sorted(
            by_person.get(person.id, []),
            key=lambda r: (r.date, r.created_at),
            reverse=True,
        )
        summaries.append(PersonBalance(
            person=person,
            balance=sum((r.amount for r in records), ZERO),
            records=records,
        ))
    return summaries
