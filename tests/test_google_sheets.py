"""
Tests for the Google Sheets storage.

No real API calls: the client is a MagicMock handing out fake
worksheets that keep their rows in a list.
"""

import asyncio
import re
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.models.records import Income, Person
from finance_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    NotFoundError,
)
from finance_tracker.services.storage.google_sheets import AUDIT_COLUMNS, RECORD_COLUMNS

from factories import make_bill, make_expense, make_payment


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage layer."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        row_number = int(re.match(r"A(\d+):", range_name).group(1))
        self.rows[row_number - 1] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


@pytest.fixture
def sheets():
    return {}


@pytest.fixture
def client(sheets):
    client = MagicMock(spec=GoogleSheetsClient)
    client.get_collection_sheet.side_effect = (
        lambda name: sheets.setdefault(name, FakeWorksheet(RECORD_COLUMNS))
    )
    client.get_audit_sheet.side_effect = (
        lambda: sheets.setdefault("audit", FakeWorksheet(AUDIT_COLUMNS))
    )
    return client


@pytest.fixture
def sheets_storage(client):
    return GoogleSheetsFinanceStorage(client)


def run(coro):
    return asyncio.run(coro)


class TestGoogleSheetsFinanceStorage:
    """Records are stored as id | owner_id | data_json rows."""

    def test_insert_writes_one_row(self, sheets_storage, sheets, owner_id):
        expense = make_expense(owner_id, "12.50", date(2024, 3, 5))
        run(sheets_storage.insert_expense(expense))

        rows = sheets["expenses"].rows
        assert rows[0] == RECORD_COLUMNS
        assert rows[1][:2] == [str(expense.id), str(owner_id)]

    def test_list_is_owner_scoped(self, sheets_storage, owner_id):
        mine = make_expense(owner_id, "5", date(2024, 3, 5))
        theirs = make_expense(uuid4(), "7", date(2024, 3, 5))
        run(sheets_storage.insert_expense(mine))
        run(sheets_storage.insert_expense(theirs))

        assert run(sheets_storage.list_expenses(owner_id)) == [mine]

    def test_bill_payment_link_survives(self, sheets_storage, owner_id):
        bill = make_bill(owner_id, "bimonthly")
        payment = make_payment(bill, "80", date(2024, 3, 1), date(2024, 4, 30))
        run(sheets_storage.insert_expense(payment))

        restored = run(sheets_storage.get_expense(payment.id))
        assert restored.bill_payment.bill_id == bill.id
        assert restored.bill_payment.period_end == date(2024, 4, 30)
        assert restored.amount == Decimal("80")

    def test_get_missing_returns_none(self, sheets_storage):
        assert run(sheets_storage.get_bill(uuid4())) is None

    def test_malformed_row_skipped(self, sheets_storage, sheets, owner_id):
        good = make_expense(owner_id, "5", date(2024, 3, 5))
        run(sheets_storage.insert_expense(good))
        sheets["expenses"].rows.append([str(uuid4()), str(owner_id), "{not json"])

        assert run(sheets_storage.list_expenses(owner_id)) == [good]

    def test_update_bill_replaces_row(self, sheets_storage, sheets, owner_id):
        first = make_bill(owner_id, name="Water")
        bill = make_bill(owner_id)
        run(sheets_storage.insert_bill(first))
        run(sheets_storage.insert_bill(bill))

        changed = bill.model_copy(update={"deadline_day": 20})
        run(sheets_storage.update_bill(changed))

        assert len(sheets["bills"].rows) == 3
        assert run(sheets_storage.get_bill(bill.id)).deadline_day == 20
        assert run(sheets_storage.get_bill(first.id)).deadline_day is None

    def test_update_missing_bill(self, sheets_storage, owner_id):
        with pytest.raises(NotFoundError):
            run(sheets_storage.update_bill(make_bill(owner_id)))

    def test_update_expense_replaces_row(self, sheets_storage, sheets, owner_id):
        expense = make_expense(owner_id, "5", date(2024, 3, 5))
        run(sheets_storage.insert_expense(expense))

        run(sheets_storage.update_expense(expense.model_copy(update={"amount": Decimal("6")})))

        assert len(sheets["expenses"].rows) == 2
        assert run(sheets_storage.get_expense(expense.id)).amount == Decimal("6")

    def test_update_person_keeps_owner_column(self, sheets_storage, sheets, owner_id):
        person = Person(owner_id=owner_id, name="Sam")
        run(sheets_storage.insert_person(person))

        run(sheets_storage.update_person(person.model_copy(update={"name": "Samantha"})))

        assert sheets["people"].rows[1][:2] == [str(person.id), str(owner_id)]
        assert [p.name for p in run(sheets_storage.list_people(owner_id))] == ["Samantha"]

    def test_update_missing_person(self, sheets_storage, owner_id):
        with pytest.raises(NotFoundError, match="Person not found"):
            run(sheets_storage.update_person(Person(owner_id=owner_id, name="Ghost")))

    def test_delete_removes_row(self, sheets_storage, sheets, owner_id):
        bill = make_bill(owner_id)
        run(sheets_storage.insert_bill(bill))

        assert run(sheets_storage.delete_bill(bill.id)) is True
        assert run(sheets_storage.delete_bill(bill.id)) is False
        assert sheets["bills"].rows == [RECORD_COLUMNS]

    def test_income_is_one_row_per_owner(self, sheets_storage, sheets, owner_id):
        income = Income(owner_id=owner_id, salary=Decimal("3000"))
        run(sheets_storage.save_income(income))
        run(sheets_storage.save_income(income.model_copy(update={"salary": Decimal("3100")})))

        assert len(sheets["income"].rows) == 2
        assert run(sheets_storage.get_income(owner_id)).salary == Decimal("3100")
        assert run(sheets_storage.delete_income(owner_id)) is True
        assert run(sheets_storage.get_income(owner_id)) is None

    def test_collections_use_their_own_sheets(self, sheets_storage, client, owner_id):
        run(sheets_storage.insert_bill(make_bill(owner_id)))
        run(sheets_storage.list_people(owner_id))
        requested = [c.args[0] for c in client.get_collection_sheet.call_args_list]
        assert requested == ["bills", "people"]


class TestGoogleSheetsAuditStorage:
    """Audit events round-trip through the 12-column layout."""

    def test_event_round_trip(self, client, owner_id):
        audit = GoogleSheetsAuditStorage(client)
        bill_id = uuid4()
        event = AuditEventBuilder.record_deleted(
            "bill", bill_id, owner_id, cascaded={"payment": 2}
        )

        assert run(audit.append_event(event)) is True
        events = run(audit.get_events_by_entity("bill", bill_id))

        assert len(events) == 1
        restored = events[0]
        assert restored.event_id == event.event_id
        assert restored.event_type == AuditEventType.BILL_DELETED
        assert restored.owner_id == owner_id
        assert restored.details == {"cascaded": {"payment": 2}}
        assert restored.is_user_action is True

    def test_recent_events_newest_first(self, client, owner_id):
        audit = GoogleSheetsAuditStorage(client)
        older = AuditEventBuilder.record_added("person", uuid4(), owner_id, "Sam")
        newer = AuditEventBuilder.record_added("person", uuid4(), owner_id, "Alex")
        newer = newer.model_copy(update={"timestamp": older.timestamp + timedelta(seconds=1)})
        run(audit.append_event(older))
        run(audit.append_event(newer))

        recent = run(audit.get_recent_events(limit=1))
        assert [e.event_id for e in recent] == [newer.event_id]

    def test_write_failure_returns_false(self, owner_id):
        client = MagicMock(spec=GoogleSheetsClient)
        client.get_audit_sheet.side_effect = RuntimeError("quota exceeded")
        audit = GoogleSheetsAuditStorage(client)

        event = AuditEventBuilder.record_added("person", uuid4(), owner_id, "Sam")
        assert run(audit.append_event(event)) is False
