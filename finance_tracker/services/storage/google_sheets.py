"""
Google Sheets Storage Implementation

A spreadsheet serves as the hosted document store. Each collection
(expenses, bills, lending, ...) lives in its own worksheet with one
record per row:

    id | owner_id | data_json

data_json holds the full pydantic serialization of the record. id and
owner_id are duplicated into their own columns so lookups and owner
filtering need no JSON parsing.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: transaction() serializes writers within this process
  only
- Limited query capabilities (we filter in Python)
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import TypeAdapter
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings
from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
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
    ConnectionError,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


RECORD_COLUMNS = ["id", "owner_id", "data_json"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# How each collection's data_json is parsed back
ADAPTERS: dict[str, TypeAdapter] = {
    "users": TypeAdapter(User),
    "expenses": TypeAdapter(Expense),
    "additional_income": TypeAdapter(AdditionalIncome),
    "bills": TypeAdapter(Bill),
    "people": TypeAdapter(Person),
    "lending": TypeAdapter(LendingRecord),
    "income": TypeAdapter(Income),
}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        title = self._settings.sheet_names()[collection]
        return self._get_or_create(title, RECORD_COLUMNS, rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsFinanceStorage(FinanceStorageInterface):
    """
    Google Sheets implementation of finance storage.

    Every collection is stored the same way, so all public methods are
    thin wrappers over the _list/_get/_append/_replace/_remove helpers.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    # -------------------------------------------------------------------------
    # Row helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _record_to_row(record: Any, owner_id: UUID) -> list:
        return [str(record.id), str(owner_id), record.model_dump_json()]

    @staticmethod
    def _row_to_record(collection: str, row: list) -> Any:
        return ADAPTERS[collection].validate_json(row[2])

    def _rows(self, collection: str) -> list[tuple[int, list]]:
        """(sheet row number, row) for every data row."""
        sheet = self._client.get_collection_sheet(collection)
        all_rows = sheet.get_all_values()
        # Row 1 is the header
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)
            if row and row[0]
        ]

    def _find_row(self, collection: str, column: int, value: UUID) -> Optional[tuple[int, list]]:
        for idx, row in self._rows(collection):
            if len(row) > column and row[column] == str(value):
                return idx, row
        return None

    def _list(self, collection: str, owner_id: UUID) -> list:
        try:
            records = []
            for idx, row in self._rows(collection):
                if len(row) < 3 or row[1] != str(owner_id):
                    continue
                try:
                    records.append(self._row_to_record(collection, row))
                except ValueError as e:
                    logger.warning(
                        "malformed_row_skipped",
                        collection=collection,
                        row=idx,
                        error=str(e),
                    )
            return records
        except Exception as e:
            raise StorageError(f"Failed to list {collection}: {e}")

    def _get(self, collection: str, record_id: UUID, column: int = 0) -> Optional[Any]:
        try:
            found = self._find_row(collection, column, record_id)
            if found is None:
                return None
            return self._row_to_record(collection, found[1])
        except Exception as e:
            raise StorageError(f"Failed to get {collection} record: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, collection: str, record: Any, owner_id: UUID) -> UUID:
        try:
            sheet = self._client.get_collection_sheet(collection)
            sheet.append_row(self._record_to_row(record, owner_id), value_input_option="RAW")
            return record.id
        except Exception as e:
            raise StorageError(f"Failed to save {collection} record: {e}")

    def _replace(self, collection: str, row_number: int, record: Any, owner_id: UUID) -> None:
        sheet = self._client.get_collection_sheet(collection)
        sheet.update(
            range_name=f"A{row_number}:C{row_number}",
            values=[self._record_to_row(record, owner_id)],
            value_input_option="RAW",
        )

    def _update(self, collection: str, record: Any, label: str) -> bool:
        try:
            found = self._find_row(collection, 0, record.id)
            if found is None:
                raise NotFoundError(f"{label} not found: {record.id}")
            self._replace(collection, found[0], record, record.owner_id)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection} record: {e}")

    def _remove(self, collection: str, record_id: UUID, column: int = 0) -> bool:
        try:
            found = self._find_row(collection, column, record_id)
            if found is None:
                return False
            self._client.get_collection_sheet(collection).delete_rows(found[0])
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {collection} record: {e}")

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return self._get("users", user_id)

    async def insert_user(self, user: User) -> UUID:
        return self._append("users", user, user.id)

    async def delete_user(self, user_id: UUID) -> bool:
        return self._remove("users", user_id)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def list_expenses(self, owner_id: UUID) -> list[Expense]:
        return self._list("expenses", owner_id)

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._get("expenses", expense_id)

    async def insert_expense(self, expense: Expense) -> UUID:
        return self._append("expenses", expense, expense.owner_id)

    async def update_expense(self, expense: Expense) -> bool:
        return self._update("expenses", expense, "Expense")

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._remove("expenses", expense_id)

    # -------------------------------------------------------------------------
    # Additional income
    # -------------------------------------------------------------------------

    async def list_additional_income(self, owner_id: UUID) -> list[AdditionalIncome]:
        return self._list("additional_income", owner_id)

    async def get_additional_income(self, income_id: UUID) -> Optional[AdditionalIncome]:
        return self._get("additional_income", income_id)

    async def insert_additional_income(self, income: AdditionalIncome) -> UUID:
        return self._append("additional_income", income, income.owner_id)

    async def update_additional_income(self, income: AdditionalIncome) -> bool:
        return self._update("additional_income", income, "Additional income")

    async def delete_additional_income(self, income_id: UUID) -> bool:
        return self._remove("additional_income", income_id)

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    async def get_income(self, owner_id: UUID) -> Optional[Income]:
        return self._get("income", owner_id, column=1)

    async def save_income(self, income: Income) -> UUID:
        try:
            found = self._find_row("income", 1, income.owner_id)
            if found is None:
                return self._append("income", income, income.owner_id)
            self._replace("income", found[0], income, income.owner_id)
            return income.id
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save income: {e}")

    async def delete_income(self, owner_id: UUID) -> bool:
        return self._remove("income", owner_id, column=1)

    # -------------------------------------------------------------------------
    # Bills
    # -------------------------------------------------------------------------

    async def list_bills(self, owner_id: UUID, active_only: bool = False) -> list[Bill]:
        bills = self._list("bills", owner_id)
        if active_only:
            bills = [b for b in bills if b.is_active]
        return bills

    async def get_bill(self, bill_id: UUID) -> Optional[Bill]:
        return self._get("bills", bill_id)

    async def insert_bill(self, bill: Bill) -> UUID:
        return self._append("bills", bill, bill.owner_id)

    async def update_bill(self, bill: Bill) -> bool:
        return self._update("bills", bill, "Bill")

    async def delete_bill(self, bill_id: UUID) -> bool:
        return self._remove("bills", bill_id)

    # -------------------------------------------------------------------------
    # People and lending
    # -------------------------------------------------------------------------

    async def list_people(self, owner_id: UUID) -> list[Person]:
        return self._list("people", owner_id)

    async def get_person(self, person_id: UUID) -> Optional[Person]:
        return self._get("people", person_id)

    async def insert_person(self, person: Person) -> UUID:
        return self._append("people", person, person.owner_id)

    async def update_person(self, person: Person) -> bool:
        return self._update("people", person, "Person")

    async def delete_person(self, person_id: UUID) -> bool:
        return self._remove("people", person_id)

    async def list_lending(self, owner_id: UUID) -> list[LendingRecord]:
        return self._list("lending", owner_id)

    async def get_lending(self, lending_id: UUID) -> Optional[LendingRecord]:
        return self._get("lending", lending_id)

    async def insert_lending(self, record: LendingRecord) -> UUID:
        return self._append("lending", record, record.owner_id)

    async def delete_lending(self, lending_id: UUID) -> bool:
        return self._remove("lending", lending_id)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            owner_id=UUID(safe_get(4)) if safe_get(4) else None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("malformed_audit_row_skipped", error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.error(
                "audit_event_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
