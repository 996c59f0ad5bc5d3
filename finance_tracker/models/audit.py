"""
Audit Models for the Finance Tracker

Every write flow (adding records, recording bill payments, cascading
deletes) and every rejected operation is logged as an AuditEvent.
Data-integrity problems found during aggregation are logged too.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses and income
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    ADDITIONAL_INCOME_ADDED = "additional_income_added"
    ADDITIONAL_INCOME_UPDATED = "additional_income_updated"
    ADDITIONAL_INCOME_DELETED = "additional_income_deleted"
    INCOME_UPDATED = "income_updated"

    # Bills
    BILL_ADDED = "bill_added"
    BILL_UPDATED = "bill_updated"
    BILL_DEACTIVATED = "bill_deactivated"
    BILL_DELETED = "bill_deleted"
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_REMOVED = "payment_removed"

    # Lending
    PERSON_ADDED = "person_added"
    PERSON_UPDATED = "person_updated"
    PERSON_DELETED = "person_deleted"
    LENDING_ADDED = "lending_added"
    LENDING_DELETED = "lending_deleted"

    # Accounts
    USER_DELETED = "user_deleted"

    # Rejections
    DUPLICATE_PAYMENT_REJECTED = "duplicate_payment_rejected"
    OWNERSHIP_MISMATCH = "ownership_mismatch"
    VALIDATION_FAILED = "validation_failed"

    # Reads
    SUMMARY_COMPUTED = "summary_computed"
    DANGLING_REFERENCE = "dangling_reference"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about, and whose is it?
    owner_id: Optional[UUID] = Field(
        default=None,
        description="Owner the event was performed for"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'bill', 'person')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one cascading delete)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": str(self.owner_id) if self.owner_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.owner_id) if self.owner_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_added("expense", expense_id, owner_id, "Coffee")
        event = AuditEventBuilder.payment_recorded(expense_id, bill_id, owner_id, ...)
    """

    _ADDED_TYPES = {
        "expense": AuditEventType.EXPENSE_ADDED,
        "additional_income": AuditEventType.ADDITIONAL_INCOME_ADDED,
        "bill": AuditEventType.BILL_ADDED,
        "person": AuditEventType.PERSON_ADDED,
        "lending": AuditEventType.LENDING_ADDED,
    }

    _DELETED_TYPES = {
        "expense": AuditEventType.EXPENSE_DELETED,
        "additional_income": AuditEventType.ADDITIONAL_INCOME_DELETED,
        "bill": AuditEventType.BILL_DELETED,
        "person": AuditEventType.PERSON_DELETED,
        "lending": AuditEventType.LENDING_DELETED,
        "payment": AuditEventType.PAYMENT_REMOVED,
        "user": AuditEventType.USER_DELETED,
    }

    @staticmethod
    def record_added(
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._ADDED_TYPES[entity_type],
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
        cascaded: Optional[dict[str, int]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._DELETED_TYPES[entity_type],
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} deleted",
            details={"cascaded": cascaded or {}},
            is_user_action=True,
        )

    _UPDATED_TYPES = {
        "expense": AuditEventType.EXPENSE_UPDATED,
        "additional_income": AuditEventType.ADDITIONAL_INCOME_UPDATED,
        "person": AuditEventType.PERSON_UPDATED,
    }

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._UPDATED_TYPES[entity_type],
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def bill_updated(
        bill_id: UUID,
        owner_id: UUID,
        changes: dict[str, Any],
        deactivated: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.BILL_DEACTIVATED
                if deactivated
                else AuditEventType.BILL_UPDATED
            ),
            owner_id=owner_id,
            entity_type="bill",
            entity_id=bill_id,
            description="Bill deactivated" if deactivated else "Bill updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def income_updated(
        income_id: UUID,
        owner_id: UUID,
        salary: str,
        savings: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_UPDATED,
            owner_id=owner_id,
            entity_type="income",
            entity_id=income_id,
            description="Income updated",
            details={"salary": salary, "savings": savings},
            is_user_action=True,
        )

    @staticmethod
    def payment_recorded(
        expense_id: UUID,
        bill_id: UUID,
        owner_id: UUID,
        amount: str,
        period_start: str,
        period_end: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            owner_id=owner_id,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Bill payment recorded for {period_start} to {period_end}",
            details={
                "bill_id": str(bill_id),
                "amount": amount,
                "period_start": period_start,
                "period_end": period_end,
            },
            is_user_action=True,
        )

    @staticmethod
    def duplicate_payment_rejected(
        bill_id: UUID,
        owner_id: UUID,
        period_start: str,
        period_end: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_PAYMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="bill",
            entity_id=bill_id,
            description="Bill already paid for this period",
            details={
                "period_start": period_start,
                "period_end": period_end,
            },
            error_code="duplicate_payment",
            is_user_action=True,
        )

    @staticmethod
    def ownership_mismatch(
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OWNERSHIP_MISMATCH,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} not found for this owner",
            error_code="ownership_mismatch",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        record_type: str,
        record_id: UUID,
        owner_id: UUID,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type=record_type,
            entity_id=record_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
            error_code="validation_failed",
        )

    @staticmethod
    def summary_computed(
        owner_id: UUID,
        start_date: str,
        end_date: str,
        remaining: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_COMPUTED,
            severity=AuditSeverity.DEBUG,
            owner_id=owner_id,
            entity_type="summary",
            description=f"Summary computed for {start_date} to {end_date}",
            details={
                "start_date": start_date,
                "end_date": end_date,
                "remaining": remaining,
            },
        )

    @staticmethod
    def dangling_reference(
        owner_id: UUID,
        record_type: str,
        record_id: UUID,
        missing_type: str,
        missing_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DANGLING_REFERENCE,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type=record_type,
            entity_id=record_id,
            description=f"{record_type.capitalize()} references a missing {missing_type}",
            details={
                "missing_type": missing_type,
                "missing_id": str(missing_id),
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
