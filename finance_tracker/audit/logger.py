"""
Audit Logger

DESIGN DECISION: Every write to a user's financial records is logged,
and so is every rejected write. This provides:
1. Complete traceability of cascading deletes
2. Debugging capability for duplicate/ownership rejections
3. A record of data-integrity problems found while aggregating

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at `level`.

    filter_by_level above defers to the stdlib logger's level, so this is
    what decides which events are actually emitted.
    """
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_added(
        self,
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of an expense, income entry, bill, person or lending record."""
        event = AuditEventBuilder.record_added(
            entity_type=entity_type,
            entity_id=entity_id,
            owner_id=owner_id,
            name=name,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
        cascaded: Optional[dict[str, int]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a delete, with counts of dependent records removed alongside it."""
        event = AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            owner_id=owner_id,
            cascaded=cascaded,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_updated(
        self,
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
        changes: dict[str, Any],
    ) -> None:
        event = AuditEventBuilder.record_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            owner_id=owner_id,
            changes=changes,
        )
        await self.log(event)

    async def log_bill_updated(
        self,
        bill_id: UUID,
        owner_id: UUID,
        changes: dict[str, Any],
        deactivated: bool = False,
    ) -> None:
        event = AuditEventBuilder.bill_updated(
            bill_id=bill_id,
            owner_id=owner_id,
            changes=changes,
            deactivated=deactivated,
        )
        await self.log(event)

    async def log_income_updated(
        self,
        income_id: UUID,
        owner_id: UUID,
        salary: str,
        savings: str,
    ) -> None:
        event = AuditEventBuilder.income_updated(
            income_id=income_id,
            owner_id=owner_id,
            salary=salary,
            savings=savings,
        )
        await self.log(event)

    async def log_payment_recorded(
        self,
        expense_id: UUID,
        bill_id: UUID,
        owner_id: UUID,
        amount: str,
        period_start: str,
        period_end: str,
    ) -> None:
        """Log a bill payment."""
        event = AuditEventBuilder.payment_recorded(
            expense_id=expense_id,
            bill_id=bill_id,
            owner_id=owner_id,
            amount=amount,
            period_start=period_start,
            period_end=period_end,
        )
        await self.log(event)

    async def log_duplicate_payment(
        self,
        bill_id: UUID,
        owner_id: UUID,
        period_start: str,
        period_end: str,
    ) -> None:
        """Log a rejected second payment for the same period."""
        event = AuditEventBuilder.duplicate_payment_rejected(
            bill_id=bill_id,
            owner_id=owner_id,
            period_start=period_start,
            period_end=period_end,
        )
        await self.log(event)

    async def log_ownership_mismatch(
        self,
        entity_type: str,
        entity_id: UUID,
        owner_id: UUID,
    ) -> None:
        event = AuditEventBuilder.ownership_mismatch(
            entity_type=entity_type,
            entity_id=entity_id,
            owner_id=owner_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        record_type: str,
        record_id: UUID,
        owner_id: UUID,
        issues: list[dict],
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            record_type=record_type,
            record_id=record_id,
            owner_id=owner_id,
            issues=issues,
        )
        await self.log(event)

    async def log_summary_computed(
        self,
        owner_id: UUID,
        start_date: str,
        end_date: str,
        remaining: str,
    ) -> None:
        event = AuditEventBuilder.summary_computed(
            owner_id=owner_id,
            start_date=start_date,
            end_date=end_date,
            remaining=remaining,
        )
        await self.log(event)

    async def log_dangling_reference(
        self,
        owner_id: UUID,
        record_type: str,
        record_id: UUID,
        missing_type: str,
        missing_id: UUID,
    ) -> None:
        """Log a record pointing at something that no longer exists."""
        event = AuditEventBuilder.dangling_reference(
            owner_id=owner_id,
            record_type=record_type,
            record_id=record_id,
            missing_type=missing_type,
            missing_id=missing_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action that touches several records
    (e.g., deleting a bill and its payments). Pass it to every event the
    action produces.
    """
    return uuid4()
