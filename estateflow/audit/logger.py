"""
Audit Logger

DESIGN DECISION: Every ledger change is logged.
This provides:
1. Traceability of edits, deletes, restores and reconciliations
2. A visible record when corrupted data had to be discarded
3. Debugging capability

The audit logger:
- Is synchronous, like the rest of the ledger core
- Gracefully handles failures (doesn't break a ledger write if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from estateflow.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from estateflow.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (always)
    2. An audit storage backend such as Google Sheets (when configured)
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
        self._logger = structlog.get_logger("estateflow.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_record_added(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        name: str,
    ) -> None:
        """Log creation of an investor, property or card."""
        self.log(AuditEventBuilder.record_added(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            name=name,
        ))

    def log_transaction_changed(
        self,
        event_type: AuditEventType,
        transaction_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a change to a single transaction."""
        self.log(AuditEventBuilder.transaction_changed(
            event_type=event_type,
            transaction_id=transaction_id,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_transactions_imported(
        self,
        imported: int,
        skipped: int,
        source: str,
    ) -> None:
        """Log a bulk CSV import."""
        self.log(AuditEventBuilder.transactions_imported(
            imported=imported,
            skipped=skipped,
            source=source,
        ))

    def log_statement_parsed(
        self,
        parsed: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a parsed statement upload."""
        self.log(AuditEventBuilder.statement_parsed(
            parsed=parsed,
            skipped=skipped,
            correlation_id=correlation_id,
        ))

    def log_statement_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a statement whose header could not be understood."""
        self.log(AuditEventBuilder.statement_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_receipt_extracted(
        self,
        vendor: str,
        amount: str,
        confidence: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log OCR extraction of a receipt."""
        self.log(AuditEventBuilder.receipt_extracted(
            vendor=vendor,
            amount=amount,
            confidence=confidence,
            correlation_id=correlation_id,
        ))

    def log_backup_exported(self, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.backup_exported(counts))

    def log_backup_imported(self, counts: dict[str, int], version: str) -> None:
        self.log(AuditEventBuilder.backup_imported(counts, version))

    def log_backup_rejected(self, problems: list[str]) -> None:
        self.log(AuditEventBuilder.backup_rejected(problems))

    def log_defaults_seeded(self, key: str) -> None:
        self.log(AuditEventBuilder.defaults_seeded(key))

    def log_data_corruption_recovered(self, key: str, reason: str) -> None:
        self.log(AuditEventBuilder.data_corruption_recovered(key, reason))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a reconciliation session).
    """
    return uuid4()
