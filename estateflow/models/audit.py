"""
Audit Models for EstateFlow Ledger

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of who changed which transaction and when
2. Debugging information when persisted data had to be recovered
3. A record of every reconciliation and backup restore

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Reference data
    INVESTOR_ADDED = "investor_added"
    PROPERTY_ADDED = "property_added"
    CARD_ADDED = "card_added"

    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_RESTORED = "transaction_restored"
    TRANSACTION_PURGED = "transaction_purged"
    TRANSACTION_RECONCILED = "transaction_reconciled"
    DUPLICATE_CONFIRMED = "duplicate_confirmed"
    TRANSACTIONS_IMPORTED = "transactions_imported"

    # Ingestion
    STATEMENT_PARSED = "statement_parsed"
    STATEMENT_REJECTED = "statement_rejected"
    RECEIPT_EXTRACTED = "receipt_extracted"

    # Backup / restore
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_REJECTED = "backup_rejected"

    # Persisted state
    DEFAULTS_SEEDED = "defaults_seeded"
    DATA_CORRUPTION_RECOVERED = "data_corruption_recovered"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
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

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'card', 'store')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one reconciliation session)"
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
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
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
        event = AuditEventBuilder.transaction_changed(AuditEventType.TRANSACTION_DELETED, tx_id)
        event = AuditEventBuilder.statement_parsed(parsed=12, skipped=1)
    """

    @staticmethod
    def record_added(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        action = event_type.value.replace("transaction_", "").replace("_", " ")
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {action}: {transaction_id}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def transactions_imported(
        imported: int,
        skipped: int,
        source: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_IMPORTED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            entity_type="import",
            description=f"{imported} transaction(s) imported, {skipped} skipped",
            details={
                "imported_count": imported,
                "skipped_count": skipped,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def statement_parsed(
        parsed: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_PARSED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            entity_type="statement",
            correlation_id=correlation_id,
            description=f"Statement parsed: {parsed} line(s), {skipped} skipped",
            details={
                "parsed_count": parsed,
                "skipped_count": skipped,
            },
            is_user_action=True,
        )

    @staticmethod
    def statement_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="statement",
            correlation_id=correlation_id,
            description="Statement rejected: required columns not found",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def receipt_extracted(
        vendor: str,
        amount: str,
        confidence: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_EXTRACTED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt extracted with {confidence:.0%} confidence",
            details={
                "vendor": vendor,
                "amount": amount,
                "confidence_score": confidence,
            },
        )

    @staticmethod
    def backup_exported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="store",
            description="Backup snapshot exported",
            details=counts,
            is_user_action=True,
        )

    @staticmethod
    def backup_imported(counts: dict[str, int], version: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="store",
            description=f"All data replaced from backup (version {version})",
            details=counts,
            is_user_action=True,
        )

    @staticmethod
    def backup_rejected(problems: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="store",
            description="Backup import rejected; existing data left untouched",
            details={"problems": problems[:20]},
            is_user_action=True,
        )

    @staticmethod
    def defaults_seeded(key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULTS_SEEDED,
            entity_type="store",
            entity_id=key,
            description=f"No data under {key}; default dataset seeded",
        )

    @staticmethod
    def data_corruption_recovered(key: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CORRUPTION_RECOVERED,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            entity_id=key,
            description=f"Corrupted data under {key} discarded; defaults restored",
            error_message=reason[:500],
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )
