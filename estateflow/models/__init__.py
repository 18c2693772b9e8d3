"""
Data Models Package

This package contains all Pydantic models used by the EstateFlow ledger.
All data flowing through the system must conform to these schemas.
"""

from estateflow.models.ledger import (
    DEFAULT_CATEGORIES,
    BackupSnapshot,
    Card,
    Investor,
    ParsedReceipt,
    SourceType,
    StatementLine,
    Transaction,
    new_id,
    to_cents,
)
from estateflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from estateflow.models.query import (
    BudgetAlert,
    CategorySpend,
    LedgerQuery,
    MonthlySpend,
    PropertySpend,
)
from estateflow.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORIES",
    "BackupSnapshot",
    "Card",
    "Investor",
    "ParsedReceipt",
    "SourceType",
    "StatementLine",
    "Transaction",
    "new_id",
    "to_cents",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Query models
    "BudgetAlert",
    "CategorySpend",
    "LedgerQuery",
    "MonthlySpend",
    "PropertySpend",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
