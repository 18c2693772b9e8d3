"""Ledger package: the record store and the logic that runs over it."""

from estateflow.ledger.csv_export import transactions_to_csv
from estateflow.ledger.csv_import import (
    TransactionImportError,
    TransactionImportResult,
    parse_transactions_csv,
)
from estateflow.ledger.duplicates import detect_duplicates, group_duplicates
from estateflow.ledger.store import (
    STORAGE_KEYS,
    LoadReport,
    RecordStore,
    RecoveryPolicy,
)

__all__ = [
    "STORAGE_KEYS",
    "LoadReport",
    "RecordStore",
    "RecoveryPolicy",
    "TransactionImportError",
    "TransactionImportResult",
    "detect_duplicates",
    "group_duplicates",
    "parse_transactions_csv",
    "transactions_to_csv",
]
