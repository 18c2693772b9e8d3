"""Ledger queries package."""

from estateflow.queries.executor import UNKNOWN_LABEL, LedgerQueryExecutor

__all__ = ["UNKNOWN_LABEL", "LedgerQueryExecutor"]
