"""Statement reconciliation package."""

from estateflow.reconciliation.matcher import find_candidates, is_candidate
from estateflow.reconciliation.session import (
    ReconciliationError,
    ReconciliationSession,
    ReconciliationSummary,
)
from estateflow.reconciliation.statement_parser import (
    DATE_FORMATS,
    StatementEmptyError,
    StatementHeaderError,
    StatementParseError,
    StatementParseResult,
    locate_columns,
    parse_amount,
    parse_statement,
)

__all__ = [
    "DATE_FORMATS",
    "ReconciliationError",
    "ReconciliationSession",
    "ReconciliationSummary",
    "StatementEmptyError",
    "StatementHeaderError",
    "StatementParseError",
    "StatementParseResult",
    "find_candidates",
    "is_candidate",
    "locate_columns",
    "parse_amount",
    "parse_statement",
]
