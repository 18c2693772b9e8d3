"""
Reconciliation Session

Holds the statement lines of one upload while the user works through them.

Statement lines are never persisted. The only durable effect of a session
is the `reconciled` flag set on ledger transactions through
RecordStore.mark_reconciled, one explicit confirmation at a time.
"""

from decimal import Decimal
from typing import Optional, Union

import structlog
from pydantic import BaseModel

from estateflow.ledger.store import RecordStore
from estateflow.models.ledger import StatementLine, Transaction
from estateflow.reconciliation.matcher import find_candidates


logger = structlog.get_logger(__name__)


class ReconciliationError(Exception):
    """A match confirmation that cannot be applied."""
    pass


class ReconciliationSummary(BaseModel):
    total_lines: int
    matched_lines: int
    unmatched_lines: int
    matches: dict[str, str]


class ReconciliationSession:
    """
    Matches statement lines against the store's unreconciled transactions.

    Candidates are recomputed on every call, so a transaction confirmed
    for one line stops being offered for the others.
    """

    def __init__(
        self,
        store: RecordStore,
        lines: list[StatementLine],
        window_days: int = 3,
        amount_tolerance: Union[Decimal, float, str] = Decimal("0.01"),
        prefix_length: int = 10,
    ):
        self._store = store
        self._lines: dict[str, StatementLine] = {line.id: line.model_copy() for line in lines}
        self._matches: dict[str, str] = {}
        self.window_days = window_days
        self.amount_tolerance = amount_tolerance
        self.prefix_length = prefix_length

    @property
    def lines(self) -> list[StatementLine]:
        return [line.model_copy() for line in self._lines.values()]

    def get_line(self, line_id: str) -> Optional[StatementLine]:
        line = self._lines.get(line_id)
        return line.model_copy() if line else None

    def candidates_for(self, line_id: str) -> list[Transaction]:
        """
        Possible ledger matches for a statement line.

        A line that is already matched (or unknown) has no candidates.
        """
        line = self._lines.get(line_id)
        if line is None or line.is_reconciled:
            return []
        return find_candidates(
            line,
            self._store.unreconciled_transactions(),
            window_days=self.window_days,
            amount_tolerance=self.amount_tolerance,
            prefix_length=self.prefix_length,
        )

    def confirm_match(self, line_id: str, transaction_id: str) -> Transaction:
        """
        Reconcile a transaction against a statement line.

        Only the chosen transaction is touched; other candidates stay as
        they were.

        Raises:
            ReconciliationError: unknown or already matched line, or a
                transaction that is not a current candidate for it
        """
        line = self._lines.get(line_id)
        if line is None:
            raise ReconciliationError(f"Unknown statement line: {line_id}")
        if line.is_reconciled:
            raise ReconciliationError(f"Statement line already matched: {line_id}")

        if transaction_id not in {tx.id for tx in self.candidates_for(line_id)}:
            raise ReconciliationError(
                f"Transaction {transaction_id} is not a candidate for statement line {line_id}"
            )

        reconciled = self._store.mark_reconciled(transaction_id)
        if reconciled is None:
            raise ReconciliationError(f"Transaction no longer active: {transaction_id}")

        self._lines[line_id] = line.model_copy(update={"is_reconciled": True})
        self._matches[line_id] = transaction_id

        logger.info("statement_line_matched", line_id=line_id, transaction_id=transaction_id)
        return reconciled

    def unmatched_lines(self) -> list[StatementLine]:
        return [line.model_copy() for line in self._lines.values() if not line.is_reconciled]

    def summary(self) -> ReconciliationSummary:
        matched = len(self._matches)
        return ReconciliationSummary(
            total_lines=len(self._lines),
            matched_lines=matched,
            unmatched_lines=len(self._lines) - matched,
            matches=dict(self._matches),
        )
