"""
Reconciliation Matcher

Finds the ledger transactions that could correspond to one statement line.

A transaction is a candidate when ALL of these hold:
1. Its date is within `window_days` of the statement date
2. Its amount equals the statement amount's magnitude (within tolerance)
3. Some text overlaps: the statement description's prefix appears in the
   vendor or the description, or the vendor appears in the statement
   description

Candidates come back in ledger order. There is no scoring among them;
the caller picks one and confirms it explicitly.
"""

from decimal import Decimal
from typing import Iterable, Union

from estateflow.models.ledger import StatementLine, Transaction


def dates_within(line: StatementLine, tx: Transaction, window_days: int) -> bool:
    return abs((line.date - tx.date).days) <= window_days


def amounts_match(
    line: StatementLine,
    tx: Transaction,
    tolerance: Union[Decimal, float, str],
) -> bool:
    # Statement sign is ignored: charges and credits compare by magnitude
    return abs(abs(line.amount) - tx.amount) < Decimal(str(tolerance))


def text_overlaps(line: StatementLine, tx: Transaction, prefix_length: int) -> bool:
    statement_text = line.description.lower()
    prefix = statement_text[:prefix_length]
    vendor = tx.vendor.lower()
    return (
        prefix in vendor
        or prefix in tx.description.lower()
        or vendor in statement_text
    )


def is_candidate(
    line: StatementLine,
    tx: Transaction,
    window_days: int = 3,
    amount_tolerance: Union[Decimal, float, str] = Decimal("0.01"),
    prefix_length: int = 10,
) -> bool:
    if tx.reconciled:
        return False
    return (
        dates_within(line, tx, window_days)
        and amounts_match(line, tx, amount_tolerance)
        and text_overlaps(line, tx, prefix_length)
    )


def find_candidates(
    line: StatementLine,
    transactions: Iterable[Transaction],
    window_days: int = 3,
    amount_tolerance: Union[Decimal, float, str] = Decimal("0.01"),
    prefix_length: int = 10,
) -> list[Transaction]:
    """Every unreconciled transaction that could match the statement line."""
    return [
        tx for tx in transactions
        if is_candidate(line, tx, window_days, amount_tolerance, prefix_length)
    ]
