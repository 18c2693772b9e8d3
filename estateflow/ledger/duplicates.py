"""
Duplicate Detection

Flags likely double-entries in the active ledger. Two transactions are
considered duplicates when they share a signature of
(date, lower-cased vendor, amount rounded to cents).

A transaction the user has confirmed as "not a duplicate"
(is_duplicate_confirmed) is left out of the grouping entirely, so it is
never flagged again even if an identical-looking sibling still exists.

Pure and side-effect free: recompute on every read.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable

from estateflow.models.ledger import Transaction, to_cents


Signature = tuple[date, str, Decimal]


def transaction_signature(tx: Transaction) -> Signature:
    return (tx.date, tx.vendor.lower(), to_cents(tx.amount))


def group_duplicates(transactions: Iterable[Transaction]) -> list[list[str]]:
    """Groups of transaction ids sharing a signature, in first-seen order."""
    groups: dict[Signature, list[str]] = defaultdict(list)
    for tx in transactions:
        if tx.is_duplicate_confirmed:
            continue
        groups[transaction_signature(tx)].append(tx.id)
    return [ids for ids in groups.values() if len(ids) > 1]


def detect_duplicates(transactions: Iterable[Transaction]) -> set[str]:
    """Ids of every transaction that shares its signature with another."""
    return {tx_id for ids in group_duplicates(transactions) for tx_id in ids}
