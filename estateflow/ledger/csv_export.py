"""
CSV export of ledger transactions.

Investor and card columns show display names. A dangling reference
falls back to the raw id instead of failing the export.
"""

import csv
import io
from typing import Iterable, Optional

from estateflow.models.ledger import Card, Investor, Transaction


EXPORT_HEADERS = [
    "Date",
    "Vendor",
    "Description",
    "Amount",
    "Category",
    "Investor",
    "Property",
    "Unit Number",
    "Card Used",
    "Receipt Image URI",
    "Reconciled (Yes/No)",
]

RECEIPT_URI_MAX_LENGTH = 50


def _receipt_cell(uri: Optional[str]) -> str:
    if not uri:
        return ""
    if len(uri) > RECEIPT_URI_MAX_LENGTH:
        return uri[:RECEIPT_URI_MAX_LENGTH] + "... (DataURI)"
    return uri


def transactions_to_csv(
    transactions: Iterable[Transaction],
    investors: Iterable[Investor],
    cards: Iterable[Card],
) -> str:
    """Render transactions as CSV text. An empty input yields an empty string."""
    transactions = list(transactions)
    if not transactions:
        return ""

    investor_names = {i.id: i.name for i in investors}
    card_labels = {c.id: c.label for c in cards}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for tx in transactions:
        writer.writerow([
            tx.date.isoformat(),
            tx.vendor,
            tx.description or "",
            f"{tx.amount:.2f}",
            tx.category,
            investor_names.get(tx.investor_id, tx.investor_id),
            tx.property,
            tx.unit_number or "",
            card_labels.get(tx.card_id, tx.card_id),
            _receipt_cell(tx.receipt_image_uri),
            "Yes" if tx.reconciled else "No",
        ])

    return buffer.getvalue().rstrip("\n")
