"""
CSV Transaction Import

Turns a spreadsheet export of card expenses into ledger transactions.

Each row names the card by its last four digits. The card is looked up
and the new transaction inherits the card's investor and property; a
property column in the file is read but never overrides the card.

A bad row is skipped and counted, never fatal to the batch.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from estateflow.models.csv_text import split_csv_line, split_lines
from estateflow.models.dates import parse_with_formats
from estateflow.models.ledger import Card, SourceType, Transaction, to_cents


logger = structlog.get_logger(__name__)

IMPORT_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%d/%m/%Y")

# Checked in order; the first fragment contained in a normalised header wins
HEADER_FIELDS = [
    ("property", "property"),
    ("date", "date"),
    ("vendor", "vendor"),
    ("description", "description"),
    ("amount", "amount"),
    ("category", "category"),
    ("unitnum", "unit_number"),
    ("last4digitsofthecard", "last4_digits"),
]

REQUIRED_FIELDS = ("date", "vendor", "amount", "last4_digits")


class TransactionImportError(Exception):
    """The file cannot be imported at all (no header or no data rows)."""
    pass


class TransactionImportResult(BaseModel):
    """Transactions built from a CSV file plus the per-row tally."""

    transactions: list[Transaction] = Field(default_factory=list)
    imported_count: int = 0
    skipped_count: int = 0


def _normalize_header(header: str) -> str:
    return "".join(header.lower().split())


def _map_row(headers: list[str], values: list[str]) -> dict[str, str]:
    row = {}
    for header, value in zip(headers, values):
        normalized = _normalize_header(header)
        for fragment, field in HEADER_FIELDS:
            if fragment in normalized:
                row[field] = value
                break
    return row


def _find_card(cards: Iterable[Card], last4: str) -> Optional[Card]:
    for card in cards:
        if card.last4_digits and card.last4_digits == last4:
            return card
    return None


def parse_transactions_csv(text: str, cards: list[Card]) -> TransactionImportResult:
    """
    Parse an import file into unreconciled, source_type=import transactions.

    Raises:
        TransactionImportError: when there is no header row plus at least
            one data row
    """
    lines = split_lines(text or "")
    if len(lines) < 2:
        raise TransactionImportError(
            "CSV file must contain a header row and at least one data row."
        )

    headers = split_csv_line(lines[0])
    result = TransactionImportResult()

    for line_number, line in enumerate(lines[1:], start=2):
        values = split_csv_line(line)
        if len(values) < len(headers):
            logger.warning("import_row_skipped", line=line_number, reason="insufficient columns")
            result.skipped_count += 1
            continue

        row = _map_row(headers, values)
        missing = [field for field in REQUIRED_FIELDS if not row.get(field)]
        if missing:
            logger.warning("import_row_skipped", line=line_number, reason="missing fields", fields=missing)
            result.skipped_count += 1
            continue

        parsed_date = parse_with_formats(row["date"], IMPORT_DATE_FORMATS)
        if parsed_date is None:
            logger.warning("import_row_skipped", line=line_number, reason="unparseable date", value=row["date"])
            result.skipped_count += 1
            continue

        try:
            amount = to_cents(row["amount"])
        except ValueError:
            logger.warning("import_row_skipped", line=line_number, reason="invalid amount", value=row["amount"])
            result.skipped_count += 1
            continue
        if amount <= Decimal("0"):
            logger.warning("import_row_skipped", line=line_number, reason="non-positive amount", value=row["amount"])
            result.skipped_count += 1
            continue

        card = _find_card(cards, row["last4_digits"])
        if card is None:
            logger.warning("import_row_skipped", line=line_number, reason="unknown card", last4=row["last4_digits"])
            result.skipped_count += 1
            continue

        try:
            tx = Transaction(
                date=parsed_date,
                vendor=row["vendor"],
                description=row.get("description", ""),
                amount=amount,
                category=row.get("category") or "Other",
                card_id=card.id,
                investor_id=card.investor_id,
                property=card.property,
                unit_number=row.get("unit_number"),
                reconciled=False,
                source_type=SourceType.IMPORT,
            )
        except ValidationError as e:
            logger.warning("import_row_skipped", line=line_number, reason="invalid record", errors=e.error_count())
            result.skipped_count += 1
            continue

        result.transactions.append(tx)
        result.imported_count += 1

    logger.info(
        "import_parsed",
        imported=result.imported_count,
        skipped=result.skipped_count,
    )
    return result
