"""
Statement Parser

Turns a bank/card statement export into StatementLine records.

The statement's column order is unknown. The Date, Description and
Amount columns are found by substring match on the header names, so
"Posting Date", "Transaction Details" or "Amount (USD)" all work.

Row-level problems (short rows, bad dates, bad amounts) skip the row
and are counted. Only an unrecognisable header, or a header with no
data rows after it, fails the whole parse.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from estateflow.models.csv_text import split_csv_line, split_lines
from estateflow.models.dates import parse_with_formats
from estateflow.models.ledger import StatementLine


logger = structlog.get_logger(__name__)

# Ordered; the first pattern producing a valid calendar date wins.
# %m and %d accept both padded and unpadded values.
DATE_FORMATS = (
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)

# Claimed in this order; a column taken by an earlier role is not reused
HEADER_ROLES = [
    ("date", ("date",)),
    ("description", ("description", "details", "transaction", "payee")),
    ("amount", ("amount", "value")),
]

_AMOUNT_NOISE = str.maketrans("", "", "$,")


class StatementParseError(Exception):
    """Base exception for statement parsing."""
    pass


class StatementHeaderError(StatementParseError):
    """Required Date/Description/Amount columns could not be located."""
    pass


class StatementEmptyError(StatementParseError):
    """The statement has a header row but no data rows."""
    pass


class StatementParseResult(BaseModel):
    """Parsed statement lines and the count of rows that were dropped."""

    lines: list[StatementLine] = Field(default_factory=list)
    skipped_count: int = 0
    total_rows: int = 0

    @property
    def parsed_count(self) -> int:
        return len(self.lines)


def _normalize_header(header: str) -> str:
    return "".join(header.lower().split())


def locate_columns(headers: list[str]) -> dict[str, int]:
    """
    Map each role (date, description, amount) to a column index.

    Raises:
        StatementHeaderError: naming every role that was not found
    """
    normalized = [_normalize_header(h) for h in headers]
    claimed: set[int] = set()
    columns: dict[str, int] = {}

    for role, fragments in HEADER_ROLES:
        for index, header in enumerate(normalized):
            if index in claimed:
                continue
            if any(fragment in header for fragment in fragments):
                columns[role] = index
                claimed.add(index)
                break

    missing = [role for role, _ in HEADER_ROLES if role not in columns]
    if missing:
        raise StatementHeaderError(
            "CSV headers for 'Date', 'Description', and 'Amount' not found "
            f"(missing: {', '.join(missing)})"
        )
    return columns


def parse_amount(value: str) -> Optional[Decimal]:
    """Strip `$` and `,` then parse. None when the result is not a finite number."""
    cleaned = value.translate(_AMOUNT_NOISE).strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_statement(text: str) -> StatementParseResult:
    """
    Parse raw statement text (header line plus data lines).

    Raises:
        StatementHeaderError: if there is no header line or a required
            column is missing
        StatementEmptyError: if no data line follows the header
    """
    lines = split_lines(text or "")
    if not lines:
        raise StatementHeaderError("Statement is empty: no header line found")

    columns = locate_columns(split_csv_line(lines[0]))
    min_columns = max(columns.values()) + 1

    data_lines = lines[1:]
    if not data_lines:
        raise StatementEmptyError(
            "Statement must contain a header row and at least one data row"
        )
    result = StatementParseResult(total_rows=len(data_lines))

    for index, line in enumerate(data_lines):
        values = split_csv_line(line)
        if len(values) < min_columns:
            logger.debug("statement_row_skipped", row=index, reason="insufficient columns")
            result.skipped_count += 1
            continue

        raw_date = values[columns["date"]]
        parsed_date = parse_with_formats(raw_date, DATE_FORMATS)
        if parsed_date is None:
            logger.debug("statement_row_skipped", row=index, reason="unparseable date", value=raw_date)
            result.skipped_count += 1
            continue

        raw_amount = values[columns["amount"]]
        amount = parse_amount(raw_amount)
        if amount is None:
            logger.debug("statement_row_skipped", row=index, reason="invalid amount", value=raw_amount)
            result.skipped_count += 1
            continue

        result.lines.append(StatementLine(
            id=f"stmt-{index}",
            date=parsed_date,
            description=values[columns["description"]],
            amount=amount,
        ))

    logger.info(
        "statement_parsed",
        parsed=result.parsed_count,
        skipped=result.skipped_count,
        total_rows=result.total_rows,
    )
    return result
