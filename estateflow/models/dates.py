"""
Calendar date helpers shared by the record store, the backup codec, the statement
parser and CSV import.

Dates are parsed by trying an explicit, ordered list of strptime patterns.
The first pattern that yields a valid calendar date wins.
"""

import re
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional

import structlog


logger = structlog.get_logger(__name__)

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def parse_with_formats(value: str, formats: Iterable[str]) -> Optional[date]:
    """Return the first successful strptime parse of value, or None."""
    value = value.strip()
    if not value:
        return None
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Parse a stored date value into a calendar date.

    Accepts date/datetime objects, `YYYY-MM-DD` strings and ISO timestamps
    (`2024-01-05T00:00:00.000Z`); the time part is dropped.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    match = _ISO_PREFIX.match(value.strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def normalize_transaction_dates(
    records: list,
    today: Callable[[], date] = date.today,
) -> list:
    """
    Rewrite every record's `date` to a canonical `YYYY-MM-DD` string.

    A record whose date cannot be parsed is coerced to today rather than
    rejected. Non-dict entries are passed through untouched so that shape
    validation can reject them.
    """
    normalized = []
    for record in records:
        if not isinstance(record, dict):
            normalized.append(record)
            continue
        parsed = parse_calendar_date(record.get("date"))
        if parsed is None:
            parsed = today()
            logger.warning(
                "transaction_date_coerced",
                transaction_id=record.get("id"),
                raw_date=str(record.get("date")),
                coerced_to=parsed.isoformat(),
            )
        normalized.append({**record, "date": parsed.isoformat()})
    return normalized
