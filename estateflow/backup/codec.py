"""
Backup / Restore Codec

Serializes the entire record store into one versioned, timestamped
snapshot and validates a snapshot before it is re-ingested.

CRITICAL: Import is all-or-nothing. validate_snapshot either returns a
fully validated BackupSnapshot or raises SnapshotValidationError; the
caller only replaces its collections after a successful return.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from estateflow.models.dates import normalize_transaction_dates
from estateflow.models.ledger import BackupSnapshot, Card, Investor, Transaction


SNAPSHOT_VERSION = "1.0"

# (wire name, python name) of the five collections
COLLECTION_FIELDS = [
    ("investors", "investors"),
    ("properties", "properties"),
    ("cards", "cards"),
    ("transactions", "transactions"),
    ("deletedTransactions", "deleted_transactions"),
]


class SnapshotValidationError(Exception):
    """A backup snapshot failed structural or record validation."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid backup snapshot: " + "; ".join(problems))


def build_snapshot(
    investors: list[Investor],
    properties: list[str],
    cards: list[Card],
    transactions: list[Transaction],
    deleted_transactions: list[Transaction],
    timestamp: Optional[datetime] = None,
) -> BackupSnapshot:
    """Bundle the five collections into one snapshot."""
    return BackupSnapshot(
        investors=[i.model_copy() for i in investors],
        properties=list(properties),
        cards=[c.model_copy() for c in cards],
        transactions=[t.model_copy() for t in transactions],
        deleted_transactions=[t.model_copy() for t in deleted_transactions],
        timestamp=timestamp or datetime.now(timezone.utc),
        version=SNAPSHOT_VERSION,
    )


def _lookup(raw: dict, wire_name: str, python_name: str) -> tuple[bool, Any]:
    if wire_name in raw:
        return True, raw[wire_name]
    if python_name in raw:
        return True, raw[python_name]
    return False, None


def _structure_problems(raw: Any) -> list[str]:
    if not isinstance(raw, dict):
        return [f"snapshot must be a JSON object, got {type(raw).__name__}"]

    problems = []
    for wire_name, python_name in COLLECTION_FIELDS:
        present, value = _lookup(raw, wire_name, python_name)
        if not present:
            problems.append(f"missing field '{wire_name}'")
        elif not isinstance(value, list):
            problems.append(f"field '{wire_name}' must be a list")

    for name in ("timestamp", "version"):
        value = raw.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            problems.append(f"missing field '{name}'")

    _, properties = _lookup(raw, "properties", "properties")
    if isinstance(properties, list) and not all(isinstance(p, str) for p in properties):
        problems.append("field 'properties' must contain only strings")

    return problems


def _format_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]


def validate_snapshot(
    raw: Union[dict, BackupSnapshot],
    today: Callable[[], date] = date.today,
) -> BackupSnapshot:
    """
    Validate a raw snapshot and return it as a BackupSnapshot.

    Transaction dates are renormalized first (unparseable dates become
    today), exactly as when the store loads its own blobs.

    Raises:
        SnapshotValidationError: listing every problem found
    """
    if isinstance(raw, BackupSnapshot):
        raw = raw.to_json_dict()

    problems = _structure_problems(raw)
    if problems:
        raise SnapshotValidationError(problems)

    data = {}
    for wire_name, python_name in COLLECTION_FIELDS:
        _, value = _lookup(raw, wire_name, python_name)
        if python_name in ("transactions", "deleted_transactions"):
            value = normalize_transaction_dates(value, today)
        data[wire_name] = value
    data["timestamp"] = raw["timestamp"]
    data["version"] = str(raw["version"])

    try:
        snapshot = BackupSnapshot.model_validate(data)
    except ValidationError as e:
        raise SnapshotValidationError(_format_errors(e))

    active_ids = {t.id for t in snapshot.transactions}
    overlap = sorted(active_ids.intersection(t.id for t in snapshot.deleted_transactions))
    if overlap:
        raise SnapshotValidationError(
            [f"transaction '{tx_id}' is both active and deleted" for tx_id in overlap]
        )

    return snapshot


def dumps_snapshot(snapshot: BackupSnapshot) -> str:
    """Render a snapshot as the pretty-printed JSON backup file."""
    return json.dumps(snapshot.to_json_dict(), indent=2)


def loads_snapshot(
    text: str,
    today: Callable[[], date] = date.today,
) -> BackupSnapshot:
    """Parse and validate a JSON backup file."""
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise SnapshotValidationError([f"not valid JSON: {e}"])
    return validate_snapshot(raw, today)
