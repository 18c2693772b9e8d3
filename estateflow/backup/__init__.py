"""Backup and restore package."""

from estateflow.backup.codec import (
    SNAPSHOT_VERSION,
    SnapshotValidationError,
    build_snapshot,
    dumps_snapshot,
    loads_snapshot,
    validate_snapshot,
)

__all__ = [
    "SNAPSHOT_VERSION",
    "SnapshotValidationError",
    "build_snapshot",
    "dumps_snapshot",
    "loads_snapshot",
    "validate_snapshot",
]
