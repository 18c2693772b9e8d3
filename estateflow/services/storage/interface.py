"""
Abstract Storage Interface

DESIGN DECISION: The ledger persists to a plain key/value blob store.
Each key holds one JSON document (an array of records).
This allows us to:
1. Keep the ledger on local disk by default
2. Use in-memory storage for testing
3. Swap in Google Sheets (or anything else) without touching ledger logic

The interface is intentionally tiny. The Record Store is the only
writer; nothing else may write ledger keys directly.

All calls are synchronous. Failures raise StorageError and are fatal
to the calling operation.
"""

from abc import ABC, abstractmethod
from typing import Optional

from estateflow.models.audit import AuditEvent


class BlobStoreInterface(ABC):
    """
    Abstract interface for key/value blob storage.

    Any storage implementation (local files, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the blob stored under a key.

        Returns:
            The stored text, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
            UnreadableBlobError: If the stored bytes are not valid text
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a blob under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List all stored keys."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class UnreadableBlobError(StorageError):
    """A stored blob exists but its bytes are not valid text."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
