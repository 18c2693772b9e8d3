"""
Storage Services Package

Provides the abstract blob-store interface and concrete implementations.
Local JSON files are the default backend; Google Sheets is optional.
"""

from estateflow.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    ConnectionError,
    StorageError,
    UnreadableBlobError,
)
from estateflow.services.storage.local import (
    InMemoryBlobStore,
    JsonFileBlobStore,
)
from estateflow.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    "UnreadableBlobError",
    # Local implementations
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBlobStore",
    "GoogleSheetsClient",
]
