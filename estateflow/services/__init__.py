"""Services package."""

from estateflow.services.ocr import (
    ExtractionFailedError,
    MindeeReceiptService,
    OCRError,
)
from estateflow.services.storage import (
    AuditStorageInterface,
    BlobStoreInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
    InMemoryBlobStore,
    JsonFileBlobStore,
    StorageError,
    UnreadableBlobError,
)

__all__ = [
    # OCR services
    "ExtractionFailedError",
    "MindeeReceiptService",
    "OCRError",
    # Storage services
    "AuditStorageInterface",
    "BlobStoreInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBlobStore",
    "GoogleSheetsClient",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "StorageError",
    "UnreadableBlobError",
]
