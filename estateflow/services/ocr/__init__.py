"""OCR services package."""

from estateflow.services.ocr.mindee_service import (
    ExtractionFailedError,
    MindeeReceiptService,
    OCRError,
)

__all__ = [
    "ExtractionFailedError",
    "MindeeReceiptService",
    "OCRError",
]
