"""
Receipt OCR using Mindee

DESIGN DECISION: We use Mindee's receipt product because:
1. It returns STRUCTURED fields (supplier, total, date), not raw text
2. Every field carries a confidence score
3. The ledger only needs the vendor/amount/date triple

This service ONLY extracts. It never creates a transaction; the result is
a ParsedReceipt that the user reviews and confirms through
ReceiptEntryFlow.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog
from mindee import Client
from mindee.product import ReceiptV5
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from estateflow.config import get_settings
from estateflow.models.ledger import ParsedReceipt


logger = structlog.get_logger(__name__)


class OCRError(Exception):
    """Base exception for OCR errors."""
    pass


class ExtractionFailedError(OCRError):
    """Failed to extract receipt data from an image."""
    pass


class MindeeReceiptService:
    """
    Extracts vendor, total amount and date from a receipt image.

    The Mindee client is created lazily, so constructing the service
    does not require network access.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key
        self._client: Optional[Client] = None

    def _get_client(self) -> Client:
        """Get or create Mindee client."""
        if self._client is None:
            api_key = self._api_key
            if not api_key:
                try:
                    api_key = get_settings().mindee.api_key
                except ValidationError:
                    api_key = ""
            if not api_key:
                raise OCRError("Mindee API key is not configured")
            self._client = Client(api_key=api_key)
        return self._client

    @staticmethod
    def _safe_decimal(value) -> Optional[Decimal]:
        if value is None:
            return None
        try:
            return Decimal(str(value)).quantize(Decimal("0.01"))
        except (InvalidOperation, TypeError, ValueError):
            return None

    @staticmethod
    def _safe_date(value) -> Optional[date]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return datetime.strptime(value.strip(), "%Y-%m-%d").date()
            except ValueError:
                return None
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _predict(self, image_bytes: bytes, filename: str):
        client = self._get_client()
        input_source = client.source_from_bytes(image_bytes, filename)
        response = client.parse(ReceiptV5, input_source)
        return response.document.inference.prediction

    def to_parsed_receipt(self, prediction) -> ParsedReceipt:
        """
        Convert a Mindee receipt prediction into a ParsedReceipt.

        Raises:
            ExtractionFailedError: if neither a vendor nor a total was found
        """
        fields = {
            "vendor": getattr(prediction, "supplier_name", None),
            "amount": getattr(prediction, "total_amount", None),
            "date": getattr(prediction, "date", None),
        }
        values = {name: getattr(field, "value", None) for name, field in fields.items()}
        confidences = [
            float(getattr(field, "confidence", 0.0) or 0.0)
            for name, field in fields.items()
            if values[name] is not None
        ]

        vendor = str(values["vendor"] or "").strip()[:100]
        amount = self._safe_decimal(values["amount"])
        if not vendor and amount is None:
            raise ExtractionFailedError(
                "No vendor or total amount could be read from this receipt. "
                "Please try a clearer photo or enter the transaction manually."
            )

        return ParsedReceipt(
            vendor=vendor,
            amount=amount,
            date=self._safe_date(values["date"]),
            confidence_score=sum(confidences) / len(confidences) if confidences else 0.0,
        )

    def extract_receipt(self, image_bytes: bytes, filename: str) -> ParsedReceipt:
        """
        Extract vendor, amount and date from receipt image bytes.

        Raises:
            OCRError: if the service is not configured
            ExtractionFailedError: if the call fails or nothing usable is found
        """
        # Configuration problems are not retried
        self._get_client()

        try:
            prediction = self._predict(image_bytes, filename)
        except Exception as e:
            logger.error("receipt_extraction_failed", filename=filename, error=str(e))
            raise ExtractionFailedError(f"Failed to extract receipt data: {e}")

        receipt = self.to_parsed_receipt(prediction)
        logger.info(
            "receipt_extracted",
            filename=filename,
            vendor=receipt.vendor,
            amount=str(receipt.amount),
            confidence=receipt.confidence_score,
        )
        return receipt
