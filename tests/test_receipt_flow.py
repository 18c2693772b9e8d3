"""
Tests for receipt OCR, draft validation and confirm-and-save.

No real API calls: the Mindee client is never created.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from estateflow.config import LedgerSettings
from estateflow.models.ledger import ParsedReceipt, SourceType
from estateflow.orchestrator import ReceiptEntryFlow
from estateflow.services.ocr import ExtractionFailedError, MindeeReceiptService, OCRError
from estateflow.validation import ReceiptValidator

from conftest import TODAY


class FakeOCR:
    """Stands in for MindeeReceiptService."""

    def __init__(self, receipt=None, error=None):
        self.receipt = receipt
        self.error = error
        self.calls = []

    def extract_receipt(self, image_bytes: bytes, filename: str) -> ParsedReceipt:
        self.calls.append(filename)
        if self.error:
            raise self.error
        return self.receipt


def field(value, confidence=0.9):
    return SimpleNamespace(value=value, confidence=confidence)


@pytest.fixture
def validator(store):
    return ReceiptValidator(store, LedgerSettings(), today=lambda: TODAY)


@pytest.fixture
def draft():
    return ParsedReceipt(
        vendor="Staples", amount="45.50", date=date(2024, 3, 10), confidence_score=0.9
    )


class TestReceiptValidator:
    """Tests for the two-stage draft validation."""

    def test_clean_draft(self, validator, draft):
        """Test that a complete, plausible draft passes."""
        result = validator.validate(draft)
        assert result.is_valid is True
        assert result.issues == []
        assert validator.get_user_friendly_summary(result).startswith("✅")

    def test_zero_amount_is_error(self, validator, draft):
        """Test that an amount of zero blocks saving."""
        result = validator.validate(draft.model_copy(update={"amount": Decimal("0.00")}))
        assert result.schema_valid is False
        assert result.semantic_valid is False
        assert result.can_proceed_with_review is False
        assert result.has_errors
        summary = validator.get_user_friendly_summary(result)
        assert "Amount must be greater than zero" in summary
        assert "Please fix the issues above" in summary

    def test_missing_vendor_and_date_are_warnings(self, validator):
        """Test that gaps the user can fill in are only warnings."""
        result = validator.validate(ParsedReceipt(amount="10", confidence_score=0.9))
        assert result.is_valid is True
        assert {i.field for i in result.issues} == {"vendor", "date"}
        assert "You can still proceed" in validator.get_user_friendly_summary(result)

    def test_low_confidence(self, validator, draft):
        """Test the low-confidence warning."""
        result = validator.validate(draft.model_copy(update={"confidence_score": 0.3}))
        assert [i.issue_type for i in result.issues] == ["low_confidence"]

    def test_future_date(self, validator, draft):
        """Test that dates past the tolerance are flagged."""
        assert validator.validate(draft.model_copy(update={"date": date(2024, 3, 22)})).issues == []
        result = validator.validate(draft.model_copy(update={"date": date(2024, 3, 23)}))
        assert [i.issue_type for i in result.issues] == ["future_date"]

    def test_old_date(self, validator, draft):
        """Test that very old receipts are flagged."""
        result = validator.validate(draft.model_copy(update={"date": date(2021, 1, 1)}))
        assert [i.issue_type for i in result.issues] == ["suspicious_date"]

    def test_odd_vendor(self, validator, draft):
        """Test the vendor made mostly of digits and symbols."""
        result = validator.validate(draft.model_copy(update={"vendor": "1234 #56 %%"}))
        assert [i.issue_type for i in result.issues] == ["suspicious_value"]

    def test_possible_duplicate(self, validator):
        """Test the warning when the ledger already holds the same charge."""
        existing = ParsedReceipt(vendor="HOME DEPOT", amount="250.75", date=date(2024, 3, 10))
        result = validator.validate(existing)
        assert [i.issue_type for i in result.issues] == ["potential_duplicate"]
        assert result.is_valid is True
        assert validator.validate(existing, check_duplicates=False).issues == []

    def test_without_store(self, draft):
        """Test that duplicate checks are skipped without a store."""
        validator = ReceiptValidator(settings=LedgerSettings(), today=lambda: TODAY)
        assert validator.validate(draft).is_valid


class TestReceiptEntryFlow:
    """Tests for ReceiptEntryFlow."""

    @pytest.fixture
    def flow(self, store, validator, audit_logger, draft):
        return ReceiptEntryFlow(
            store, ocr_service=FakeOCR(draft), validator=validator, audit_logger=audit_logger
        )

    def test_extract_saves_nothing(self, flow, store, audit_storage):
        """Test that extraction only proposes a draft."""
        before = len(store.transactions)
        receipt, result = flow.extract(b"image", "receipt.jpg")

        assert receipt.vendor == "Staples"
        assert result.is_valid
        assert len(store.transactions) == before
        assert "receipt_extracted" in audit_storage.types()

    def test_ocr_failure_is_audited_and_raised(self, store, validator, audit_logger, audit_storage):
        """Test that OCR errors reach the caller."""
        flow = ReceiptEntryFlow(
            store,
            ocr_service=FakeOCR(error=ExtractionFailedError("blurry")),
            validator=validator,
            audit_logger=audit_logger,
        )
        with pytest.raises(OCRError):
            flow.extract(b"image", "receipt.jpg")
        assert "external_service_error" in audit_storage.types()

    def test_confirm_inherits_from_card(self, flow, store):
        """Test that investor and property come from the card."""
        tx = flow.confirm_and_save(
            card_id="card2", vendor="Staples", amount="45.50",
            transaction_date=date(2024, 3, 10), category="Supplies",
        )
        assert tx.investor_id == "investor1"
        assert tx.property == "Oceanview Villas"
        assert tx.source_type == SourceType.OCR
        assert tx.reconciled is False
        assert store.transactions[0].id == tx.id

    def test_confirm_with_overrides(self, flow):
        """Test that explicit investor and property win over the card."""
        tx = flow.confirm_and_save(
            card_id="card2", vendor="Staples", amount="45.50",
            transaction_date=date(2024, 3, 10),
            investor_id="investor3", property="Mountain Retreat", unit_number="2",
        )
        assert tx.investor_id == "investor3"
        assert tx.property == "Mountain Retreat"
        assert tx.unit_number == "2"

    def test_confirm_unknown_card(self, flow):
        """Test that an unknown card without overrides is rejected."""
        with pytest.raises(ValueError, match="Unknown card"):
            flow.confirm_and_save(
                card_id="nope", vendor="Staples", amount="1", transaction_date=date(2024, 3, 10)
            )

    def test_confirm_rejects_zero_amount(self, flow, store):
        """Test that the positive-amount invariant still holds."""
        before = len(store.transactions)
        with pytest.raises(ValueError):
            flow.confirm_and_save(
                card_id="card2", vendor="Staples", amount="0", transaction_date=date(2024, 3, 10)
            )
        assert len(store.transactions) == before


class TestMindeeReceiptService:
    """Tests for converting Mindee predictions."""

    def test_to_parsed_receipt(self):
        """Test mapping of supplier, total and date."""
        prediction = SimpleNamespace(
            supplier_name=field("Staples", 0.9),
            total_amount=field(45.5, 0.8),
            date=field("2024-03-10", 0.7),
        )
        receipt = MindeeReceiptService(api_key="test").to_parsed_receipt(prediction)
        assert receipt.vendor == "Staples"
        assert receipt.amount == Decimal("45.50")
        assert receipt.date == date(2024, 3, 10)
        assert receipt.confidence_score == pytest.approx(0.8)

    def test_missing_fields_are_left_for_review(self):
        """Test that a missing date and amount do not fail extraction."""
        prediction = SimpleNamespace(
            supplier_name=field("Staples", 0.6),
            total_amount=field(None, 0.0),
            date=field("not a date", 0.2),
        )
        receipt = MindeeReceiptService(api_key="test").to_parsed_receipt(prediction)
        assert receipt.amount == Decimal("0.00")
        assert receipt.date is None
        assert receipt.confidence_score == pytest.approx(0.4)

    def test_nothing_readable(self):
        """Test that no vendor and no total is an extraction failure."""
        prediction = SimpleNamespace(
            supplier_name=field(None, 0.0),
            total_amount=field(None, 0.0),
            date=field("2024-03-10", 0.9),
        )
        with pytest.raises(ExtractionFailedError):
            MindeeReceiptService(api_key="test").to_parsed_receipt(prediction)

    def test_extract_receipt(self, monkeypatch):
        """Test the extraction path with the Mindee call replaced."""
        service = MindeeReceiptService(api_key="test")
        service._client = object()
        prediction = SimpleNamespace(
            supplier_name=field("Staples"), total_amount=field("12.5"), date=field(None, 0.0),
        )
        monkeypatch.setattr(service, "_predict", lambda image_bytes, filename: prediction)

        receipt = service.extract_receipt(b"image", "r.jpg")
        assert receipt.vendor == "Staples"
        assert receipt.amount == Decimal("12.50")

    def test_extract_receipt_failure(self, monkeypatch):
        """Test that a failed Mindee call becomes ExtractionFailedError."""
        service = MindeeReceiptService(api_key="test")
        service._client = object()

        def broken(image_bytes, filename):
            raise RuntimeError("HTTP 500")

        monkeypatch.setattr(service, "_predict", broken)
        with pytest.raises(ExtractionFailedError, match="HTTP 500"):
            service.extract_receipt(b"image", "r.jpg")

    def test_missing_api_key(self, monkeypatch):
        """Test that an unconfigured service fails before any network call."""
        monkeypatch.delenv("MINDEE_API_KEY", raising=False)
        with pytest.raises(OCRError, match="not configured"):
            MindeeReceiptService().extract_receipt(b"image", "r.jpg")
