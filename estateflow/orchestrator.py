"""
Main Orchestrator for EstateFlow Ledger

This module ties the components together and defines the end-to-end
flows for:
1. Statement reconciliation (CSV text -> statement lines -> candidates -> confirm)
2. Receipt entry (image -> OCR -> validate -> confirm -> save)
3. Bulk CSV import (CSV text -> transactions -> save)
4. Backup (store -> JSON file -> store)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing from OCR or a statement is persisted without explicit confirmation
- Row-level problems are counted and reported, never silently dropped
- Every step is audited
"""

from datetime import date
from decimal import Decimal
from typing import Callable, NamedTuple, Optional, Union
from uuid import UUID

import structlog

from estateflow.audit import AuditLogger, create_correlation_id
from estateflow.backup import SnapshotValidationError, dumps_snapshot, loads_snapshot
from estateflow.config import LedgerSettings, StorageBackend, get_settings
from estateflow.ledger import (
    RecordStore,
    TransactionImportResult,
    parse_transactions_csv,
    transactions_to_csv,
)
from estateflow.models.ledger import BackupSnapshot, ParsedReceipt, SourceType, Transaction
from estateflow.models.validation import ValidationResult
from estateflow.queries import LedgerQueryExecutor
from estateflow.reconciliation import (
    ReconciliationSession,
    StatementParseError,
    StatementParseResult,
    parse_statement,
)
from estateflow.services.ocr import MindeeReceiptService, OCRError
from estateflow.services.storage import (
    BlobStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
    InMemoryBlobStore,
    JsonFileBlobStore,
)
from estateflow.validation import ReceiptValidator


logger = structlog.get_logger(__name__)


class ReconciliationFlow:
    """
    Orchestrates statement reconciliation.

    Flow:
    1. Parse → statement text becomes StatementLines (bad rows counted)
    2. Match → each line is compared against unreconciled transactions
    3. Confirm → user picks one candidate per line (PAUSE - explicit action)

    The system NEVER auto-commits a match.
    """

    def __init__(
        self,
        store: RecordStore,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger

    def start_session(
        self,
        statement_text: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ReconciliationSession, StatementParseResult]:
        """
        Parse a statement and open a session over its lines.

        Raises:
            StatementHeaderError: if Date/Description/Amount columns are missing
            StatementEmptyError: if the statement has no data rows
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            result = parse_statement(statement_text)
        except StatementParseError as e:
            if self._audit_logger:
                self._audit_logger.log_statement_rejected(
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_statement_parsed(
                parsed=result.parsed_count,
                skipped=result.skipped_count,
                correlation_id=correlation_id,
            )

        session = ReconciliationSession(
            self._store,
            result.lines,
            window_days=self._settings.match_date_window_days,
            amount_tolerance=self._settings.match_amount_tolerance,
            prefix_length=self._settings.match_description_prefix_length,
        )
        return session, result


class ReceiptEntryFlow:
    """
    Orchestrates OCR-assisted transaction entry.

    Flow:
    1. Extract → Send the receipt image to the OCR service
    2. Validate → Two-stage validation of the draft
    3. Review → Present to user (PAUSE - require confirmation)
    4. Save → confirm_and_save creates the transaction

    Human confirmation (step 4) is MANDATORY.
    """

    def __init__(
        self,
        store: RecordStore,
        ocr_service: Optional[MindeeReceiptService] = None,
        validator: Optional[ReceiptValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._ocr_service = ocr_service or MindeeReceiptService()
        self._validator = validator or ReceiptValidator(store)
        self._audit_logger = audit_logger

    def extract(
        self,
        image_bytes: bytes,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ParsedReceipt, ValidationResult]:
        """
        Extract and validate a receipt. Nothing is saved.

        Returns:
            (receipt_draft, validation_result)
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            receipt = self._ocr_service.extract_receipt(image_bytes, filename)
        except OCRError as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="mindee",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_receipt_extracted(
                vendor=receipt.vendor,
                amount=str(receipt.amount),
                confidence=receipt.confidence_score,
                correlation_id=correlation_id,
            )

        return receipt, self._validator.validate(receipt)

    def confirm_and_save(
        self,
        card_id: str,
        vendor: str,
        amount: Union[Decimal, str, float],
        transaction_date: date,
        category: str = "Other",
        description: str = "",
        investor_id: Optional[str] = None,
        property: Optional[str] = None,
        unit_number: Optional[str] = None,
        receipt_image_uri: Optional[str] = None,
    ) -> Transaction:
        """
        Save a confirmed receipt as a transaction.

        CRITICAL: This is called ONLY after explicit user confirmation.

        The transaction inherits investor and property from the card
        unless they are given explicitly.

        Raises:
            ValueError: unknown card without explicit investor/property,
                or an invalid field (e.g. amount <= 0)
        """
        card = self._store.get_card(card_id)
        if card is None and (investor_id is None or property is None):
            raise ValueError(f"Unknown card: {card_id}")

        tx = Transaction(
            date=transaction_date,
            vendor=vendor,
            description=description,
            amount=amount,
            category=category,
            card_id=card_id,
            investor_id=investor_id or card.investor_id,
            property=property or card.property,
            unit_number=unit_number,
            receipt_image_uri=receipt_image_uri,
            reconciled=False,
            source_type=SourceType.OCR,
        )
        return self._store.add_transaction(tx)


class TransactionImportFlow:
    """Bulk import of transactions from a CSV export."""

    def __init__(
        self,
        store: RecordStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    def import_csv(self, text: str, source: str = "csv") -> TransactionImportResult:
        """
        Parse and save every valid row in one write.

        Raises:
            TransactionImportError: if the file has no header or no data rows
        """
        result = parse_transactions_csv(text, self._store.cards)
        self._store.add_transactions(result.transactions)

        if self._audit_logger:
            self._audit_logger.log_transactions_imported(
                imported=result.imported_count,
                skipped=result.skipped_count,
                source=source,
            )
        return result


class BackupFlow:
    """JSON backup files and CSV exports of the whole store."""

    def __init__(
        self,
        store: RecordStore,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._today = today or date.today

    def export_json(self) -> str:
        return dumps_snapshot(self._store.export_snapshot())

    def import_json(self, text: str) -> BackupSnapshot:
        """
        Restore the store from a JSON backup file.

        All-or-nothing: on SnapshotValidationError the store is untouched.
        """
        try:
            snapshot = loads_snapshot(text, self._today)
        except SnapshotValidationError as e:
            if self._audit_logger:
                self._audit_logger.log_backup_rejected(e.problems)
            raise
        return self._store.import_snapshot(snapshot)

    def export_transactions_csv(self) -> str:
        return transactions_to_csv(
            self._store.transactions,
            self._store.investors,
            self._store.cards,
        )


class AppComponents(NamedTuple):
    store: RecordStore
    reconciliation_flow: ReconciliationFlow
    receipt_flow: ReceiptEntryFlow
    import_flow: TransactionImportFlow
    backup_flow: BackupFlow
    queries: LedgerQueryExecutor


def _create_storage(
    settings: LedgerSettings,
) -> tuple[BlobStoreInterface, AuditLogger]:
    if settings.storage_backend == StorageBackend.MEMORY:
        return InMemoryBlobStore(), AuditLogger()

    if settings.storage_backend == StorageBackend.SHEETS:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_blobs_sheet()
            return (
                GoogleSheetsBlobStore(sheets_client),
                AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
            )
        except Exception as e:
            # Sheets not configured or unreachable - continue with local files
            logger.warning("sheets_storage_unavailable", error=str(e), fallback="file")

    return JsonFileBlobStore(settings.data_dir), AuditLogger()


def create_app_components(
    settings: Optional[LedgerSettings] = None,
    blob_store: Optional[BlobStoreInterface] = None,
    ocr_service: Optional[MindeeReceiptService] = None,
) -> AppComponents:
    """
    Factory function to create and load all application components.

    Args:
        settings: Ledger settings; read from the environment when omitted.
        blob_store: Explicit blob store, overriding settings.storage_backend.
                    Useful for tests.
        ocr_service: Explicit receipt OCR service.
    """
    settings = settings or get_settings().ledger

    if blob_store is None:
        blob_store, audit_logger = _create_storage(settings)
    else:
        audit_logger = AuditLogger()

    store = RecordStore(blob_store, audit_logger=audit_logger)
    store.load()

    return AppComponents(
        store=store,
        reconciliation_flow=ReconciliationFlow(store, audit_logger, settings),
        receipt_flow=ReceiptEntryFlow(
            store,
            ocr_service=ocr_service,
            validator=ReceiptValidator(store, settings),
            audit_logger=audit_logger,
        ),
        import_flow=TransactionImportFlow(store, audit_logger),
        backup_flow=BackupFlow(store, audit_logger),
        queries=LedgerQueryExecutor(store),
    )
