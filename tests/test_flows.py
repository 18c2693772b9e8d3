"""
Integration tests for the orchestrated flows and the audit logger.

Storage is in-memory or a temp directory; OCR is faked.
"""

import json
from datetime import date

import pytest

from estateflow.audit import AuditLogger
from estateflow.backup import SnapshotValidationError
from estateflow.config import LedgerSettings, StorageBackend
from estateflow.ledger import STORAGE_KEYS, RecordStore, TransactionImportError
from estateflow.models.audit import AuditEventBuilder
from estateflow.orchestrator import (
    BackupFlow,
    ReconciliationFlow,
    TransactionImportFlow,
    create_app_components,
)
from estateflow.reconciliation import StatementEmptyError, StatementHeaderError
from estateflow.services.storage import ConnectionError, InMemoryBlobStore, JsonFileBlobStore

from conftest import TODAY, RecordingAuditStorage


class UnreachableSheetsClient:
    def get_blobs_sheet(self):
        raise ConnectionError("Spreadsheet not found: sheet-id")


class BrokenAuditStorage(RecordingAuditStorage):
    def append_event(self, event):
        raise RuntimeError("sheet unavailable")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_event_is_stored(self, audit_logger, audit_storage):
        """Test that logged events reach storage."""
        assert audit_logger.log(AuditEventBuilder.defaults_seeded("estateflow.cards")) is True
        assert audit_storage.types() == ["defaults_seeded"]

    def test_storage_failure_does_not_raise(self):
        """Test that a failing audit backend never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        assert logger.log(AuditEventBuilder.defaults_seeded("estateflow.cards")) is False

    def test_local_only_logger(self):
        """Test logging without a storage backend."""
        assert AuditLogger().log(AuditEventBuilder.defaults_seeded("estateflow.cards")) is True


class TestReconciliationFlow:
    """Tests for ReconciliationFlow."""

    @pytest.fixture
    def flow(self, store, audit_logger):
        return ReconciliationFlow(store, audit_logger, LedgerSettings())

    def test_statement_to_reconciled_transaction(self, flow, store, audit_storage):
        """Test the whole upload, match and confirm path."""
        text = "Date,Description,Amount\n03/11/2024,HOME DEPOT #4471,250.75\nbad,row,1"
        session, result = flow.start_session(text)

        assert result.parsed_count == 1
        assert result.skipped_count == 1
        assert "statement_parsed" in audit_storage.types()

        # txn1 is already reconciled in the default data
        assert session.candidates_for("stmt-0") == []

        store.add_transaction(
            store.get_transaction("txn1").model_copy(update={"id": "hd2", "reconciled": False})
        )
        assert [t.id for t in session.candidates_for("stmt-0")] == ["hd2"]
        session.confirm_match("stmt-0", "hd2")
        assert store.get_transaction("hd2").reconciled is True

    def test_settings_drive_matching(self, store, audit_logger):
        """Test that the configured window is used by the session."""
        settings = LedgerSettings(match_date_window_days=10)
        flow = ReconciliationFlow(store, audit_logger, settings)
        session, _ = flow.start_session("Date,Description,Amount\n03/04/2024,Local Hardware,78.22")
        assert [t.id for t in session.candidates_for("stmt-0")] == ["txn4"]

    def test_rejected_header_is_audited(self, flow, audit_storage):
        """Test that an unusable statement is rejected and audited."""
        with pytest.raises(StatementHeaderError):
            flow.start_session("When,What,HowMuch\n1,2,3")
        assert "statement_rejected" in audit_storage.types()

    def test_statement_without_rows_is_audited(self, flow, audit_storage):
        """Test that a header-only statement is rejected and audited."""
        with pytest.raises(StatementEmptyError):
            flow.start_session("Date,Description,Amount\n")
        assert "statement_rejected" in audit_storage.types()


class TestTransactionImportFlow:
    """Tests for TransactionImportFlow."""

    def test_import_saves_valid_rows(self, empty_store, card, audit_logger, audit_storage):
        """Test that imported rows are prepended to the ledger."""
        added = empty_store.add_card(card)
        text = "\n".join([
            "Date,Vendor,Description,Amount,Category,Last 4 Digits of the Card",
            "01/15/2024,Home Depot,Lumber,250.75,Repairs,1234",
            "01/16/2024,Staples,Paper,abc,Supplies,1234",
        ])
        result = TransactionImportFlow(empty_store, audit_logger).import_csv(text)

        assert result.imported_count == 1
        assert result.skipped_count == 1
        assert [t.card_id for t in empty_store.transactions] == [added.id]
        assert "transactions_imported" in audit_storage.types()

    def test_empty_file_rejected(self, empty_store):
        """Test that an empty import file is an error, not an empty import."""
        with pytest.raises(TransactionImportError):
            TransactionImportFlow(empty_store).import_csv("")


class TestBackupFlow:
    """Tests for BackupFlow."""

    def test_json_round_trip_into_new_store(self, store, audit_logger):
        """Test restoring one store's backup into another."""
        store.soft_delete("txn2")
        text = BackupFlow(store, audit_logger, today=lambda: TODAY).export_json()

        other = RecordStore(InMemoryBlobStore(), today=lambda: TODAY)
        other.load()
        other.add_property("Harbor House")
        BackupFlow(other, today=lambda: TODAY).import_json(text)

        assert other.properties == store.properties
        assert [t.id for t in other.transactions] == [t.id for t in store.transactions]
        assert [t.id for t in other.deleted_transactions] == ["txn2"]

    def test_bad_backup_rejected(self, store, audit_logger, audit_storage):
        """Test that a broken backup file leaves the store untouched."""
        before = [t.id for t in store.transactions]
        with pytest.raises(SnapshotValidationError):
            BackupFlow(store, audit_logger).import_json("not json")
        assert [t.id for t in store.transactions] == before
        assert "backup_rejected" in audit_storage.types()

    def test_transactions_csv(self, store):
        """Test the CSV export of the active ledger."""
        text = BackupFlow(store).export_transactions_csv()
        lines = text.split("\n")
        assert len(lines) == 1 + len(store.transactions)
        assert lines[1].startswith("2024-03-10,Home Depot,")
        assert "Gualter" in lines[1]


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_memory_backend(self):
        """Test wiring with the in-memory backend."""
        components = create_app_components(
            settings=LedgerSettings(storage_backend=StorageBackend.MEMORY)
        )
        assert len(components.store.investors) == 3
        assert components.queries.investor_name("investor1") == "Gualter"

    def test_file_backend_persists(self, tmp_path):
        """Test that a second start reads what the first one wrote."""
        settings = LedgerSettings(storage_backend=StorageBackend.FILE, data_dir=tmp_path)
        first = create_app_components(settings=settings)
        first.store.add_property("Harbor House")

        second = create_app_components(settings=settings)
        assert "Harbor House" in second.store.properties
        stored = json.loads(JsonFileBlobStore(tmp_path).get(STORAGE_KEYS["properties"]))
        assert stored[-1] == "Harbor House"

    def test_explicit_blob_store(self, make_transaction):
        """Test that an injected blob store overrides the settings."""
        blobs = InMemoryBlobStore({key: "[]" for key in STORAGE_KEYS.values()})
        components = create_app_components(
            settings=LedgerSettings(storage_backend=StorageBackend.FILE),
            blob_store=blobs,
        )
        components.store.add_transaction(make_transaction(id="t1", date=date(2024, 1, 5)))
        assert json.loads(blobs.get(STORAGE_KEYS["transactions"]))[0]["id"] == "t1"

    def test_unreachable_sheets_falls_back_to_files(self, tmp_path, monkeypatch):
        """Test that a Sheets backend that cannot be reached uses local files."""
        monkeypatch.setattr("estateflow.orchestrator.GoogleSheetsClient", UnreachableSheetsClient)
        settings = LedgerSettings(storage_backend=StorageBackend.SHEETS, data_dir=tmp_path)
        components = create_app_components(settings=settings)

        assert len(components.store.investors) == 3
        assert (tmp_path / f"{STORAGE_KEYS['investors']}.json").exists()
