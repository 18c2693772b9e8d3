"""
Record Store

The single owner of the ledger's five collections:
investors, properties, cards, active transactions and deleted transactions.

DESIGN DECISION: Write-through persistence.
Every mutation serializes the touched collection(s) to the blob store
before returning. There is no write-behind buffer, so a returned call
means the change is on disk (or in the sheet).

DESIGN DECISION: Availability over correctness on load.
A blob that cannot be decoded is discarded and replaced with the default
dataset (RecoveryPolicy.DISCARD_AND_DEFAULT). The application never
refuses to start because of bad persisted state; the recovery is logged
and audited instead.

Known gap: operations touching two collections (soft_delete, restore)
write active first, then deleted. If the second write fails the two
persisted blobs can disagree until the next successful write.
"""

import json
from datetime import date
from enum import Enum
from typing import Callable, NamedTuple, Optional, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

from estateflow.audit.logger import AuditLogger
from estateflow.backup.codec import (
    SnapshotValidationError,
    build_snapshot,
    validate_snapshot,
)
from estateflow.ledger import defaults
from estateflow.ledger.duplicates import detect_duplicates
from estateflow.models.audit import AuditEventType
from estateflow.models.dates import normalize_transaction_dates
from estateflow.models.ledger import (
    BackupSnapshot,
    Card,
    Investor,
    LedgerModel,
    Transaction,
    new_id,
)
from estateflow.services.storage import BlobStoreInterface, StorageError, UnreadableBlobError


logger = structlog.get_logger(__name__)


STORAGE_KEYS = {
    "investors": "estateflow.investors",
    "properties": "estateflow.properties",
    "cards": "estateflow.cards",
    "transactions": "estateflow.transactions",
    "deleted_transactions": "estateflow.deleted_transactions",
}


class RecoveryPolicy(str, Enum):
    """What load() does with a blob that fails to decode."""
    DISCARD_AND_DEFAULT = "discard_and_default"


class LoadReport(BaseModel):
    """Outcome of RecordStore.load()."""

    seeded: list[str] = Field(default_factory=list, description="Collections seeded because their key was missing")
    recovered: list[str] = Field(default_factory=list, description="Collections replaced after corruption")
    policy: RecoveryPolicy = RecoveryPolicy.DISCARD_AND_DEFAULT

    @property
    def is_clean(self) -> bool:
        return not self.seeded and not self.recovered


class _Collection(NamedTuple):
    model: Optional[type[LedgerModel]]
    seed: Callable[["RecordStore"], list]
    is_transaction: bool = False


class _CorruptBlob(Exception):
    pass


_COLLECTIONS = {
    "investors": _Collection(Investor, lambda store: defaults.default_investors()),
    "properties": _Collection(None, lambda store: defaults.default_properties()),
    "cards": _Collection(Card, lambda store: defaults.default_cards()),
    "transactions": _Collection(
        Transaction, lambda store: defaults.default_transactions(store._today()), True
    ),
    "deleted_transactions": _Collection(
        Transaction, lambda store: defaults.default_deleted_transactions(), True
    ),
}


def _with_fresh_id(model: type[LedgerModel], data: Union[BaseModel, dict]):
    if isinstance(data, BaseModel):
        data = data.model_dump()
    fields = {k: v for k, v in data.items() if k != "id"}
    return model.model_validate({**fields, "id": new_id()})


class RecordStore:
    """
    In-process ledger backed by a key/value blob store.

    Call load() once before use. Readers return copies; mutate only
    through the methods below.
    """

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._blobs = blob_store
        self._audit = audit_logger
        self._today = today or date.today

        self._investors: list[Investor] = []
        self._properties: list[str] = []
        self._cards: list[Card] = []
        self._transactions: list[Transaction] = []
        self._deleted_transactions: list[Transaction] = []

    # =========================================================================
    # LOAD / PERSIST
    # =========================================================================

    def load(self) -> LoadReport:
        """
        Read all five collections from the blob store.

        Missing keys are seeded with defaults. Corrupted keys are deleted
        and seeded with defaults.
        """
        report = LoadReport()

        for name, collection in _COLLECTIONS.items():
            key = STORAGE_KEYS[name]
            try:
                raw = self._blobs.get(key)
                if raw is None:
                    self._seed(name, collection)
                    report.seeded.append(name)
                    if self._audit:
                        self._audit.log_defaults_seeded(key)
                    continue
                setattr(self, f"_{name}", self._decode(raw, collection))
            except (UnreadableBlobError, _CorruptBlob) as e:
                logger.warning(
                    "ledger_blob_corrupted",
                    key=key,
                    reason=str(e),
                    policy=report.policy.value,
                )
                self._blobs.delete(key)
                self._seed(name, collection)
                report.recovered.append(name)
                if self._audit:
                    self._audit.log_data_corruption_recovered(key, str(e))

        logger.info(
            "ledger_loaded",
            investors=len(self._investors),
            properties=len(self._properties),
            cards=len(self._cards),
            transactions=len(self._transactions),
            deleted_transactions=len(self._deleted_transactions),
            seeded=report.seeded,
            recovered=report.recovered,
        )
        return report

    def _decode(self, raw: str, collection: _Collection) -> list:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise _CorruptBlob(f"undecodable JSON: {e.msg}")
        except RecursionError:
            raise _CorruptBlob("JSON nested too deeply")

        if not isinstance(data, list):
            raise _CorruptBlob(f"expected a list, got {type(data).__name__}")

        if collection.model is None:
            if not all(isinstance(item, str) for item in data):
                raise _CorruptBlob("property names must be strings")
            return list(dict.fromkeys(item.strip() for item in data if item.strip()))

        if collection.is_transaction:
            data = normalize_transaction_dates(data, self._today)

        try:
            return [collection.model.model_validate(item) for item in data]
        except ValidationError as e:
            raise _CorruptBlob(f"{e.error_count()} invalid record field(s)")

    def _seed(self, name: str, collection: _Collection) -> None:
        setattr(self, f"_{name}", collection.seed(self))
        self._persist(name)

    def _persist(self, name: str) -> None:
        records = getattr(self, f"_{name}")
        if name == "properties":
            payload = json.dumps(records)
        else:
            payload = json.dumps([r.to_json_dict() for r in records])

        key = STORAGE_KEYS[name]
        try:
            self._blobs.set(key, payload)
        except StorageError as e:
            logger.error("ledger_persist_failed", key=key, error=str(e))
            if self._audit:
                self._audit.log_error("StorageError", str(e), details={"key": key})
            raise

    # =========================================================================
    # READERS
    # =========================================================================

    @property
    def investors(self) -> list[Investor]:
        return [i.model_copy() for i in self._investors]

    @property
    def properties(self) -> list[str]:
        return list(self._properties)

    @property
    def cards(self) -> list[Card]:
        return [c.model_copy() for c in self._cards]

    @property
    def transactions(self) -> list[Transaction]:
        """Active transactions, newest first."""
        return [t.model_copy() for t in self._transactions]

    @property
    def deleted_transactions(self) -> list[Transaction]:
        return [t.model_copy() for t in self._deleted_transactions]

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Look up an active transaction. None when absent."""
        for tx in self._transactions:
            if tx.id == transaction_id:
                return tx.model_copy()
        return None

    def get_investor(self, investor_id: str) -> Optional[Investor]:
        for investor in self._investors:
            if investor.id == investor_id:
                return investor.model_copy()
        return None

    def get_card(self, card_id: str) -> Optional[Card]:
        for card in self._cards:
            if card.id == card_id:
                return card.model_copy()
        return None

    def find_card_by_last4(self, digits: str) -> Optional[Card]:
        digits = (digits or "").strip()
        for card in self._cards:
            if card.last4_digits and card.last4_digits == digits:
                return card.model_copy()
        return None

    def unreconciled_transactions(self) -> list[Transaction]:
        """Active transactions not yet matched to a statement, in ledger order."""
        return [t.model_copy() for t in self._transactions if not t.reconciled]

    def flagged_duplicates(self) -> set[str]:
        """Ids of active transactions that look like double entries."""
        return detect_duplicates(self._transactions)

    # =========================================================================
    # REFERENCE DATA MUTATIONS
    # =========================================================================

    def add_investor(self, data: Union[Investor, dict]) -> Investor:
        """Add an investor under a freshly generated id."""
        investor = _with_fresh_id(Investor, data)
        self._investors.append(investor)
        self._persist("investors")

        if self._audit:
            self._audit.log_record_added(
                AuditEventType.INVESTOR_ADDED, "investor", investor.id, investor.name
            )
        return investor.model_copy()

    def add_property(self, name: str) -> str:
        """
        Add a property name. Adding a name that already exists is a no-op
        that returns the existing name.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Property name cannot be empty")
        if name in self._properties:
            return name

        self._properties.append(name)
        self._persist("properties")

        if self._audit:
            self._audit.log_record_added(
                AuditEventType.PROPERTY_ADDED, "property", name, name
            )
        return name

    def add_card(self, data: Union[Card, dict]) -> Card:
        """Add a card under a freshly generated id."""
        card = _with_fresh_id(Card, data)
        self._cards.append(card)
        self._persist("cards")

        if self._audit:
            self._audit.log_record_added(
                AuditEventType.CARD_ADDED, "card", card.id, card.card_name
            )
        return card.model_copy()

    # =========================================================================
    # TRANSACTION MUTATIONS
    # =========================================================================

    def _known_ids(self) -> set[str]:
        return {t.id for t in self._transactions} | {t.id for t in self._deleted_transactions}

    def add_transaction(self, tx: Union[Transaction, dict]) -> Transaction:
        """Prepend a transaction to the active ledger."""
        tx = Transaction.model_validate(tx) if isinstance(tx, dict) else tx.model_copy()
        if tx.id in self._known_ids():
            raise ValueError(f"Transaction id already exists: {tx.id}")

        self._transactions.insert(0, tx)
        self._persist("transactions")

        if self._audit:
            self._audit.log_transaction_changed(
                AuditEventType.TRANSACTION_ADDED,
                tx.id,
                {"vendor": tx.vendor, "amount": str(tx.amount), "source_type": tx.source_type.value},
            )
        return tx.model_copy()

    def add_transactions(self, batch: list[Transaction]) -> list[Transaction]:
        """Prepend a batch (kept in the given order) with a single write."""
        known = self._known_ids()
        batch = [tx.model_copy() for tx in batch]
        for tx in batch:
            if tx.id in known:
                raise ValueError(f"Transaction id already exists: {tx.id}")
            known.add(tx.id)

        if not batch:
            return []

        self._transactions = batch + self._transactions
        self._persist("transactions")
        return [tx.model_copy() for tx in batch]

    def update_transaction(self, tx: Transaction) -> Optional[Transaction]:
        """
        Replace the active transaction with the same id.

        Returns the stored record, or None (no-op) when the id is not active.
        """
        for index, existing in enumerate(self._transactions):
            if existing.id == tx.id:
                self._transactions[index] = tx.model_copy()
                self._persist("transactions")
                if self._audit:
                    self._audit.log_transaction_changed(
                        AuditEventType.TRANSACTION_UPDATED, tx.id
                    )
                return tx.model_copy()
        return None

    def _set_flag(self, transaction_id: str, field: str, event_type: AuditEventType) -> Optional[Transaction]:
        for index, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                updated = existing.model_copy(update={field: True})
                self._transactions[index] = updated
                self._persist("transactions")
                if self._audit:
                    self._audit.log_transaction_changed(event_type, transaction_id)
                return updated.model_copy()
        return None

    def mark_reconciled(self, transaction_id: str) -> Optional[Transaction]:
        """Set reconciled=True on an active transaction. None when absent."""
        return self._set_flag(transaction_id, "reconciled", AuditEventType.TRANSACTION_RECONCILED)

    def confirm_duplicate(self, transaction_id: str) -> Optional[Transaction]:
        """Mark an active transaction as 'not a duplicate'. None when absent."""
        return self._set_flag(
            transaction_id, "is_duplicate_confirmed", AuditEventType.DUPLICATE_CONFIRMED
        )

    @staticmethod
    def _take(records: list[Transaction], transaction_id: str) -> Optional[Transaction]:
        for index, tx in enumerate(records):
            if tx.id == transaction_id:
                return records.pop(index)
        return None

    def soft_delete(self, transaction_id: str) -> Optional[Transaction]:
        """Move an active transaction to the deleted collection."""
        tx = self._take(self._transactions, transaction_id)
        if tx is None:
            return None

        self._deleted_transactions.insert(0, tx)
        self._persist("transactions")
        self._persist("deleted_transactions")

        if self._audit:
            self._audit.log_transaction_changed(AuditEventType.TRANSACTION_DELETED, transaction_id)
        return tx.model_copy()

    def restore(self, transaction_id: str) -> Optional[Transaction]:
        """Move a deleted transaction back to the front of the active ledger."""
        tx = self._take(self._deleted_transactions, transaction_id)
        if tx is None:
            return None

        self._transactions.insert(0, tx)
        self._persist("transactions")
        self._persist("deleted_transactions")

        if self._audit:
            self._audit.log_transaction_changed(AuditEventType.TRANSACTION_RESTORED, transaction_id)
        return tx.model_copy()

    def purge(self, transaction_id: str) -> bool:
        """Permanently remove a deleted transaction. False when absent."""
        tx = self._take(self._deleted_transactions, transaction_id)
        if tx is None:
            return False

        self._persist("deleted_transactions")

        if self._audit:
            self._audit.log_transaction_changed(AuditEventType.TRANSACTION_PURGED, transaction_id)
        return True

    # =========================================================================
    # BACKUP / RESTORE
    # =========================================================================

    def _counts(self) -> dict[str, int]:
        return {name: len(getattr(self, f"_{name}")) for name in STORAGE_KEYS}

    def export_snapshot(self) -> BackupSnapshot:
        snapshot = build_snapshot(
            investors=self._investors,
            properties=self._properties,
            cards=self._cards,
            transactions=self._transactions,
            deleted_transactions=self._deleted_transactions,
        )
        if self._audit:
            self._audit.log_backup_exported(self._counts())
        return snapshot

    def import_snapshot(self, raw: Union[BackupSnapshot, dict]) -> BackupSnapshot:
        """
        Replace every collection from a backup.

        All-or-nothing: on SnapshotValidationError nothing is changed.
        """
        try:
            snapshot = validate_snapshot(raw, self._today)
        except SnapshotValidationError as e:
            logger.warning("backup_rejected", problems=e.problems)
            if self._audit:
                self._audit.log_backup_rejected(e.problems)
            raise

        self.replace_all(
            investors=snapshot.investors,
            properties=snapshot.properties,
            cards=snapshot.cards,
            transactions=snapshot.transactions,
            deleted_transactions=snapshot.deleted_transactions,
        )
        if self._audit:
            self._audit.log_backup_imported(self._counts(), snapshot.version)
        return snapshot

    def replace_all(
        self,
        investors: list[Investor],
        properties: list[str],
        cards: list[Card],
        transactions: list[Transaction],
        deleted_transactions: list[Transaction],
    ) -> None:
        """Swap in all five collections, then persist each."""
        self._investors = [i.model_copy() for i in investors]
        self._properties = list(dict.fromkeys(properties))
        self._cards = [c.model_copy() for c in cards]
        self._transactions = [t.model_copy() for t in transactions]
        self._deleted_transactions = [t.model_copy() for t in deleted_transactions]

        for name in STORAGE_KEYS:
            self._persist(name)
