"""
Shared fixtures.

Every test runs against in-memory or temp-directory storage.
No real API calls in tests.
"""

from datetime import date

import pytest

from estateflow.audit import AuditLogger
from estateflow.ledger import STORAGE_KEYS, RecordStore
from estateflow.models.audit import AuditEvent
from estateflow.models.ledger import Card, Investor, Transaction
from estateflow.services.storage import AuditStorageInterface, InMemoryBlobStore


TODAY = date(2024, 3, 15)


class RecordingAuditStorage(AuditStorageInterface):
    """Audit storage that keeps events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def store(blob_store, audit_logger):
    """Store seeded with the default dataset."""
    store = RecordStore(blob_store, audit_logger=audit_logger, today=lambda: TODAY)
    store.load()
    return store


@pytest.fixture
def empty_store():
    """Store whose five collections were persisted empty."""
    blobs = InMemoryBlobStore({key: "[]" for key in STORAGE_KEYS.values()})
    store = RecordStore(blobs, today=lambda: TODAY)
    store.load()
    return store


@pytest.fixture
def make_transaction():
    def _make(**overrides) -> Transaction:
        data = {
            "date": date(2024, 1, 5),
            "vendor": "Coffee Inc",
            "description": "Beans for the office",
            "amount": "12.50",
            "category": "Supplies",
            "card_id": "card1",
            "investor_id": "investor1",
            "property": "Skyline Towers",
        }
        data.update(overrides)
        return Transaction(**data)
    return _make


@pytest.fixture
def investor():
    return Investor(id="inv-a", name="Alice Smith", email="alice@example.com")


@pytest.fixture
def card():
    return Card(
        id="card-a",
        card_name="Alice - Skyline",
        investor_id="inv-a",
        property="Skyline Towers",
        spend_limit_monthly="100",
        last4_digits="1234",
    )
