"""
Tests for CSV transaction import and export.
"""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from estateflow.ledger import (
    TransactionImportError,
    parse_transactions_csv,
    transactions_to_csv,
)
from estateflow.models.ledger import SourceType


HEADER = "Property,Date,Vendor,Description,Amount,Category,Unit Num,Last 4 Digits of the Card"


def import_text(*rows: str) -> str:
    return "\n".join([HEADER, *rows])


class TestParseTransactionsCsv:
    """Tests for parse_transactions_csv()."""

    def test_valid_row(self, card):
        """Test that a row becomes an unreconciled imported transaction."""
        text = import_text("Wrong Place,01/15/2024,Home Depot,Lumber,250.75,Repairs,4B,1234")
        result = parse_transactions_csv(text, [card])

        assert result.imported_count == 1
        assert result.skipped_count == 0
        tx = result.transactions[0]
        assert tx.date == date(2024, 1, 15)
        assert tx.vendor == "Home Depot"
        assert tx.amount == Decimal("250.75")
        assert tx.unit_number == "4B"
        assert tx.source_type == SourceType.IMPORT
        assert tx.reconciled is False

    def test_card_owner_and_property_inherited(self, card):
        """Test that the card, not the file, decides investor and property."""
        text = import_text("Wrong Place,01/15/2024,Home Depot,Lumber,250.75,Repairs,,1234")
        tx = parse_transactions_csv(text, [card]).transactions[0]
        assert tx.card_id == "card-a"
        assert tx.investor_id == "inv-a"
        assert tx.property == "Skyline Towers"
        assert tx.unit_number is None

    def test_iso_and_day_first_dates(self, card):
        """Test the other accepted date layouts."""
        text = import_text(
            "P,2024-01-15,A,,1,Repairs,,1234",
            "P,25/01/2024,B,,1,Repairs,,1234",
        )
        dates = [t.date for t in parse_transactions_csv(text, [card]).transactions]
        assert dates == [date(2024, 1, 15), date(2024, 1, 25)]

    def test_blank_category_defaults_to_other(self, card):
        """Test the category fallback."""
        text = import_text("P,01/15/2024,Vendor,,5.00,,,1234")
        assert parse_transactions_csv(text, [card]).transactions[0].category == "Other"

    @pytest.mark.parametrize("row", [
        "P,01/15/2024,Vendor,,5.00,Repairs,,9999",       # unknown card
        "P,not-a-date,Vendor,,5.00,Repairs,,1234",       # bad date
        "P,01/15/2024,Vendor,,abc,Repairs,,1234",        # bad amount
        "P,01/15/2024,Vendor,,0,Repairs,,1234",          # zero amount
        "P,01/15/2024,Vendor,,-5.00,Repairs,,1234",      # negative amount
        "P,01/15/2024,,,5.00,Repairs,,1234",             # missing vendor
        "P,01/15/2024,Vendor,,5.00",                     # short row
        "P,01/15/2024," + "V" * 101 + ",,5.00,Repairs,,1234",  # vendor too long
    ])
    def test_bad_rows_are_skipped(self, card, row):
        """Test that each kind of bad row is skipped and counted."""
        result = parse_transactions_csv(import_text(row), [card])
        assert result.imported_count == 0
        assert result.skipped_count == 1

    def test_mixed_file(self, card):
        """Test that good rows survive bad neighbours."""
        text = import_text(
            "P,01/15/2024,Good,,5.00,Repairs,,1234",
            "P,01/15/2024,Bad,,5.00,Repairs,,0000",
            "P,01/16/2024,Also good,,6.00,Repairs,,1234",
        )
        result = parse_transactions_csv(text, [card])
        assert [t.vendor for t in result.transactions] == ["Good", "Also good"]
        assert result.skipped_count == 1

    def test_cards_without_digits_never_match(self, card):
        """Test that a card with no last4 digits is not found."""
        bare = card.model_copy(update={"last4_digits": None})
        result = parse_transactions_csv(import_text("P,01/15/2024,V,,5.00,R,,1234"), [bare])
        assert result.imported_count == 0

    def test_header_only_file_rejected(self, card):
        """Test that a file needs at least one data row."""
        with pytest.raises(TransactionImportError):
            parse_transactions_csv(HEADER, [card])
        with pytest.raises(TransactionImportError):
            parse_transactions_csv("", [card])


class TestTransactionsToCsv:
    """Tests for transactions_to_csv()."""

    def rows(self, text: str) -> list[list[str]]:
        return list(csv.reader(io.StringIO(text)))

    def test_empty_input(self, investor, card):
        """Test that no transactions give an empty string."""
        assert transactions_to_csv([], [investor], [card]) == ""

    def test_row_formatting(self, investor, card, make_transaction):
        """Test display names, amounts and the Yes/No column."""
        tx = make_transaction(
            card_id="card-a", investor_id="inv-a", reconciled=True, unit_number="4B",
            description='Beans, "dark roast"',
        )
        rows = self.rows(transactions_to_csv([tx], [investor], [card]))

        assert rows[0][0] == "Date"
        assert rows[0][-1] == "Reconciled (Yes/No)"
        assert rows[1] == [
            "2024-01-05",
            "Coffee Inc",
            'Beans, "dark roast"',
            "12.50",
            "Supplies",
            "Alice Smith",
            "Skyline Towers",
            "4B",
            "Alice - Skyline (****1234)",
            "",
            "Yes",
        ]

    def test_quoting_in_raw_text(self, investor, card, make_transaction):
        """Test that fields with commas and quotes are quoted and escaped."""
        tx = make_transaction(description='Beans, "dark roast"')
        text = transactions_to_csv([tx], [investor], [card])
        assert '"Beans, ""dark roast"""' in text
        assert not text.endswith("\n")

    def test_dangling_references_fall_back_to_ids(self, make_transaction):
        """Test that unknown investors and cards show their raw ids."""
        tx = make_transaction(reconciled=False)
        row = self.rows(transactions_to_csv([tx], [], []))[1]
        assert row[5] == "investor1"
        assert row[8] == "card1"
        assert row[10] == "No"

    def test_long_receipt_uri_is_truncated(self, make_transaction):
        """Test that inline image data is shortened."""
        uri = "data:image/png;base64," + "A" * 200
        tx = make_transaction(receipt_image_uri=uri)
        row = self.rows(transactions_to_csv([tx], [], []))[1]
        assert row[9] == uri[:50] + "... (DataURI)"

    def test_short_receipt_uri_kept(self, make_transaction):
        """Test that a normal link is exported as is."""
        tx = make_transaction(receipt_image_uri="https://example.com/r.png")
        row = self.rows(transactions_to_csv([tx], [], []))[1]
        assert row[9] == "https://example.com/r.png"
