"""
Tests for duplicate detection.
"""

from datetime import date

from estateflow.ledger import detect_duplicates, group_duplicates


class TestDetectDuplicates:
    """Tests for detect_duplicates()."""

    def test_same_signature_is_flagged(self, make_transaction):
        """Test that date, vendor (any case) and amount make a signature."""
        a = make_transaction(id="a", vendor="Home Depot", amount="250.75")
        b = make_transaction(id="b", vendor="home depot", amount=250.75)
        c = make_transaction(id="c", vendor="Home Depot", amount="250.76")
        assert detect_duplicates([a, b, c]) == {"a", "b"}

    def test_different_dates_are_not_duplicates(self, make_transaction):
        """Test that the date is part of the signature."""
        a = make_transaction(id="a")
        b = make_transaction(id="b", date=date(2024, 1, 6))
        assert detect_duplicates([a, b]) == set()

    def test_description_and_card_are_ignored(self, make_transaction):
        """Test that only date, vendor and amount matter."""
        a = make_transaction(id="a", description="one", card_id="card1")
        b = make_transaction(id="b", description="two", card_id="card2")
        assert detect_duplicates([a, b]) == {"a", "b"}

    def test_confirmed_transaction_is_excluded(self, make_transaction):
        """Test that confirming one of a pair clears both flags."""
        a = make_transaction(id="a")
        b = make_transaction(id="b", is_duplicate_confirmed=True)
        assert detect_duplicates([a, b]) == set()

    def test_confirming_one_of_three(self, make_transaction):
        """Test that the other two members of a triple stay flagged."""
        a = make_transaction(id="a")
        b = make_transaction(id="b", is_duplicate_confirmed=True)
        c = make_transaction(id="c")
        assert detect_duplicates([a, b, c]) == {"a", "c"}

    def test_order_independent(self, make_transaction):
        """Test that the result does not depend on input order."""
        txs = [
            make_transaction(id="a"),
            make_transaction(id="b", vendor="Other"),
            make_transaction(id="c"),
        ]
        assert detect_duplicates(txs) == detect_duplicates(list(reversed(txs)))

    def test_idempotent(self, make_transaction):
        """Test that detecting twice gives the same answer."""
        txs = [make_transaction(id="a"), make_transaction(id="b")]
        assert detect_duplicates(txs) == detect_duplicates(txs)

    def test_empty(self):
        """Test that an empty ledger has no duplicates."""
        assert detect_duplicates([]) == set()


class TestGroupDuplicates:
    """Tests for group_duplicates()."""

    def test_groups_in_first_seen_order(self, make_transaction):
        """Test grouping by signature."""
        txs = [
            make_transaction(id="a"),
            make_transaction(id="x", vendor="Staples", amount="5"),
            make_transaction(id="b"),
            make_transaction(id="y", vendor="STAPLES", amount="5.00"),
            make_transaction(id="lonely", vendor="Lonely"),
        ]
        assert group_duplicates(txs) == [["a", "b"], ["x", "y"]]
