"""
Tests for the reconciliation session.
"""

from datetime import date

import pytest

from estateflow.reconciliation import (
    ReconciliationError,
    ReconciliationSession,
    parse_statement,
)


STATEMENT = "\n".join([
    "Date,Description,Amount",
    "01/15/2024,Coffee Shop,12.50",
    "01/20/2024,Staples Store,45.50",
    "01/21/2024,Unknown Merchant,9.99",
])


@pytest.fixture
def session(empty_store, make_transaction):
    empty_store.add_transactions([
        make_transaction(id="c1", date=date(2024, 1, 14), vendor="Coffee Shop", amount="12.50"),
        make_transaction(id="c2", date=date(2024, 1, 16), vendor="Coffee Shop", amount="12.50"),
        make_transaction(id="s1", date=date(2024, 1, 20), vendor="Staples", amount="45.50"),
    ])
    return ReconciliationSession(empty_store, parse_statement(STATEMENT).lines)


class TestCandidates:
    """Tests for candidate lookup within a session."""

    def test_candidates_per_line(self, session):
        """Test the candidate list for each statement line."""
        assert [t.id for t in session.candidates_for("stmt-0")] == ["c1", "c2"]
        assert [t.id for t in session.candidates_for("stmt-1")] == ["s1"]
        assert session.candidates_for("stmt-2") == []

    def test_unknown_line_has_no_candidates(self, session):
        """Test that an unknown line id returns nothing."""
        assert session.candidates_for("stmt-99") == []


class TestConfirmMatch:
    """Tests for confirm_match()."""

    def test_confirm_marks_only_the_chosen_transaction(self, session, empty_store):
        """Test that the other candidates are left untouched."""
        reconciled = session.confirm_match("stmt-0", "c2")

        assert reconciled.id == "c2"
        assert reconciled.reconciled is True
        assert empty_store.get_transaction("c2").reconciled is True
        assert empty_store.get_transaction("c1").reconciled is False
        assert session.get_line("stmt-0").is_reconciled is True

    def test_matched_line_has_no_candidates(self, session):
        """Test that a matched line drops out of candidate lookup."""
        session.confirm_match("stmt-0", "c1")
        assert session.candidates_for("stmt-0") == []

    def test_cannot_match_line_twice(self, session):
        """Test that a matched line rejects another confirmation."""
        session.confirm_match("stmt-0", "c1")
        with pytest.raises(ReconciliationError, match="already matched"):
            session.confirm_match("stmt-0", "c2")

    def test_non_candidate_rejected(self, session, empty_store):
        """Test that only a current candidate can be confirmed."""
        with pytest.raises(ReconciliationError, match="not a candidate"):
            session.confirm_match("stmt-0", "s1")
        assert empty_store.get_transaction("s1").reconciled is False

    def test_unknown_line_rejected(self, session):
        """Test confirming against an unknown statement line."""
        with pytest.raises(ReconciliationError, match="Unknown statement line"):
            session.confirm_match("stmt-42", "c1")

    def test_reconciled_transaction_not_offered_again(self, empty_store, make_transaction):
        """Test that a transaction used for one line is not a candidate for another."""
        empty_store.add_transaction(
            make_transaction(id="t", date=date(2024, 1, 15), vendor="Coffee Shop", amount="12.50")
        )
        text = "Date,Description,Amount\n01/15/2024,Coffee Shop,12.50\n01/16/2024,Coffee Shop,12.50"
        session = ReconciliationSession(empty_store, parse_statement(text).lines)

        session.confirm_match("stmt-0", "t")
        assert session.candidates_for("stmt-1") == []
        with pytest.raises(ReconciliationError):
            session.confirm_match("stmt-1", "t")

    def test_deleted_transaction_is_not_a_candidate(self, session, empty_store):
        """Test that soft-deleted transactions drop out of matching."""
        empty_store.soft_delete("s1")
        assert session.candidates_for("stmt-1") == []


class TestSummary:
    """Tests for session progress reporting."""

    def test_summary(self, session):
        """Test matched and unmatched counts."""
        session.confirm_match("stmt-1", "s1")
        summary = session.summary()

        assert summary.total_lines == 3
        assert summary.matched_lines == 1
        assert summary.unmatched_lines == 2
        assert summary.matches == {"stmt-1": "s1"}
        assert [line.id for line in session.unmatched_lines()] == ["stmt-0", "stmt-2"]

    def test_lines_are_copies(self, session):
        """Test that editing a returned line does not change the session."""
        line = session.lines[0]
        line.is_reconciled = True
        assert session.get_line(line.id).is_reconciled is False
