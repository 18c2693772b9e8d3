"""
Ledger Query Engine

DESIGN DECISION: Queries are DETERMINISTIC reads over the record store.
They never mutate anything and never estimate: every figure is a sum of
stored transaction amounts.

Lookups that miss (an investor or card id that no longer exists) do not
raise. Display helpers return "N/A" instead.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from estateflow.ledger.defaults import months_back
from estateflow.ledger.store import RecordStore
from estateflow.models.ledger import Transaction
from estateflow.models.query import (
    BudgetAlert,
    CategorySpend,
    LedgerQuery,
    MonthlySpend,
    PropertySpend,
)


UNKNOWN_LABEL = "N/A"

_MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                 "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _matches_search(tx: Transaction, term: str) -> bool:
    term = term.lower()
    return (
        term in tx.vendor.lower()
        or term in tx.description.lower()
        or term in (tx.unit_number or "").lower()
        or term in tx.category.lower()
    )


class LedgerQueryExecutor:
    """
    Runs listing, totals and alert queries against a RecordStore.

    GUARANTEES:
    - Only returns real data from the store
    - Empty results are empty lists, never errors
    """

    def __init__(self, store: RecordStore, today: Optional[Callable[[], date]] = None):
        self._store = store
        self._today = today or date.today

    # =========================================================================
    # LISTING
    # =========================================================================

    def filter_transactions(
        self,
        query: LedgerQuery,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[Transaction]:
        """Apply the query's filters, then its sort (stable; ledger order otherwise)."""
        results = self._store.transactions if transactions is None else list(transactions)

        if query.investor_id:
            results = [t for t in results if t.investor_id == query.investor_id]
        if query.property:
            results = [t for t in results if t.property == query.property]
        if query.card_id:
            results = [t for t in results if t.card_id == query.card_id]
        if query.date_from:
            results = [t for t in results if t.date >= query.date_from]
        if query.date_to:
            results = [t for t in results if t.date <= query.date_to]
        if query.search:
            results = [t for t in results if _matches_search(t, query.search)]

        if query.sort_key:
            key = query.sort_key

            def sort_value(tx: Transaction):
                value = getattr(tx, key)
                return value.lower() if isinstance(value, str) else value

            results.sort(key=sort_value, reverse=query.sort_order == "desc")

        return results

    # =========================================================================
    # TOTALS
    # =========================================================================

    def total_spend(self, transactions: Optional[list[Transaction]] = None) -> Decimal:
        transactions = self._store.transactions if transactions is None else transactions
        return sum((t.amount for t in transactions), Decimal("0.00"))

    def spend_this_month(self, transactions: Optional[list[Transaction]] = None) -> Decimal:
        today = self._today()
        transactions = self._store.transactions if transactions is None else transactions
        return self.total_spend([
            t for t in transactions
            if t.date.year == today.year and t.date.month == today.month
        ])

    def spend_by_property(
        self,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[PropertySpend]:
        """Totals per property, highest first."""
        transactions = self._store.transactions if transactions is None else transactions
        totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for tx in transactions:
            if tx.property:
                totals[tx.property] += tx.amount
        return sorted(
            (PropertySpend(property=name, total=total) for name, total in totals.items()),
            key=lambda row: row.total,
            reverse=True,
        )

    def spend_by_category(
        self,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[CategorySpend]:
        """Totals per category, highest first."""
        transactions = self._store.transactions if transactions is None else transactions
        totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for tx in transactions:
            totals[tx.category] += tx.amount
        return sorted(
            (CategorySpend(category=name, total=total) for name, total in totals.items()),
            key=lambda row: row.total,
            reverse=True,
        )

    def monthly_spend(
        self,
        months: int = 6,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[MonthlySpend]:
        """Spend for each of the last `months` calendar months, oldest first."""
        transactions = self._store.transactions if transactions is None else transactions
        today = self._today()

        totals: dict[tuple[int, int], Decimal] = defaultdict(lambda: Decimal("0.00"))
        for tx in transactions:
            totals[(tx.date.year, tx.date.month)] += tx.amount

        series = []
        for offset in range(months - 1, -1, -1):
            month_start = months_back(today.replace(day=1), offset)
            key = (month_start.year, month_start.month)
            series.append(MonthlySpend(
                year=month_start.year,
                month=month_start.month,
                label=f"{_MONTH_LABELS[month_start.month - 1]} {month_start.year}",
                total=totals[key],
            ))
        return series

    def budget_alerts(self) -> list[BudgetAlert]:
        """Cards whose spend in the current month is over their monthly limit."""
        today = self._today()
        transactions = self._store.transactions
        alerts = []

        for card in self._store.cards:
            if not card.spend_limit_monthly:
                continue
            spent = self.total_spend([
                t for t in transactions
                if t.card_id == card.id
                and t.date.year == today.year
                and t.date.month == today.month
            ])
            if spent > card.spend_limit_monthly:
                alerts.append(BudgetAlert(
                    card_id=card.id,
                    card_label=card.label,
                    spent=spent,
                    limit=card.spend_limit_monthly,
                ))
        return alerts

    # =========================================================================
    # DISPLAY LABELS
    # =========================================================================

    def investor_name(self, investor_id: str) -> str:
        investor = self._store.get_investor(investor_id)
        return investor.name if investor else UNKNOWN_LABEL

    def card_label(self, card_id: str) -> str:
        card = self._store.get_card(card_id)
        return card.label if card else UNKNOWN_LABEL
