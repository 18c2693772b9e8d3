"""
Default dataset seeded into an empty (or corrupted) ledger.

Transaction dates are relative to the day the store is loaded so the
dashboard always has recent activity to show.
"""

import calendar
from datetime import date, timedelta
from typing import Optional

from estateflow.models.ledger import Card, Investor, SourceType, Transaction


DEFAULT_PROPERTIES = [
    "Skyline Towers",
    "Oceanview Villas",
    "Mountain Retreat",
    "Downtown Lofts",
    "Suburban Homes",
]


def months_back(day: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the month's last day."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def default_investors() -> list[Investor]:
    return [
        Investor(id="investor1", name="Gualter", email="gualter@example.com"),
        Investor(id="investor2", name="Alice Smith", email="alice@example.com"),
        Investor(id="investor3", name="Bob Johnson", email="bob@example.com"),
    ]


def default_properties() -> list[str]:
    return list(DEFAULT_PROPERTIES)


def default_cards() -> list[Card]:
    return [
        Card(id="card1", card_name="Gualter - Skyline - Card 1", investor_id="investor1",
             property="Skyline Towers", spend_limit_monthly=5000),
        Card(id="card2", card_name="Gualter - Oceanview - Card 1", investor_id="investor1",
             property="Oceanview Villas", spend_limit_monthly=3000),
        Card(id="card3", card_name="Alice - Skyline - Card 1", investor_id="investor2",
             property="Skyline Towers", spend_limit_monthly=4000),
        Card(id="card4", card_name="Bob - Mountain - Card 1", investor_id="investor3",
             property="Mountain Retreat", is_personal=True, spend_limit_monthly=1000),
        Card(id="card5", card_name="Alice - Personal - Card 1", investor_id="investor2",
             property="N/A", is_personal=True),
    ]


def default_transactions(today: Optional[date] = None) -> list[Transaction]:
    today = today or date.today()
    last_month = months_back(today, 1)
    two_months = months_back(today, 2)

    return [
        Transaction(
            id="txn1", date=today - timedelta(days=5), vendor="Home Depot",
            description="Lumber for deck repair", amount="250.75", category="Repairs",
            card_id="card1", investor_id="investor1", property="Skyline Towers",
            receipt_image_uri="https://docs.google.com/receipt1",
            reconciled=True, source_type=SourceType.MANUAL,
        ),
        Transaction(
            id="txn2", date=today - timedelta(days=10), vendor="City Electric",
            description="Monthly electricity bill", amount="120.00", category="Utilities",
            card_id="card2", investor_id="investor1", property="Oceanview Villas",
            reconciled=False, source_type=SourceType.OCR,
        ),
        Transaction(
            id="txn3", date=today - timedelta(days=15), vendor="Staples",
            description="Office supplies", amount="45.50", category="Supplies",
            card_id="card3", investor_id="investor2", property="Skyline Towers",
            receipt_image_uri="https://docs.google.com/receipt2",
            reconciled=True, source_type=SourceType.MANUAL,
        ),
        Transaction(
            id="txn4", date=today - timedelta(days=2), vendor="Local Hardware",
            description="Paint and brushes", amount="78.22", category="Repairs",
            card_id="card1", investor_id="investor1", property="Skyline Towers",
            reconciled=False, source_type=SourceType.OCR,
        ),
        Transaction(
            id="txn5", date=last_month - timedelta(days=5), vendor="Best Buy",
            description="New office monitor", amount="299.99", category="Furnishings",
            card_id="card3", investor_id="investor2", property="Skyline Towers",
            reconciled=True, source_type=SourceType.MANUAL,
        ),
        Transaction(
            id="txn6", date=last_month - timedelta(days=10), vendor="Gas Company",
            description="Monthly gas bill", amount="85.00", category="Utilities",
            card_id="card2", investor_id="investor1", property="Oceanview Villas",
            reconciled=True, source_type=SourceType.IMPORT,
        ),
        Transaction(
            id="txn7", date=two_months - timedelta(days=1), vendor="Cleaning Services Inc.",
            description="Monthly cleaning for common areas", amount="300.00",
            category="Property Management",
            card_id="card1", investor_id="investor1", property="Skyline Towers",
            reconciled=True, source_type=SourceType.MANUAL,
        ),
    ]


def default_deleted_transactions() -> list[Transaction]:
    return []
