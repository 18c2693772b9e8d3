"""
Query models for the transactions table and the dashboard.
"""

import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


SortKey = Literal["date", "vendor", "amount", "category", "property", "investor_id", "card_id"]


class LedgerQuery(BaseModel):
    """
    Filters and ordering for a transaction listing.

    All filters are optional and combine with AND.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    investor_id: Optional[str] = Field(default=None, description="Only this investor's transactions")
    property: Optional[str] = Field(default=None, description="Only this property")
    card_id: Optional[str] = Field(default=None, description="Only this card")
    date_from: Optional[datetime.date] = Field(default=None, description="Inclusive start date")
    date_to: Optional[datetime.date] = Field(default=None, description="Inclusive end date")
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive match on vendor, description, unit number or category",
    )
    sort_key: Optional[SortKey] = None
    sort_order: Literal["asc", "desc"] = "asc"

    @model_validator(mode='after')
    def validate_date_range(self) -> 'LedgerQuery':
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        return self


class PropertySpend(BaseModel):
    property: str
    total: Decimal


class CategorySpend(BaseModel):
    category: str
    total: Decimal


class MonthlySpend(BaseModel):
    """Total spend for one calendar month."""
    year: int
    month: int
    label: str = Field(..., description="e.g. 'Jan 2024'")
    total: Decimal


class BudgetAlert(BaseModel):
    """A card whose spend this month exceeds its monthly limit."""
    card_id: str
    card_label: str
    spent: Decimal
    limit: Decimal

    @property
    def message(self) -> str:
        return f"Spent ${self.spent:.2f} of ${self.limit:.2f} limit."
