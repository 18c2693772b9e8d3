"""
Core Data Models for EstateFlow Ledger

These models define the strict schemas for every record the ledger keeps.
They are designed to:
1. Enforce the ledger invariants at construction time
2. Provide clear validation error messages
3. Serialize to the same camelCase JSON used by the blob store and backups

DESIGN DECISION: Amounts are Decimal quantized to cents.
Float arithmetic never touches persisted money values.
"""

import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


CENTS = Decimal("0.01")

DEFAULT_CATEGORIES = [
    "Repairs",
    "Utilities",
    "Supplies",
    "Mortgage",
    "Insurance",
    "HOA Fees",
    "Property Management",
    "Travel",
    "Marketing",
    "Legal & Professional Fees",
    "Furnishings",
    "Landscaping",
    "Other",
]


def new_id() -> str:
    """Generate an opaque record id."""
    return str(uuid4())


def to_cents(value) -> Decimal:
    """
    Convert a number or numeric string to a Decimal rounded to cents.

    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Amount must be a number, got {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class LedgerModel(BaseModel):
    """Base for persisted records: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_json_dict(self) -> dict:
        """Dump using the persisted (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ENUMS
# =============================================================================

class SourceType(str, Enum):
    """How a transaction entered the ledger."""
    MANUAL = "manual"
    OCR = "ocr"
    IMPORT = "import"


# =============================================================================
# REFERENCE RECORDS
# =============================================================================

class Investor(LedgerModel):
    """An investor who owns cards and properties."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=254)

    @field_validator('email', mode='before')
    @classmethod
    def blank_email_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and ("@" not in v or v.startswith("@") or v.endswith("@")):
            raise ValueError(f"Invalid email address: {v}")
        return v


class Card(LedgerModel):
    """
    A payment card assigned to an investor and a property.

    investor_id is a soft reference: consumers treat an unknown id as "N/A".
    """

    id: str = Field(default_factory=new_id)
    card_name: str = Field(..., min_length=1, max_length=100)
    investor_id: str = Field(..., min_length=1)
    property: Annotated[str, Field(min_length=1, max_length=100)]
    is_personal: bool = False
    spend_limit_monthly: Optional[Decimal] = Field(default=None, gt=0)
    last4_digits: Optional[str] = Field(default=None, pattern=r"^\d{4}$")

    @field_validator('last4_digits', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator('spend_limit_monthly', mode='before')
    @classmethod
    def quantize_limit(cls, v):
        v = _blank_to_none(v)
        if v is None:
            return v
        return to_cents(v)

    @field_serializer('spend_limit_monthly', when_used='json-unless-none')
    def serialize_limit(self, v: Decimal) -> float:
        return float(v)

    @property
    def label(self) -> str:
        """Card name with the masked last four digits when known."""
        if self.last4_digits:
            return f"{self.card_name} (****{self.last4_digits})"
        return self.card_name


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(LedgerModel):
    """
    A single card expense in the ledger.

    CRITICAL: amount is always strictly positive. Construction fails otherwise.
    A transaction lives in exactly one of the active or deleted collections.
    """

    id: str = Field(default_factory=new_id)
    date: datetime.date
    vendor: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    amount: Decimal = Field(..., gt=0, description="Charge amount, 2 fraction digits")
    category: str = Field(default="Other", min_length=1)
    card_id: str
    investor_id: str
    property: str
    unit_number: Optional[str] = None
    receipt_image_uri: Optional[str] = Field(default=None, alias="receiptImageURI")

    # Status flags
    reconciled: bool = False
    source_type: SourceType = SourceType.MANUAL
    is_duplicate_confirmed: bool = False

    @field_validator('amount', mode='before')
    @classmethod
    def quantize_amount(cls, v):
        return to_cents(v)

    @field_validator('source_type', mode='before')
    @classmethod
    def normalize_source_type(cls, v):
        # Older data stored "OCR" in upper case
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('description', mode='before')
    @classmethod
    def none_description_is_empty(cls, v):
        return "" if v is None else v

    @field_validator('unit_number', 'receipt_image_uri', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


# =============================================================================
# RECONCILIATION / OCR / BACKUP
# =============================================================================

class StatementLine(BaseModel):
    """
    One row of an external bank/card statement.

    Ephemeral: exists only for one reconciliation session, never persisted.
    Positive amount = charge, negative = payment or credit.
    """

    id: str
    date: datetime.date
    description: str
    amount: Decimal
    is_reconciled: bool = False


class ParsedReceipt(BaseModel):
    """
    Vendor/amount/date triple extracted from a receipt image.

    This is PROPOSED data. It becomes a Transaction only after the
    user confirms it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    vendor: str = ""
    amount: Decimal = Field(default=Decimal("0.00"))
    date: Optional[datetime.date] = None
    confidence_score: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator('amount', mode='before')
    @classmethod
    def quantize_amount(cls, v):
        if v is None:
            return Decimal("0.00")
        return to_cents(v)


class BackupSnapshot(LedgerModel):
    """The entire record store at one instant."""

    investors: list[Investor] = Field(default_factory=list)
    properties: list[str] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    deleted_transactions: list[Transaction] = Field(default_factory=list)
    timestamp: datetime.datetime
    version: str = Field(..., min_length=1)
