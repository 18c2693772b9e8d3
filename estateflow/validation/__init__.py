"""Receipt validation package."""

from estateflow.validation.validator import ReceiptValidator

__all__ = ["ReceiptValidator"]
