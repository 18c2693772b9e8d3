"""
Two-Stage Receipt Validation

DESIGN DECISION: A receipt draft (OCR output, possibly edited by the
user) is checked in two stages before it may become a transaction:

STAGE 1 - SCHEMA VALIDATION:
- Amount present and greater than zero
- Vendor and date present
- OCR confidence

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Suspiciously old dates
- Vendor sanity checks
- Potential duplicate of an existing ledger entry

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Optional

from estateflow.config import LedgerSettings, get_settings
from estateflow.ledger.duplicates import transaction_signature
from estateflow.ledger.store import RecordStore
from estateflow.models.ledger import ParsedReceipt, to_cents
from estateflow.models.validation import ValidationIssue, ValidationResult


class ReceiptValidator:
    """
    Validates receipt drafts through a two-stage pipeline.

    Stage 1: Schema validation (needs nothing else)
    Stage 2: Semantic validation (uses the store for duplicate checks)
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        settings: Optional[LedgerSettings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize validator.

        Args:
            store: Record store for duplicate checking.
                   If None, duplicate checking is skipped.
        """
        self._store = store
        self._settings = settings or get_settings().ledger
        self._today = today or date.today

    def _validate_schema(
        self,
        draft: ParsedReceipt,
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if draft.amount <= Decimal("0"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Check the total on the receipt and enter it manually",
            ))

        if not draft.vendor:
            issues.append(ValidationIssue(
                field="vendor",
                issue_type="missing",
                message="Vendor name was not extracted",
                severity="warning",
                suggested_fix="You'll need to enter the vendor name manually",
            ))

        if draft.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Receipt date was not extracted",
                severity="warning",
                suggested_fix="You'll need to enter the date manually",
            ))

        if draft.confidence_score < 0.5:
            issues.append(ValidationIssue(
                field="confidence_score",
                issue_type="low_confidence",
                message=f"Extraction confidence is low ({draft.confidence_score:.0%})",
                severity="warning",
                suggested_fix="Please review all fields carefully",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: ParsedReceipt,
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []
        today = self._today()

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if draft.date and draft.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Receipt date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        min_reasonable_date = today - timedelta(days=self._settings.max_receipt_age_days)
        if draft.date and draft.date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Receipt date ({draft.date}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date was read correctly",
            ))

        # Vendor name should not be mostly digits/symbols
        if draft.vendor:
            alpha_count = sum(1 for c in draft.vendor if c.isalpha())
            if alpha_count / len(draft.vendor) < 0.3:
                issues.append(ValidationIssue(
                    field="vendor",
                    issue_type="suspicious_value",
                    message="Vendor name looks unusual (too many numbers/symbols)",
                    severity="warning",
                    suggested_fix="Please verify the vendor name",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _check_duplicates(self, draft: ParsedReceipt) -> list[ValidationIssue]:
        if self._store is None or not draft.vendor or draft.date is None:
            return []

        signature = (draft.date, draft.vendor.lower(), to_cents(draft.amount))
        for tx in self._store.transactions:
            if transaction_signature(tx) == signature:
                return [ValidationIssue(
                    field="duplicate",
                    issue_type="potential_duplicate",
                    message=(
                        f"A {draft.vendor} transaction of {draft.amount:.2f} "
                        f"on {draft.date} already exists"
                    ),
                    severity="warning",
                    suggested_fix="Please verify this isn't a duplicate entry",
                )]
        return []

    def validate(
        self,
        draft: ParsedReceipt,
        check_duplicates: bool = True,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Stage 2 only runs when stage 1 found no errors.
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft)
            all_issues.extend(semantic_issues)

            if check_duplicates:
                all_issues.extend(self._check_duplicates(draft))

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            can_proceed_with_review=not any(i.severity == "error" for i in all_issues),
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Plain-language summary of a validation result."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed! Please review the details below."

        lines = []

        if not result.schema_valid:
            lines.append("❌ Some required information is missing or invalid:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.can_proceed_with_review:
            lines.append("You can still proceed, but please review carefully.")
        else:
            lines.append("Please fix the issues above before continuing.")

        return "\n".join(lines)
