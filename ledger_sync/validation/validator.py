"""
Transaction Validator

DESIGN DECISION: Validation flags, it never rejects.
Every check produces a warning that is attached to the stored
transaction for later review; amount and type are never changed.

Checks, in output order:
1. Amount above the high-value threshold
2. Amount exactly zero
3. Generic category on a non-trivial amount
4. Description too short
5. Expense whose description reads like an internal transfer

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ledger_sync.config.settings import ValidationSettings, get_settings
from ledger_sync.models.transaction import CandidateTransaction, TransactionType


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'suspicious_value', 'too_short')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class TransactionValidator:
    """
    Pure warning generator over candidate transactions.

    Thresholds and vocabularies come from ValidationSettings.
    """

    def __init__(self, settings: Optional[ValidationSettings] = None):
        self._settings = settings or get_settings().validation

    def find_issues(self, candidate: CandidateTransaction) -> list[ValidationIssue]:
        """
        Run every check over `candidate`.

        Returns:
            Issues in a fixed, documented order
        """
        issues: list[ValidationIssue] = []
        amount = candidate.amount

        high = Decimal(str(self._settings.high_amount_threshold))
        if amount > high:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"High amount (> {high:.2f})",
            ))

        if amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="zero_amount",
                message="Amount is zero",
            ))

        minor = Decimal(str(self._settings.generic_category_amount_threshold))
        if (
            candidate.category
            and candidate.category.strip().lower() in self._settings.generic_categories_list
            and amount > minor
        ):
            issues.append(ValidationIssue(
                field="category",
                issue_type="generic_category",
                message=f"Generic category '{candidate.category}' for a relevant amount",
            ))

        description = (candidate.description or "").strip().lower()
        if len(description) < self._settings.min_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_short",
                message="Description too short",
            ))

        if candidate.type == TransactionType.EXPENSE and any(
            keyword in description
            for keyword in self._settings.internal_transfer_keywords_list
        ):
            issues.append(ValidationIssue(
                field="type",
                issue_type="possible_transfer",
                message="Possible transfer classified as expense",
            ))

        return issues

    def validate(self, candidate: CandidateTransaction) -> list[str]:
        """Warnings for `candidate`, as human-readable strings."""
        return [issue.message for issue in self.find_issues(candidate)]
