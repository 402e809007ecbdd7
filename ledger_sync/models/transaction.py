"""
Core Transaction Models for Ledger Sync

These models define the strict schemas for every transaction flowing
through the engine, whichever source produced it (SMS, notification,
bank API, manual entry, reconciliation).

They are designed to:
1. Enforce the amount/transfer/adjustment invariants at construction
2. Make status transitions explicit (pending -> confirmed | ignored)
3. Be serializable for the persistence collaborator and for logging

DESIGN DECISION: Amounts are always non-negative Decimals.
Direction lives in the transaction type (and, for adjustments, in
`direction`), never in the sign of the amount.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> dt.datetime:
    """Timezone-aware current time, used for every model timestamp."""
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Kind of money movement."""
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"  # Reconciliation entry, never parsed from text


class TransactionStatus(str, Enum):
    """
    Review status of an ingested transaction.

    CRITICAL: Only PENDING may change, and only to CONFIRMED or IGNORED.
    Both of those are terminal.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IGNORED = "ignored"


class SourceType(str, Enum):
    """Where the transaction signal came from."""
    SMS = "sms"
    NOTIFICATION = "notification"
    MANUAL = "manual"
    BANK = "bank"


class ConfirmationType(str, Enum):
    """Why a pending transaction needs an explicit user decision."""
    TRANSFER_OR_EXPENSE = "transfer_or_expense"
    NORMAL = "normal"


class AdjustmentDirection(str, Enum):
    """Whether a reconciliation adjustment raises or lowers the balance."""
    INCREASE = "increase"
    DECREASE = "decrease"


ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.CONFIRMED, TransactionStatus.IGNORED}
    ),
    TransactionStatus.CONFIRMED: frozenset(),
    TransactionStatus.IGNORED: frozenset(),
}


class InvalidTransitionError(Exception):
    """A status change that the lifecycle does not allow."""

    def __init__(self, current: TransactionStatus, requested: TransactionStatus):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move transaction from {current.value} to {requested.value}"
        )


# =============================================================================
# CORE TRANSACTION MODELS
# =============================================================================

class CandidateTransaction(BaseModel):
    """
    A parsed transaction that has not been persisted yet.

    Produced by the pattern extractor (SMS / notification) or by the bank
    mapper. It has no identity and no hash: the ingestion flow assigns both.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount; direction is carried by `type`"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Merchant, counterparty or free-text description"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction (no time component)"
    )
    account: str = Field(
        ...,
        min_length=1,
        description="Local account identifier"
    )
    to_account: Optional[str] = Field(
        default=None,
        description="Destination account (transfers only)"
    )
    category: Optional[str] = None

    # Provenance
    source_type: SourceType
    source_app: Optional[str] = Field(
        default=None,
        description="Originating app or rule set, e.g. 'revolut'"
    )
    bank_transaction_id: Optional[str] = Field(
        default=None,
        description="Provider-assigned id, stable across pending/booked"
    )
    raw_text: Optional[str] = Field(
        default=None,
        description="Original SMS/notification text or provider payload"
    )

    # Ambiguity handling
    requires_confirmation: bool = False
    confirmation_type: Optional[ConfirmationType] = None

    # Adjustments only
    direction: Optional[AdjustmentDirection] = None

    @model_validator(mode='after')
    def validate_type_requirements(self) -> 'CandidateTransaction':
        """Enforce per-type required fields."""
        if self.type == TransactionType.TRANSFER and not self.to_account:
            raise ValueError("Transfer requires a destination account")
        if self.type == TransactionType.ADJUSTMENT and self.direction is None:
            raise ValueError("Adjustment requires a direction")
        return self


class AutoTransaction(CandidateTransaction):
    """
    A transaction accepted into the store.

    Created with status PENDING; mutated only by confirm/ignore or by a
    transfer-vs-expense type correction.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    source_hash: str = Field(
        ...,
        min_length=1,
        description="Idempotency key, see ledger_sync.dedup.hashing"
    )
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        description="Review status"
    )
    validation_warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings attached at ingestion"
    )
    created_at: dt.datetime = Field(
        default_factory=utc_now,
        description="When the transaction was stored"
    )
    confirmed_at: Optional[dt.datetime] = Field(
        default=None,
        description="When the transaction was confirmed or ignored"
    )
    linked_transaction_id: Optional[UUID] = Field(
        default=None,
        description="Related transaction recorded by the collaborator, if any"
    )

    def can_transition_to(self, status: TransactionStatus) -> bool:
        """Check the status lifecycle."""
        return status in ALLOWED_TRANSITIONS[self.status]

    def with_status(self, status: TransactionStatus, at: Optional[dt.datetime] = None) -> 'AutoTransaction':
        """
        Return a copy moved to `status`.

        Raises:
            InvalidTransitionError: If the lifecycle forbids the change
        """
        if not self.can_transition_to(status):
            raise InvalidTransitionError(self.status, status)
        return self.model_copy(
            update={
                "status": status,
                "confirmed_at": at or utc_now(),
                "requires_confirmation": False,
            }
        )

    def balance_effect(self, account_id: str) -> Decimal:
        """
        Signed effect of this transaction on `account_id`'s balance.

        Expense subtracts, income adds, adjustment follows its direction,
        transfer subtracts on the source leg and adds on the destination leg.
        """
        effect = Decimal("0")
        if self.type == TransactionType.TRANSFER:
            if self.account == account_id:
                effect -= self.amount
            if self.to_account == account_id:
                effect += self.amount
            return effect

        if self.account != account_id:
            return effect

        if self.type == TransactionType.EXPENSE:
            return -self.amount
        if self.type == TransactionType.INCOME:
            return self.amount
        if self.direction == AdjustmentDirection.DECREASE:
            return -self.amount
        return self.amount


# =============================================================================
# COLLABORATOR-FACING MODELS
# =============================================================================

class LocalAccount(BaseModel):
    """A local account as known to the UI collaborator."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="")


class IngestionStatus(str, Enum):
    """What happened to an inbound signal."""
    ACCEPTED = "accepted"          # Persisted as pending
    UNRECOGNIZED = "unrecognized"  # No rule matched, or amount unreliable
    DUPLICATE = "duplicate"        # Hash already known, silently dropped


class IngestionOutcome(BaseModel):
    """Result of feeding one signal through the ingestion pipeline."""

    status: IngestionStatus
    transaction: Optional[AutoTransaction] = None
    source_hash: Optional[str] = None
    reason: Optional[str] = Field(
        default=None,
        description="Short diagnostic for unrecognized/duplicate outcomes"
    )

    @property
    def accepted(self) -> bool:
        return self.status == IngestionStatus.ACCEPTED


class TransactionStats(BaseModel):
    """Counts per status, for badges and summaries."""

    pending: int = Field(default=0, ge=0)
    confirmed: int = Field(default=0, ge=0)
    ignored: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.pending + self.confirmed + self.ignored
