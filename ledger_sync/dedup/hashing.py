"""
Hash/Idempotency Engine

Every candidate gets a deterministic source hash:
- With a provider transaction id: H("bank-" + id). Provider ids survive
  the pending -> booked transition, so amount/date jitter between the two
  responses does not create a second record.
- Without one: H(amount to 2 dp + "-" + date + "-" + account + "-" +
  normalized description).

H is MD5 hex. It is an identity key, not a security primitive.

Duplicate check order: ignored registry first (cheap short-circuit), then
the stored transactions regardless of status. Id-bearing candidates are
also checked under their legacy content hash, which catches records that
were stored before the provider started sending ids.
"""

import datetime as dt
import hashlib
import re
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ledger_sync.models.transaction import CandidateTransaction
from ledger_sync.services.storage.interface import (
    IgnoredHashStorageInterface,
    TransactionStorageInterface,
)


_NON_WORD = re.compile(r"\W+")
_CENTS = Decimal("0.01")


def _md5(key: str) -> str:
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def normalize_for_hash(description: Optional[str]) -> str:
    """Lowercase and drop whitespace and punctuation."""
    return _NON_WORD.sub("", (description or "").strip().lower())


def legacy_hash(
    amount: Decimal,
    date: dt.date,
    account: str,
    description: Optional[str],
) -> str:
    """Content hash used when no provider id is available."""
    fixed = Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
    key = f"{fixed}-{date.isoformat()}-{account}-{normalize_for_hash(description)}"
    return _md5(key)


def bank_id_hash(bank_transaction_id: str) -> str:
    return _md5(f"bank-{bank_transaction_id}")


def adjustment_hash(adjustment_id: UUID) -> str:
    """Adjustments are unique by construction; hash their own id."""
    return _md5(f"adjustment-{adjustment_id}")


def compute_source_hash(candidate: CandidateTransaction) -> str:
    """The preferred hash of a candidate."""
    if candidate.bank_transaction_id:
        return bank_id_hash(candidate.bank_transaction_id)
    return legacy_hash(
        candidate.amount,
        candidate.date,
        candidate.account,
        candidate.description,
    )


class DuplicateReason(str, Enum):
    IGNORED = "ignored"
    STORED = "stored"
    LEGACY_IGNORED = "legacy_ignored"
    LEGACY_STORED = "legacy_stored"


class HashCheck(BaseModel):
    """Result of checking a candidate against known hashes."""

    source_hash: str
    reason: Optional[DuplicateReason] = None

    @property
    def is_duplicate(self) -> bool:
        return self.reason is not None


class IdempotencyGuard:
    """
    Duplicate detection over the transaction store and ignored registry.

    The check is best-effort: it must run immediately before persistence,
    and the store's own unique-hash constraint is the last line.
    """

    def __init__(
        self,
        transactions: TransactionStorageInterface,
        ignored: IgnoredHashStorageInterface,
    ):
        self._transactions = transactions
        self._ignored = ignored

    async def duplicate_reason(self, source_hash: str) -> Optional[str]:
        """'ignored' / 'stored' if the hash is known, None otherwise."""
        if await self._ignored.is_hash_ignored(source_hash):
            return "ignored"
        if await self._transactions.find_by_hash(source_hash) is not None:
            return "stored"
        return None

    async def is_duplicate(self, source_hash: str) -> bool:
        return await self.duplicate_reason(source_hash) is not None

    async def check(self, candidate: CandidateTransaction) -> HashCheck:
        """
        Compute the candidate's hash and look for any earlier copy.
        """
        source_hash = compute_source_hash(candidate)

        reason = await self.duplicate_reason(source_hash)
        if reason is not None:
            return HashCheck(source_hash=source_hash, reason=DuplicateReason(reason))

        if candidate.bank_transaction_id:
            old_hash = legacy_hash(
                candidate.amount,
                candidate.date,
                candidate.account,
                candidate.description,
            )
            reason = await self.duplicate_reason(old_hash)
            if reason is not None:
                return HashCheck(
                    source_hash=source_hash,
                    reason=DuplicateReason(f"legacy_{reason}"),
                )

        return HashCheck(source_hash=source_hash)

    async def remember_ignored(
        self,
        source_hash: str,
        at: Optional[dt.datetime] = None,
    ) -> None:
        """Record a hash the user ignored so it is never re-surfaced."""
        await self._ignored.add_ignored_hash(
            source_hash,
            at or dt.datetime.now(dt.timezone.utc),
        )

    async def prune(self, ttl_days: int, now: Optional[dt.datetime] = None) -> int:
        """Forget ignored hashes older than `ttl_days`."""
        now = now or dt.datetime.now(dt.timezone.utc)
        return await self._ignored.prune_ignored_hashes(now - dt.timedelta(days=ttl_days))
