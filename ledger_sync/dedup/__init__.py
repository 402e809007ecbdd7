"""Idempotency package: source hashes and duplicate detection."""

from ledger_sync.dedup.hashing import (
    DuplicateReason,
    HashCheck,
    IdempotencyGuard,
    adjustment_hash,
    bank_id_hash,
    compute_source_hash,
    legacy_hash,
    normalize_for_hash,
)

__all__ = [
    "DuplicateReason",
    "HashCheck",
    "IdempotencyGuard",
    "adjustment_hash",
    "bank_id_hash",
    "compute_source_hash",
    "legacy_hash",
    "normalize_for_hash",
]
