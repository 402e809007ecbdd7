"""Validation package."""

from ledger_sync.validation.validator import TransactionValidator, ValidationIssue

__all__ = ["TransactionValidator", "ValidationIssue"]
