"""Bank aggregator services package."""

from ledger_sync.services.bank.errors import (
    AllSessionsExpiredError,
    BankApiError,
    BankAuthenticationError,
    BankConnectivityError,
    BankSyncError,
    RateLimitedError,
    SessionExpiredError,
)
from ledger_sync.services.bank.signing import AssertionSigner, normalize_private_key
from ledger_sync.services.bank.client import EnableBankingClient

__all__ = [
    # Errors
    "AllSessionsExpiredError",
    "BankApiError",
    "BankAuthenticationError",
    "BankConnectivityError",
    "BankSyncError",
    "RateLimitedError",
    "SessionExpiredError",
    # Signing
    "AssertionSigner",
    "normalize_private_key",
    # Client
    "EnableBankingClient",
]
