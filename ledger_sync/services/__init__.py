"""Services package."""

from ledger_sync.services.bank import (
    AllSessionsExpiredError,
    AssertionSigner,
    BankApiError,
    BankAuthenticationError,
    BankConnectivityError,
    BankSyncError,
    EnableBankingClient,
    RateLimitedError,
    SessionExpiredError,
    normalize_private_key,
)
from ledger_sync.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    IgnoredHashStorageInterface,
    InMemoryLedgerStorage,
    NotFoundError,
    StorageError,
    SyncStateStorageInterface,
    TransactionStorageInterface,
)

__all__ = [
    # Bank aggregator
    "AllSessionsExpiredError",
    "AssertionSigner",
    "BankApiError",
    "BankAuthenticationError",
    "BankConnectivityError",
    "BankSyncError",
    "EnableBankingClient",
    "RateLimitedError",
    "SessionExpiredError",
    "normalize_private_key",
    # Storage
    "AuditStorageInterface",
    "DuplicateError",
    "IgnoredHashStorageInterface",
    "InMemoryLedgerStorage",
    "NotFoundError",
    "StorageError",
    "SyncStateStorageInterface",
    "TransactionStorageInterface",
]
