"""
Storage Services Package

Provides abstract interfaces for the persistence collaborator and an
in-memory implementation of all of them.
"""

from ledger_sync.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    IgnoredHashStorageInterface,
    NotFoundError,
    StorageError,
    SyncStateStorageInterface,
    TransactionStorageInterface,
)
from ledger_sync.services.storage.memory import InMemoryLedgerStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "IgnoredHashStorageInterface",
    "SyncStateStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryLedgerStorage",
]
