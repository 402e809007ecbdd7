"""
Abstract Storage Interface

DESIGN DECISION: The engine never owns persistence. Durable state lives
with a persistence collaborator behind these interfaces.
This allows us to:
1. Plug in whatever the host application already uses
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the lookups the engine needs: by id, by hash, by status, by age.
"""

import datetime as dt
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from ledger_sync.models.audit import AuditEvent
from ledger_sync.models.bank import AccountMapping, CachedBalance
from ledger_sync.models.transaction import AutoTransaction, TransactionStatus


class TransactionStorageInterface(ABC):
    """
    Abstract interface for accepted transactions.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def save_transaction(self, transaction: AutoTransaction) -> bool:
        """
        Persist a new transaction.

        Args:
            transaction: The transaction to save

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a transaction with the same source hash exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Optional[AutoTransaction]:
        """
        Retrieve a transaction by its ID.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: AutoTransaction) -> bool:
        """
        Replace an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def find_by_hash(self, source_hash: str) -> Optional[AutoTransaction]:
        """
        Find the transaction holding `source_hash`, whatever its status.
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        status: Optional[TransactionStatus] = None,
        account_id: Optional[str] = None,
    ) -> list[AutoTransaction]:
        """
        List transactions with optional filters.

        Args:
            status: Filter by review status
            account_id: Keep transactions touching this account, on either
                the source or the destination leg

        Returns:
            Matching transactions, newest first
        """
        pass

    @abstractmethod
    async def delete_reviewed_before(self, cutoff: dt.datetime) -> int:
        """
        Delete confirmed/ignored transactions created before `cutoff`.

        Pending transactions are never deleted.

        Returns:
            Number of deleted transactions
        """
        pass


class IgnoredHashStorageInterface(ABC):
    """
    Registry of hashes the user chose to ignore.

    Outlives the ignored transactions themselves so that a purged record
    is never resurrected by the next sync.
    """

    @abstractmethod
    async def add_ignored_hash(self, source_hash: str, ignored_at: dt.datetime) -> None:
        pass

    @abstractmethod
    async def is_hash_ignored(self, source_hash: str) -> bool:
        pass

    @abstractmethod
    async def prune_ignored_hashes(self, cutoff: dt.datetime) -> int:
        """
        Drop entries ignored before `cutoff`.

        Returns:
            Number of pruned entries
        """
        pass


class SyncStateStorageInterface(ABC):
    """
    Durable bank sync state: sessions, mappings, cached balances, cooldown.

    Each setter writes one logical unit atomically; a concurrent reader
    sees either the old or the new value, never a partial one.
    """

    @abstractmethod
    async def get_session_ids(self) -> list[str]:
        """Live session ids, oldest first."""
        pass

    @abstractmethod
    async def set_session_ids(self, session_ids: list[str]) -> None:
        """Rewrite the whole session list."""
        pass

    @abstractmethod
    async def get_account_mappings(self) -> dict[str, str]:
        """Explicit remote uid -> local account id mappings."""
        pass

    @abstractmethod
    async def save_account_mapping(self, mapping: AccountMapping) -> None:
        pass

    @abstractmethod
    async def get_cached_balance(self, account_id: str) -> Optional[CachedBalance]:
        pass

    @abstractmethod
    async def save_cached_balance(self, balance: CachedBalance) -> None:
        pass

    @abstractmethod
    async def get_last_sync_at(self) -> Optional[dt.datetime]:
        pass

    @abstractmethod
    async def set_last_sync_at(self, at: dt.datetime) -> None:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one sync cycle).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'session')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a transaction whose source hash is already stored."""
    pass
