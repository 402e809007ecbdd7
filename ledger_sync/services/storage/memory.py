"""
In-Memory Storage

Reference implementation of every storage interface, kept in plain
dicts. Used by tests and by hosts that persist snapshots themselves.

Writes replace whole values under an asyncio.Lock, so no partially
updated state is ever visible between suspension points.
"""

import asyncio
import datetime as dt
from typing import Optional
from uuid import UUID

from ledger_sync.models.audit import AuditEvent
from ledger_sync.models.bank import AccountMapping, CachedBalance
from ledger_sync.models.transaction import AutoTransaction, TransactionStatus
from ledger_sync.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    IgnoredHashStorageInterface,
    NotFoundError,
    SyncStateStorageInterface,
    TransactionStorageInterface,
)


class InMemoryLedgerStorage(
    TransactionStorageInterface,
    IgnoredHashStorageInterface,
    SyncStateStorageInterface,
    AuditStorageInterface,
):
    """All four storage contracts over process memory."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._transactions: dict[UUID, AutoTransaction] = {}
        self._ignored_hashes: dict[str, dt.datetime] = {}
        self._session_ids: list[str] = []
        self._mappings: dict[str, AccountMapping] = {}
        self._balances: dict[str, CachedBalance] = {}
        self._last_sync_at: Optional[dt.datetime] = None
        self._events: list[AuditEvent] = []

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def save_transaction(self, transaction: AutoTransaction) -> bool:
        async with self._lock:
            for existing in self._transactions.values():
                if existing.source_hash == transaction.source_hash:
                    raise DuplicateError(
                        f"Source hash {transaction.source_hash} already stored"
                    )
            self._transactions[transaction.id] = transaction
        return True

    async def get_transaction(self, transaction_id: UUID) -> Optional[AutoTransaction]:
        return self._transactions.get(transaction_id)

    async def update_transaction(self, transaction: AutoTransaction) -> bool:
        async with self._lock:
            if transaction.id not in self._transactions:
                raise NotFoundError(f"Transaction {transaction.id} not found")
            self._transactions[transaction.id] = transaction
        return True

    async def find_by_hash(self, source_hash: str) -> Optional[AutoTransaction]:
        for transaction in self._transactions.values():
            if transaction.source_hash == source_hash:
                return transaction
        return None

    async def list_transactions(
        self,
        status: Optional[TransactionStatus] = None,
        account_id: Optional[str] = None,
    ) -> list[AutoTransaction]:
        results = list(self._transactions.values())
        if status is not None:
            results = [t for t in results if t.status == status]
        if account_id is not None:
            results = [
                t for t in results
                if t.account == account_id or t.to_account == account_id
            ]
        # Newest first
        results.sort(key=lambda t: t.created_at, reverse=True)
        return results

    async def delete_reviewed_before(self, cutoff: dt.datetime) -> int:
        async with self._lock:
            stale = [
                t.id for t in self._transactions.values()
                if t.status != TransactionStatus.PENDING and t.created_at < cutoff
            ]
            for transaction_id in stale:
                del self._transactions[transaction_id]
        return len(stale)

    # -------------------------------------------------------------------------
    # Ignored hashes
    # -------------------------------------------------------------------------

    async def add_ignored_hash(self, source_hash: str, ignored_at: dt.datetime) -> None:
        async with self._lock:
            self._ignored_hashes[source_hash] = ignored_at

    async def is_hash_ignored(self, source_hash: str) -> bool:
        return source_hash in self._ignored_hashes

    async def prune_ignored_hashes(self, cutoff: dt.datetime) -> int:
        async with self._lock:
            expired = [h for h, at in self._ignored_hashes.items() if at < cutoff]
            for source_hash in expired:
                del self._ignored_hashes[source_hash]
        return len(expired)

    # -------------------------------------------------------------------------
    # Sync state
    # -------------------------------------------------------------------------

    async def get_session_ids(self) -> list[str]:
        return list(self._session_ids)

    async def set_session_ids(self, session_ids: list[str]) -> None:
        async with self._lock:
            self._session_ids = list(session_ids)

    async def get_account_mappings(self) -> dict[str, str]:
        return {uid: m.local_account_id for uid, m in self._mappings.items()}

    async def save_account_mapping(self, mapping: AccountMapping) -> None:
        async with self._lock:
            self._mappings[mapping.remote_uid] = mapping

    async def get_cached_balance(self, account_id: str) -> Optional[CachedBalance]:
        return self._balances.get(account_id)

    async def save_cached_balance(self, balance: CachedBalance) -> None:
        async with self._lock:
            self._balances[balance.account_id] = balance

    async def get_last_sync_at(self) -> Optional[dt.datetime]:
        return self._last_sync_at

    async def set_last_sync_at(self, at: dt.datetime) -> None:
        self._last_sync_at = at

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
