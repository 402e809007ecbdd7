"""
Observer Interface

The UI collaborator subclasses LedgerObserver and overrides the hooks it
cares about. Every hook is a no-op by default. The engine also returns
explicit values from every call, so an observer is optional.

Observer exceptions are logged and swallowed by the flows; a broken UI
callback must not undo an ingestion or a sync.
"""

from enum import Enum

from ledger_sync.models.bank import SyncResult
from ledger_sync.models.transaction import AutoTransaction


class SyncPhase(str, Enum):
    """States of one sync cycle."""
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    FETCHING_ACCOUNTS = "fetching_accounts"
    FETCHING_TRANSACTIONS = "fetching_transactions"
    FETCHING_BALANCE = "fetching_balance"
    RECONCILING = "reconciling"


class LedgerObserver:
    """Callbacks for the UI collaborator."""

    def on_transaction_ingested(self, transaction: AutoTransaction) -> None:
        pass

    def on_confirmation_needed(self, transaction: AutoTransaction) -> None:
        pass

    def on_transactions_updated(self) -> None:
        pass

    def on_sync_phase_changed(self, phase: SyncPhase) -> None:
        pass

    def on_sync_completed(self, result: SyncResult) -> None:
        pass
