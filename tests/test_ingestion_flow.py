"""
Integration tests for the ingestion and review flow.

Uses the in-memory store and a fake clock; no external services.
"""

import datetime as dt
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_sync.events import LedgerObserver
from ledger_sync.models import (
    CandidateTransaction,
    IngestionStatus,
    InvalidTransitionError,
    SourceType,
    TransactionStatus,
    TransactionType,
)
from ledger_sync.models.audit import AuditEventType
from ledger_sync.services.storage import NotFoundError


# 2024-06-01 12:00:00 UTC
TIMESTAMP_MS = 1717243200000


class RecordingObserver(LedgerObserver):

    def __init__(self):
        self.ingested = []
        self.confirmations = []
        self.updates = 0

    def on_transaction_ingested(self, transaction):
        self.ingested.append(transaction)

    def on_confirmation_needed(self, transaction):
        self.confirmations.append(transaction)

    def on_transactions_updated(self):
        self.updates += 1


class ExplodingObserver(LedgerObserver):

    def on_transaction_ingested(self, transaction):
        raise RuntimeError("UI is gone")


class TestIngestion:
    """Text in, pending transaction out."""

    @pytest.mark.asyncio
    async def test_sms_becomes_pending_transaction(self, ingestion_flow, storage):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 1,00 € presso Amazon", TIMESTAMP_MS)

        assert outcome.status == IngestionStatus.ACCEPTED
        tx = outcome.transaction
        assert tx.status == TransactionStatus.PENDING
        assert tx.amount == Decimal("1.00")
        assert tx.description == "Amazon"
        assert await storage.find_by_hash(tx.source_hash) == tx

    @pytest.mark.asyncio
    async def test_same_sms_twice_is_stored_once(self, ingestion_flow, storage):
        first = await ingestion_flow.ingest_sms("Revolut", "Hai speso 1,00 € presso Amazon", TIMESTAMP_MS)
        second = await ingestion_flow.ingest_sms("Revolut", "Hai speso 1,00 € presso Amazon", TIMESTAMP_MS + 5000)

        assert first.accepted
        assert second.status == IngestionStatus.DUPLICATE
        assert second.source_hash == first.source_hash
        assert len(await storage.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_sms_and_notification_for_same_payment_deduplicate(self, ingestion_flow):
        """Test that the content hash spans channels."""
        await ingestion_flow.ingest_sms("Revolut", "Hai speso 4,50 € presso Bar Centrale", TIMESTAMP_MS)
        outcome = await ingestion_flow.ingest_notification(
            "com.revolut.revolut", "Revolut", "Hai speso 4,50 € presso Bar Centrale", TIMESTAMP_MS
        )
        assert outcome.status == IngestionStatus.DUPLICATE

    @pytest.mark.asyncio
    async def test_unrecognized_text(self, ingestion_flow, storage):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Il tuo codice OTP è 123456", TIMESTAMP_MS)

        assert outcome.status == IngestionStatus.UNRECOGNIZED
        assert outcome.transaction is None
        assert await storage.list_transactions() == []

    @pytest.mark.asyncio
    async def test_validation_warnings_are_attached(self, ingestion_flow):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 1.500,00 € presso Apple Store", TIMESTAMP_MS)
        assert outcome.transaction.validation_warnings == ["High amount (> 1000.00)"]

    @pytest.mark.asyncio
    async def test_observer_callbacks(self, ingestion_flow):
        observer = RecordingObserver()
        ingestion_flow.observer = observer

        await ingestion_flow.ingest_sms("Revolut", "Hai speso 50,00 € presso PayPal Europe", TIMESTAMP_MS)

        assert len(observer.ingested) == 1
        assert len(observer.confirmations) == 1
        assert observer.updates == 1

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_undo_ingestion(self, ingestion_flow, storage):
        ingestion_flow.observer = ExplodingObserver()
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 2,00 € presso Bar", TIMESTAMP_MS)

        assert outcome.accepted
        assert len(await storage.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_ingestion_is_audited(self, ingestion_flow, storage):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 2,00 € presso Bar", TIMESTAMP_MS)
        events = await storage.get_events_by_entity("transaction", str(outcome.transaction.id))
        assert [e.event_type for e in events] == [AuditEventType.TRANSACTION_INGESTED]


class TestReview:
    """Confirm / ignore lifecycle."""

    @pytest.mark.asyncio
    async def test_confirm(self, ingestion_flow, clock):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 2,00 € presso Bar", TIMESTAMP_MS)
        confirmed = await ingestion_flow.confirm_transaction(outcome.transaction.id)

        assert confirmed.status == TransactionStatus.CONFIRMED
        assert confirmed.confirmed_at == clock.now
        assert await ingestion_flow.get_pending_transactions() == []

    @pytest.mark.asyncio
    async def test_reviewed_transactions_are_terminal(self, ingestion_flow):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 2,00 € presso Bar", TIMESTAMP_MS)
        await ingestion_flow.ignore_transaction(outcome.transaction.id)

        with pytest.raises(InvalidTransitionError):
            await ingestion_flow.confirm_transaction(outcome.transaction.id)

    @pytest.mark.asyncio
    async def test_unknown_id(self, ingestion_flow):
        with pytest.raises(NotFoundError):
            await ingestion_flow.confirm_transaction(uuid4())

    @pytest.mark.asyncio
    async def test_ignored_hash_survives_retention_sweep(self, ingestion_flow, storage, clock):
        """Test ignore -> purge -> same signal again is still dropped."""
        text = "Hai speso 9,99 € presso Netflix"
        outcome = await ingestion_flow.ingest_sms("Revolut", text, TIMESTAMP_MS)
        await ingestion_flow.ignore_transaction(outcome.transaction.id)

        clock.advance(days=31)
        deleted, pruned = await ingestion_flow.run_retention_sweep()
        assert (deleted, pruned) == (1, 0)
        assert await storage.list_transactions() == []

        again = await ingestion_flow.ingest_sms("Revolut", text, TIMESTAMP_MS)
        assert again.status == IngestionStatus.DUPLICATE
        assert again.reason == "ignored"

    @pytest.mark.asyncio
    async def test_retention_keeps_pending_and_recent(self, ingestion_flow, clock):
        pending = await ingestion_flow.ingest_sms("Revolut", "Hai speso 1,00 € presso A Shop", TIMESTAMP_MS)
        old = await ingestion_flow.ingest_sms("Revolut", "Hai speso 2,00 € presso B Shop", TIMESTAMP_MS)
        await ingestion_flow.confirm_transaction(old.transaction.id)

        clock.advance(days=29)
        assert await ingestion_flow.run_retention_sweep() == (0, 0)

        clock.advance(days=2)
        assert await ingestion_flow.run_retention_sweep() == (1, 0)
        assert [t.id for t in await ingestion_flow.get_pending_transactions()] == [pending.transaction.id]

    @pytest.mark.asyncio
    async def test_ignored_hashes_expire_after_ttl(self, ingestion_flow, clock):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 3,00 € presso C Shop", TIMESTAMP_MS)
        await ingestion_flow.ignore_transaction(outcome.transaction.id)

        clock.advance(days=91)
        assert await ingestion_flow.run_retention_sweep() == (1, 1)

    @pytest.mark.asyncio
    async def test_confirm_as_transfer(self, ingestion_flow, storage):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 50,00 € presso PayPal Europe", TIMESTAMP_MS)
        assert outcome.transaction.requires_confirmation

        transfer = await ingestion_flow.confirm_as_transfer(outcome.transaction.id, "PayPal")

        assert transfer.type == TransactionType.TRANSFER
        assert transfer.to_account == "PayPal"
        assert transfer.status == TransactionStatus.CONFIRMED
        assert transfer.source_hash == outcome.transaction.source_hash
        assert transfer.balance_effect("Revolut") == Decimal("-50.00")
        assert transfer.balance_effect("PayPal") == Decimal("50.00")
        assert len(await storage.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_confirm_as_transfer_keeps_link(self, ingestion_flow, storage):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 50,00 € presso PayPal Europe", TIMESTAMP_MS)
        link = uuid4()
        await storage.update_transaction(outcome.transaction.model_copy(update={"linked_transaction_id": link}))

        transfer = await ingestion_flow.confirm_as_transfer(outcome.transaction.id, "PayPal")

        assert transfer.linked_transaction_id == link
        assert (await storage.get_transaction(transfer.id)).linked_transaction_id == link

    @pytest.mark.asyncio
    async def test_confirm_as_expense(self, ingestion_flow):
        outcome = await ingestion_flow.ingest_sms("Revolut", "Hai speso 50,00 € presso PayPal Europe", TIMESTAMP_MS)
        expense = await ingestion_flow.confirm_as_expense(outcome.transaction.id)

        assert expense.type == TransactionType.EXPENSE
        assert expense.status == TransactionStatus.CONFIRMED
        assert expense.requires_confirmation is False

    @pytest.mark.asyncio
    async def test_stats(self, ingestion_flow):
        a = await ingestion_flow.ingest_sms("Revolut", "Hai speso 1,00 € presso A Shop", TIMESTAMP_MS)
        b = await ingestion_flow.ingest_sms("Revolut", "Hai speso 2,00 € presso B Shop", TIMESTAMP_MS)
        await ingestion_flow.ingest_sms("Revolut", "Hai speso 3,00 € presso C Shop", TIMESTAMP_MS)
        await ingestion_flow.confirm_transaction(a.transaction.id)
        await ingestion_flow.ignore_transaction(b.transaction.id)

        stats = await ingestion_flow.get_stats()
        assert (stats.pending, stats.confirmed, stats.ignored, stats.total) == (1, 1, 1, 3)

    @pytest.mark.asyncio
    async def test_manual_candidate(self, ingestion_flow):
        """Test that any collaborator can feed a ready-made candidate."""
        candidate = CandidateTransaction(
            type=TransactionType.INCOME,
            amount=Decimal("1200"),
            description="Salary",
            date=dt.date(2024, 5, 27),
            account="local-intesa",
            source_type=SourceType.MANUAL,
        )
        first = await ingestion_flow.ingest_candidate(candidate)
        second = await ingestion_flow.ingest_candidate(candidate)

        assert first.accepted
        assert second.status == IngestionStatus.DUPLICATE
