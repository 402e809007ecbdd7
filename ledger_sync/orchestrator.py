"""
Main Orchestrator for Ledger Sync

This module ties together all the components and defines the
end-to-end flows for:
1. Ingestion (raw text or bank entry -> candidate -> dedup -> validate -> pending)
2. Review (pending -> confirmed | ignored, transfer-vs-expense correction)
3. Bank sync (authenticate -> accounts -> transactions/balance -> reconcile)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is persisted without passing the duplicate check first
- Validation warns, it never blocks
- One sync cycle at a time; concurrent calls get a zero-effect result
- Every step is audited

Collaborator state (credentials, local accounts) arrives in an explicit
SyncContext on every call. Nothing here is a module-level singleton.
"""

import datetime as dt
import json
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

import httpx
import structlog

from ledger_sync.audit import AuditLogger, configure_logging
from ledger_sync.config import BankSyncSettings, IngestionSettings, get_settings
from ledger_sync.dedup import IdempotencyGuard, adjustment_hash
from ledger_sync.events import LedgerObserver, SyncPhase
from ledger_sync.models.bank import (
    AccountMapping,
    BalanceEntry,
    CachedBalance,
    ProviderTransaction,
    RemoteAccount,
    SyncContext,
    SyncResult,
    select_balance,
)
from ledger_sync.models.transaction import (
    AdjustmentDirection,
    AutoTransaction,
    CandidateTransaction,
    IngestionOutcome,
    IngestionStatus,
    SourceType,
    TransactionStats,
    TransactionStatus,
    TransactionType,
    utc_now,
)
from ledger_sync.parsing import (
    PatternExtractor,
    default_notification_rules,
    default_sms_rules,
)
from ledger_sync.resolution import LocalAccountResolver
from ledger_sync.services.bank import (
    AllSessionsExpiredError,
    BankApiError,
    BankAuthenticationError,
    BankSyncError,
    EnableBankingClient,
    SessionExpiredError,
)
from ledger_sync.services.storage import (
    DuplicateError,
    IgnoredHashStorageInterface,
    InMemoryLedgerStorage,
    NotFoundError,
    SyncStateStorageInterface,
    TransactionStorageInterface,
)
from ledger_sync.validation import TransactionValidator


logger = structlog.get_logger(__name__)

Clock = Callable[[], dt.datetime]


def _notify(observer: Optional[LedgerObserver], hook: str, *args) -> None:
    """Call an observer hook; a failing UI callback is logged, never raised."""
    if observer is None:
        return
    try:
        getattr(observer, hook)(*args)
    except Exception as e:
        logger.error("observer_failed", hook=hook, error=str(e))


class IngestionFlow:
    """
    Orchestrates ingestion and review of automatic transactions.

    Flow:
    1. Extract → SMS / notification text through the matching rule set
    2. Dedup → ignored registry, then stored hashes (plus legacy hash)
    3. Validate → attach warnings
    4. Persist → status PENDING
    5. Review → user confirms or ignores (terminal)
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        ignored_storage: IgnoredHashStorageInterface,
        sms_extractor: Optional[PatternExtractor] = None,
        notification_extractor: Optional[PatternExtractor] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        observer: Optional[LedgerObserver] = None,
        settings: Optional[IngestionSettings] = None,
        clock: Clock = utc_now,
    ):
        self._settings = settings or get_settings().ingestion
        self._transactions = transaction_storage
        self._guard = IdempotencyGuard(transaction_storage, ignored_storage)
        self._sms = sms_extractor or PatternExtractor(
            default_sms_rules(),
            SourceType.SMS,
            dot_mode=self._settings.dot_separator_mode,
        )
        self._notifications = notification_extractor or PatternExtractor(
            default_notification_rules(),
            SourceType.NOTIFICATION,
            dot_mode=self._settings.dot_separator_mode,
        )
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self.observer = observer
        self._clock = clock

    @property
    def sms_extractor(self) -> PatternExtractor:
        return self._sms

    @property
    def notification_extractor(self) -> PatternExtractor:
        return self._notifications

    # -------------------------------------------------------------------------
    # Inflows
    # -------------------------------------------------------------------------

    async def ingest_sms(
        self,
        sender: str,
        body: str,
        timestamp_ms: int,
    ) -> IngestionOutcome:
        """Feed one SMS through the pipeline."""
        candidate = self._sms.extract(sender, body, timestamp_ms)
        if candidate is None:
            return await self._unrecognized(SourceType.SMS, sender)
        return await self.ingest_candidate(candidate)

    async def ingest_notification(
        self,
        app_name: str,
        title: str,
        text: str,
        timestamp_ms: int,
    ) -> IngestionOutcome:
        """Feed one app notification through the pipeline."""
        full_text = f"{title or ''} {text or ''}".strip()
        candidate = self._notifications.extract(app_name, full_text, timestamp_ms)
        if candidate is None:
            return await self._unrecognized(SourceType.NOTIFICATION, app_name)
        return await self.ingest_candidate(candidate)

    async def _unrecognized(self, source_type: SourceType, source: str) -> IngestionOutcome:
        if self._audit_logger:
            await self._audit_logger.log_unrecognized(source_type.value, source)
        return IngestionOutcome(
            status=IngestionStatus.UNRECOGNIZED,
            reason=f"No rule matched {source_type.value} from {source!r}",
        )

    async def ingest_candidate(
        self,
        candidate: CandidateTransaction,
        correlation_id: Optional[UUID] = None,
    ) -> IngestionOutcome:
        """
        Dedup, validate and persist a candidate as PENDING.

        The duplicate check runs immediately before the write; the store's
        unique-hash constraint catches anything that slips between the two.
        """
        check = await self._guard.check(candidate)
        if check.is_duplicate:
            return await self._duplicate(check.source_hash, candidate, check.reason.value, correlation_id)

        transaction = AutoTransaction(
            **candidate.model_dump(),
            source_hash=check.source_hash,
            validation_warnings=self._validator.validate(candidate),
            created_at=self._clock(),
        )

        try:
            await self._transactions.save_transaction(transaction)
        except DuplicateError:
            return await self._duplicate(check.source_hash, candidate, "stored", correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_ingested(
                transaction_id=transaction.id,
                source_type=transaction.source_type.value,
                source_app=transaction.source_app,
                source_hash=transaction.source_hash,
                correlation_id=correlation_id,
            )

        _notify(self.observer, "on_transaction_ingested", transaction)
        if transaction.requires_confirmation:
            _notify(self.observer, "on_confirmation_needed", transaction)
        _notify(self.observer, "on_transactions_updated")

        return IngestionOutcome(
            status=IngestionStatus.ACCEPTED,
            transaction=transaction,
            source_hash=transaction.source_hash,
        )

    async def _duplicate(
        self,
        source_hash: str,
        candidate: CandidateTransaction,
        reason: str,
        correlation_id: Optional[UUID],
    ) -> IngestionOutcome:
        logger.debug(
            "duplicate_dropped",
            source_hash=source_hash,
            source_type=candidate.source_type.value,
            reason=reason,
        )
        if self._audit_logger:
            await self._audit_logger.log_duplicate(
                source_hash=source_hash,
                source_type=candidate.source_type.value,
                correlation_id=correlation_id,
            )
        return IngestionOutcome(
            status=IngestionStatus.DUPLICATE,
            source_hash=source_hash,
            reason=reason,
        )

    # -------------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------------

    async def _get(self, transaction_id: UUID) -> AutoTransaction:
        transaction = await self._transactions.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def confirm_transaction(self, transaction_id: UUID) -> AutoTransaction:
        """
        Move a pending transaction to CONFIRMED.

        Raises:
            NotFoundError: Unknown id
            InvalidTransitionError: The transaction is not pending
        """
        transaction = await self._get(transaction_id)
        confirmed = transaction.with_status(TransactionStatus.CONFIRMED, at=self._clock())
        await self._transactions.update_transaction(confirmed)

        if self._audit_logger:
            await self._audit_logger.log_reviewed(confirmed.id, confirmed=True)
        _notify(self.observer, "on_transactions_updated")
        return confirmed

    async def ignore_transaction(self, transaction_id: UUID) -> AutoTransaction:
        """
        Move a pending transaction to IGNORED and remember its hash.

        The hash outlives the record, so the same transaction is never
        re-surfaced even after the retention sweep deletes it.
        """
        transaction = await self._get(transaction_id)
        ignored = transaction.with_status(TransactionStatus.IGNORED, at=self._clock())
        await self._transactions.update_transaction(ignored)
        await self._guard.remember_ignored(ignored.source_hash, at=self._clock())

        if self._audit_logger:
            await self._audit_logger.log_reviewed(ignored.id, confirmed=False)
        _notify(self.observer, "on_transactions_updated")
        return ignored

    async def confirm_as_expense(self, transaction_id: UUID) -> AutoTransaction:
        """Resolve a transfer-or-expense question as a plain expense."""
        return await self.confirm_transaction(transaction_id)

    async def confirm_as_transfer(
        self,
        transaction_id: UUID,
        to_account: str,
    ) -> AutoTransaction:
        """
        Resolve a transfer-or-expense question as a transfer to `to_account`.

        The transaction keeps its id and hash; its type becomes TRANSFER
        and the destination leg is carried by `to_account`.
        """
        transaction = await self._get(transaction_id)
        retyped = AutoTransaction(
            **{
                **transaction.model_dump(),
                "type": TransactionType.TRANSFER,
                "to_account": to_account,
                "confirmation_type": None,
            }
        )
        confirmed = retyped.with_status(TransactionStatus.CONFIRMED, at=self._clock())
        await self._transactions.update_transaction(confirmed)

        if self._audit_logger:
            await self._audit_logger.log_retyped(confirmed.id, TransactionType.TRANSFER.value, to_account)
        _notify(self.observer, "on_transactions_updated")
        return confirmed

    # -------------------------------------------------------------------------
    # Queries and maintenance
    # -------------------------------------------------------------------------

    async def get_pending_transactions(self) -> list[AutoTransaction]:
        """Pending transactions, newest first."""
        return await self._transactions.list_transactions(status=TransactionStatus.PENDING)

    async def get_stats(self) -> TransactionStats:
        return TransactionStats(
            pending=len(await self._transactions.list_transactions(status=TransactionStatus.PENDING)),
            confirmed=len(await self._transactions.list_transactions(status=TransactionStatus.CONFIRMED)),
            ignored=len(await self._transactions.list_transactions(status=TransactionStatus.IGNORED)),
        )

    async def run_retention_sweep(self) -> tuple[int, int]:
        """
        Delete reviewed transactions past retention and expire old ignored hashes.

        Returns:
            (transactions_deleted, hashes_pruned)
        """
        now = self._clock()
        deleted = await self._transactions.delete_reviewed_before(
            now - dt.timedelta(days=self._settings.retention_days)
        )
        pruned = await self._guard.prune(self._settings.ignored_hash_ttl_days, now=now)

        if self._audit_logger:
            await self._audit_logger.log_retention_sweep(deleted, pruned)
        if deleted:
            _notify(self.observer, "on_transactions_updated")
        return deleted, pruned


class BankSyncFlow:
    """
    Orchestrates one bank sync cycle.

    Phases:
    1. Authenticate → sign the assertion (failure aborts the cycle)
    2. Fetch accounts → catalogue + every session, prune dead sessions
    3. Per account → transactions through IngestionFlow, then balance
    4. Reconcile → one adjustment when |bank - local| > tolerance

    Only one cycle runs at a time. The guard flag is set before the first
    suspension point, so a concurrent call can never interleave.
    """

    def __init__(
        self,
        client: EnableBankingClient,
        ingestion: IngestionFlow,
        transaction_storage: TransactionStorageInterface,
        sync_state: SyncStateStorageInterface,
        resolver: Optional[LocalAccountResolver] = None,
        audit_logger: Optional[AuditLogger] = None,
        observer: Optional[LedgerObserver] = None,
        settings: Optional[BankSyncSettings] = None,
        clock: Clock = utc_now,
    ):
        self._client = client
        self._ingestion = ingestion
        self._transactions = transaction_storage
        self._state = sync_state
        self._resolver = resolver or LocalAccountResolver()
        self._audit_logger = audit_logger
        self.observer = observer
        self._settings = settings or get_settings().bank_sync
        self._clock = clock
        self._in_flight = False
        self._phase = SyncPhase.IDLE

    @property
    def is_syncing(self) -> bool:
        return self._in_flight

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    def _set_phase(self, phase: SyncPhase) -> None:
        self._phase = phase
        _notify(self.observer, "on_sync_phase_changed", phase)

    # -------------------------------------------------------------------------
    # Sync cycle
    # -------------------------------------------------------------------------

    async def sync_all(self, context: SyncContext, force: bool = False) -> SyncResult:
        """
        Run one sync cycle.

        Args:
            context: Credentials and local accounts from the UI collaborator
            force: Ignore the cooldown

        Returns:
            SyncResult; a skipped result (zero effect) when a cycle is
            already running or the cooldown has not elapsed

        Raises:
            BankAuthenticationError: Credentials could not be signed or were rejected
            AllSessionsExpiredError: Every session is unauthorized
            BankConnectivityError: The aggregator could not be reached
        """
        if self._in_flight:
            logger.info("sync_already_running")
            return SyncResult.skipped_because("already_running")
        self._in_flight = True

        try:
            return await self._run_cycle(context, force)
        finally:
            self._in_flight = False
            self._set_phase(SyncPhase.IDLE)

    async def _run_cycle(self, context: SyncContext, force: bool) -> SyncResult:
        now = self._clock()
        if not force:
            last = await self._state.get_last_sync_at()
            if last is not None and now - last < dt.timedelta(seconds=self._settings.cooldown_seconds):
                logger.info("sync_cooldown_active", last_sync_at=last.isoformat())
                return SyncResult.skipped_because("cooldown")

        correlation_id = context.correlation_id
        credentials = context.credentials

        session_ids = await self._state.get_session_ids()
        if not session_ids:
            logger.info("sync_no_sessions")
            return SyncResult()

        if self._audit_logger:
            await self._audit_logger.log_sync_started(len(session_ids), correlation_id)

        try:
            self._set_phase(SyncPhase.AUTHENTICATING)
            self._client.authenticate(credentials)

            self._set_phase(SyncPhase.FETCHING_ACCOUNTS)
            accounts, pruned = await self._collect_accounts(context, session_ids)

            result = SyncResult(sessions_pruned=pruned)
            mappings = await self._state.get_account_mappings()
            for account in accounts:
                await self._sync_account(context, account, mappings, result)
        except BankSyncError as e:
            if self._audit_logger:
                await self._audit_logger.log_sync_failed(e, correlation_id)
            raise

        await self._state.set_last_sync_at(self._clock())

        if self._audit_logger:
            await self._audit_logger.log_sync_completed(
                transactions_added=result.transactions_added,
                adjustments_created=result.adjustments_created,
                accounts_failed=result.accounts_failed,
                correlation_id=correlation_id,
            )
        if result.transactions_added or result.adjustments_created:
            _notify(self.observer, "on_transactions_updated")
        _notify(self.observer, "on_sync_completed", result)
        return result

    async def _load_catalogue(self, context: SyncContext) -> dict[str, RemoteAccount]:
        """
        Global account catalogue, used to enrich bare session references.

        A rejected assertion here means the credentials are bad; any other
        API error just means no catalogue.
        """
        try:
            accounts = await self._client.list_accounts(context.credentials)
        except SessionExpiredError as e:
            raise BankAuthenticationError(e.detail or "Assertion rejected", 401) from e
        except BankApiError as e:
            if e.status_code == 403:
                raise BankAuthenticationError(e.detail or "Assertion rejected", 403) from e
            logger.info("account_catalogue_unavailable", status_code=e.status_code)
            return {}
        return {account.uid: account for account in accounts}

    async def _collect_accounts(
        self,
        context: SyncContext,
        session_ids: list[str],
    ) -> tuple[list[RemoteAccount], list[str]]:
        """
        Resolve every session into accounts and prune dead sessions.

        Returns:
            (accounts de-duplicated by uid, pruned session ids)
        """
        catalogue = await self._load_catalogue(context)
        credentials = context.credentials
        newest = session_ids[-1]

        accounts: dict[str, RemoteAccount] = {}
        expired: list[str] = []
        stale: list[str] = []

        for session_id in session_ids:
            try:
                session = await self._client.get_session(credentials, session_id)
            except SessionExpiredError:
                expired.append(session_id)
                continue
            except BankApiError as e:
                logger.warning("session_fetch_failed", session_id=session_id, status_code=e.status_code)
                continue

            resolved: list[RemoteAccount] = []
            for account in session.accounts:
                known = catalogue.get(account.uid)
                resolved.append(account.enriched_with(known) if known else account)
            for uid in session.account_ids:
                if uid in catalogue:
                    resolved.append(catalogue[uid])
                    continue
                try:
                    detail = await self._client.get_account_details(credentials, uid)
                except BankApiError as e:
                    logger.info("account_details_unavailable", account_uid=uid, status_code=e.status_code)
                    detail = None
                resolved.append(detail or RemoteAccount(uid=uid))

            if not resolved:
                if session_id != newest:
                    stale.append(session_id)
                continue

            # Later sessions win: each account keeps the session it was last seen under
            for account in resolved:
                accounts[account.uid] = account.model_copy(update={"session_id": session_id})

        pruned = expired + stale
        if pruned:
            await self._state.set_session_ids([s for s in session_ids if s not in pruned])
            if self._audit_logger:
                for session_id in expired:
                    await self._audit_logger.log_session_pruned(session_id, "expired", context.correlation_id)
                for session_id in stale:
                    await self._audit_logger.log_session_pruned(session_id, "stale", context.correlation_id)

        if expired and len(expired) == len(session_ids):
            raise AllSessionsExpiredError(expired)

        return list(accounts.values()), pruned

    async def _sync_account(
        self,
        context: SyncContext,
        account: RemoteAccount,
        mappings: dict[str, str],
        result: SyncResult,
    ) -> None:
        """
        Ingest one account's transactions, then reconcile its balance.

        Failures stay inside this account; the cycle moves on.
        """
        resolution = self._resolver.resolve(account, context.local_accounts, mappings)
        local_id = resolution.local_account_id
        credentials = context.credentials

        self._set_phase(SyncPhase.FETCHING_TRANSACTIONS)
        try:
            transactions = await self._client.get_transactions(credentials, account.uid)
        except (BankAuthenticationError, AllSessionsExpiredError):
            raise
        except BankSyncError as e:
            logger.warning("account_transactions_failed", account_uid=account.uid, error=str(e))
            result.accounts_failed += 1
            if self._audit_logger:
                await self._audit_logger.log_account_failed(account.uid, e, context.correlation_id)
            return

        for provider_tx in transactions:
            outcome = await self._ingestion.ingest_candidate(
                self.map_transaction(provider_tx, local_id),
                correlation_id=context.correlation_id,
            )
            if outcome.accepted:
                result.transactions_added += 1

        self._set_phase(SyncPhase.FETCHING_BALANCE)
        try:
            balances = await self._client.get_balances(credentials, account.uid)
        except (BankAuthenticationError, AllSessionsExpiredError):
            raise
        except BankSyncError as e:
            # No balance, no reconciliation; ingestion above still stands
            logger.warning("account_balance_failed", account_uid=account.uid, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_account_failed(account.uid, e, context.correlation_id)
            result.accounts_synced += 1
            return

        self._set_phase(SyncPhase.RECONCILING)
        entry = select_balance(balances)
        if entry is not None:
            if await self.reconcile(local_id, entry, account, context.correlation_id):
                result.adjustments_created += 1
        result.accounts_synced += 1

    def map_transaction(
        self,
        provider_tx: ProviderTransaction,
        local_account_id: str,
    ) -> CandidateTransaction:
        """Provider entry → candidate. The sign decides expense vs income."""
        return CandidateTransaction(
            type=TransactionType.EXPENSE if provider_tx.amount < 0 else TransactionType.INCOME,
            amount=abs(provider_tx.amount),
            description=(provider_tx.description or "Bank transaction")[:500],
            date=provider_tx.booking_date or self._clock().date(),
            account=local_account_id,
            source_type=SourceType.BANK,
            source_app="enable_banking",
            bank_transaction_id=provider_tx.reference,
            raw_text=json.dumps(provider_tx.raw, default=str),
        )

    async def local_balance(self, account_id: str) -> Decimal:
        """Fold every non-ignored transaction touching `account_id`."""
        transactions = await self._transactions.list_transactions(account_id=account_id)
        return sum(
            (t.balance_effect(account_id) for t in transactions if t.status != TransactionStatus.IGNORED),
            Decimal("0"),
        )

    async def reconcile(
        self,
        account_id: str,
        entry: BalanceEntry,
        account: RemoteAccount,
        correlation_id: UUID,
    ) -> bool:
        """
        Cache the bank balance and close any gap with an adjustment.

        Returns:
            True if an adjustment was created
        """
        now = self._clock()
        await self._state.save_cached_balance(CachedBalance(
            account_id=account_id,
            balance=entry.amount,
            balance_type=entry.raw_type,
            synced_at=now,
        ))

        delta = entry.amount - await self.local_balance(account_id)
        if abs(delta) <= Decimal(str(self._settings.reconciliation_tolerance)):
            return False

        adjustment_id = uuid4()
        adjustment = AutoTransaction(
            id=adjustment_id,
            type=TransactionType.ADJUSTMENT,
            amount=abs(delta),
            direction=AdjustmentDirection.INCREASE if delta > 0 else AdjustmentDirection.DECREASE,
            description=f"Automatic reconciliation {account.label}"[:500],
            date=now.date(),
            account=account_id,
            source_type=SourceType.BANK,
            source_app="reconciliation",
            source_hash=adjustment_hash(adjustment_id),
            status=TransactionStatus.CONFIRMED,
            created_at=now,
            confirmed_at=now,
        )
        await self._transactions.save_transaction(adjustment)

        logger.info("adjustment_created", account_id=account_id, delta=str(delta))
        if self._audit_logger:
            await self._audit_logger.log_adjustment(adjustment.id, account_id, delta, correlation_id)
        return True

    # -------------------------------------------------------------------------
    # Authorization helpers
    # -------------------------------------------------------------------------

    async def list_aspsps(self, context: SyncContext, country: Optional[str] = None) -> list[dict]:
        return await self._client.list_aspsps(context.credentials, country)

    async def start_authorization(
        self,
        context: SyncContext,
        aspsp_name: str,
        country: str,
        redirect_url: str,
        state: Optional[str] = None,
    ) -> str:
        """Returns the bank authorization URL for the user to open."""
        valid_until = self._clock() + dt.timedelta(days=self._settings.authorization_valid_days)
        return await self._client.start_authorization(
            context.credentials,
            aspsp_name=aspsp_name,
            country=country,
            redirect_url=redirect_url,
            state=state or str(uuid4()),
            valid_until=valid_until.isoformat(),
        )

    async def complete_authorization(
        self,
        context: SyncContext,
        code: str,
        redirect_url: Optional[str] = None,
    ) -> str:
        """
        Exchange the redirect code for a session and remember it.

        Returns:
            The new session id (appended as the newest session)
        """
        session_id, session = await self._client.create_session(
            context.credentials, code, redirect_url
        )
        session_ids = await self._state.get_session_ids()
        if session_id not in session_ids:
            await self._state.set_session_ids([*session_ids, session_id])

        if self._audit_logger:
            await self._audit_logger.log_authorization_completed(
                session_id, len(session.accounts) + len(session.account_ids)
            )
        return session_id

    async def set_account_mapping(self, remote_uid: str, local_account_id: str) -> AccountMapping:
        mapping = AccountMapping(
            remote_uid=remote_uid,
            local_account_id=local_account_id,
            created_at=self._clock(),
        )
        await self._state.save_account_mapping(mapping)
        return mapping

    async def get_cached_balance(self, account_id: str) -> Optional[CachedBalance]:
        return await self._state.get_cached_balance(account_id)


def create_app_components(
    storage: Optional[InMemoryLedgerStorage] = None,
    observer: Optional[LedgerObserver] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> tuple[IngestionFlow, BankSyncFlow, InMemoryLedgerStorage]:
    """
    Factory function to create all application components.

    Args:
        storage: Object implementing every storage interface.
                 Defaults to a fresh in-memory store.
        observer: UI callbacks
        http_client: Pre-configured HTTP client (tests pass a mock transport)

    Returns:
        (ingestion_flow, bank_sync_flow, storage)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    storage = storage or InMemoryLedgerStorage()
    audit_logger = AuditLogger(storage)

    ingestion_flow = IngestionFlow(
        transaction_storage=storage,
        ignored_storage=storage,
        audit_logger=audit_logger,
        observer=observer,
        settings=settings.ingestion,
    )

    bank_sync_settings = settings.bank_sync
    client = EnableBankingClient(
        settings=bank_sync_settings,
        http_client=http_client,
        dot_mode=settings.ingestion.dot_separator_mode,
    )
    bank_sync_flow = BankSyncFlow(
        client=client,
        ingestion=ingestion_flow,
        transaction_storage=storage,
        sync_state=storage,
        audit_logger=audit_logger,
        observer=observer,
        settings=bank_sync_settings,
    )

    return ingestion_flow, bank_sync_flow, storage
