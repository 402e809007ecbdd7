"""
Audit Logger

DESIGN DECISION: Every significant action in the engine is logged.
This provides:
1. Complete traceability of ingested and dropped signals
2. Debugging capability for sync cycles (one correlation id per cycle)
3. A history the UI can show next to each adjustment

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the engine if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from ledger_sync.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledger_sync.services.storage.interface import AuditStorageInterface


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog (JSON lines through the stdlib backend).

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    logging.getLogger().setLevel(log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditStorageInterface, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledger_sync.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence must never break the main flow
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_ingested(
        self,
        transaction_id: UUID,
        source_type: str,
        source_app: Optional[str],
        source_hash: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_ingested(
            transaction_id=transaction_id,
            source_type=source_type,
            source_app=source_app,
            source_hash=source_hash,
            correlation_id=correlation_id,
        ))

    async def log_unrecognized(self, source_type: str, source: str) -> None:
        await self.log(AuditEventBuilder.transaction_unrecognized(source_type, source))

    async def log_duplicate(
        self,
        source_hash: str,
        source_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a dropped duplicate (diagnostics only)."""
        await self.log(AuditEventBuilder.duplicate_dropped(
            source_hash=source_hash,
            source_type=source_type,
            correlation_id=correlation_id,
        ))

    async def log_reviewed(self, transaction_id: UUID, confirmed: bool) -> None:
        """Log a user confirm / ignore decision."""
        await self.log(AuditEventBuilder.transaction_reviewed(transaction_id, confirmed))

    async def log_retyped(
        self,
        transaction_id: UUID,
        new_type: str,
        to_account: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_retyped(
            transaction_id, new_type, to_account
        ))

    async def log_retention_sweep(self, transactions_deleted: int, hashes_pruned: int) -> None:
        await self.log(AuditEventBuilder.retention_sweep_completed(
            transactions_deleted, hashes_pruned
        ))

    async def log_sync_started(self, session_count: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.sync_started(session_count, correlation_id))

    async def log_sync_completed(
        self,
        transactions_added: int,
        adjustments_created: int,
        accounts_failed: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.sync_completed(
            transactions_added=transactions_added,
            adjustments_created=adjustments_created,
            accounts_failed=accounts_failed,
            correlation_id=correlation_id,
        ))

    async def log_sync_failed(self, error: Exception, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.sync_failed(
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    async def log_session_pruned(
        self,
        session_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.session_pruned(session_id, reason, correlation_id))

    async def log_account_failed(
        self,
        remote_uid: str,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.account_sync_failed(
            remote_uid=remote_uid,
            error_message=f"{type(error).__name__}: {error}",
            correlation_id=correlation_id,
        ))

    async def log_adjustment(
        self,
        transaction_id: UUID,
        account_id: str,
        delta: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.adjustment_created(
            transaction_id=transaction_id,
            account_id=account_id,
            delta=delta,
            correlation_id=correlation_id,
        ))

    async def log_authorization_completed(self, session_id: str, account_count: int) -> None:
        await self.log(AuditEventBuilder.authorization_completed(session_id, account_count))
