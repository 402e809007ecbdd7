"""
Audit Models for Ledger Sync

Every significant action in the engine is logged for audit purposes.
This provides:
1. Traceability of every accepted, dropped or reviewed transaction
2. Debugging information when a sync cycle goes wrong
3. Ability to reconstruct why a balance adjustment was created

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledger_sync.models.transaction import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the ingestion pipeline and the sync cycle has its own
    event type.
    """
    # Ingestion
    TRANSACTION_INGESTED = "transaction_ingested"
    TRANSACTION_UNRECOGNIZED = "transaction_unrecognized"
    DUPLICATE_DROPPED = "duplicate_dropped"

    # Human review
    TRANSACTION_CONFIRMED = "transaction_confirmed"
    TRANSACTION_IGNORED = "transaction_ignored"
    TRANSACTION_RETYPED = "transaction_retyped"

    # Maintenance
    RETENTION_SWEEP_COMPLETED = "retention_sweep_completed"

    # Bank sync
    SYNC_STARTED = "sync_started"
    SYNC_COMPLETED = "sync_completed"
    SYNC_FAILED = "sync_failed"
    SESSION_PRUNED = "session_pruned"
    ACCOUNT_SYNC_FAILED = "account_sync_failed"
    ADJUSTMENT_CREATED = "adjustment_created"
    AUTHORIZATION_COMPLETED = "authorization_completed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: dt.datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Transaction id, remote account uid or session id"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one sync cycle)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_ingested(tx_id, "sms", "revolut", h)
        event = AuditEventBuilder.session_pruned(session_id, "expired", cid)
    """

    @staticmethod
    def transaction_ingested(
        transaction_id: UUID,
        source_type: str,
        source_app: Optional[str],
        source_hash: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_INGESTED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Transaction ingested from {source_type}",
            details={
                "source_app": source_app,
                "source_hash": source_hash,
            },
        )

    @staticmethod
    def transaction_unrecognized(source_type: str, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UNRECOGNIZED,
            severity=AuditSeverity.DEBUG,
            description=f"No rule matched {source_type} from {source}",
            details={"source": source},
        )

    @staticmethod
    def duplicate_dropped(
        source_hash: str,
        source_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_DROPPED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Duplicate {source_type} transaction dropped",
            details={"source_hash": source_hash},
        )

    @staticmethod
    def transaction_reviewed(
        transaction_id: UUID,
        confirmed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.TRANSACTION_CONFIRMED
                if confirmed
                else AuditEventType.TRANSACTION_IGNORED
            ),
            entity_type="transaction",
            entity_id=str(transaction_id),
            description="User confirmed transaction" if confirmed else "User ignored transaction",
            is_user_action=True,
        )

    @staticmethod
    def transaction_retyped(
        transaction_id: UUID,
        new_type: str,
        to_account: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RETYPED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            description=f"User confirmed transaction as {new_type}",
            details={"to_account": to_account},
            is_user_action=True,
        )

    @staticmethod
    def retention_sweep_completed(
        transactions_deleted: int,
        hashes_pruned: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RETENTION_SWEEP_COMPLETED,
            description=(
                f"Retention sweep removed {transactions_deleted} transactions "
                f"and {hashes_pruned} ignored hashes"
            ),
            details={
                "transactions_deleted": transactions_deleted,
                "hashes_pruned": hashes_pruned,
            },
        )

    @staticmethod
    def sync_started(session_count: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_STARTED,
            correlation_id=correlation_id,
            description=f"Bank sync started over {session_count} sessions",
            details={"session_count": session_count},
        )

    @staticmethod
    def sync_completed(
        transactions_added: int,
        adjustments_created: int,
        accounts_failed: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            severity=AuditSeverity.WARNING if accounts_failed else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=(
                f"Bank sync completed: {transactions_added} transactions, "
                f"{adjustments_created} adjustments"
            ),
            details={
                "transactions_added": transactions_added,
                "adjustments_created": adjustments_created,
                "accounts_failed": accounts_failed,
            },
        )

    @staticmethod
    def sync_failed(
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Bank sync failed: {error_type}",
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def session_pruned(
        session_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_PRUNED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Bank session removed ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def account_sync_failed(
        remote_uid: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=remote_uid,
            correlation_id=correlation_id,
            description="Account skipped after a sync failure",
            error_message=error_message,
        )

    @staticmethod
    def adjustment_created(
        transaction_id: UUID,
        account_id: str,
        delta: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADJUSTMENT_CREATED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Balance adjustment of {delta} on {account_id}",
            details={
                "account_id": account_id,
                "delta": str(delta),
            },
        )

    @staticmethod
    def authorization_completed(session_id: str, account_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHORIZATION_COMPLETED,
            entity_type="session",
            entity_id=session_id,
            description=f"Bank authorization completed with {account_count} accounts",
            details={"account_count": account_count},
            is_user_action=True,
        )
