"""
Data Models Package

This package contains all Pydantic models used by the ledger sync engine.
All data flowing through the engine must conform to these schemas.
"""

from ledger_sync.models.transaction import (
    ALLOWED_TRANSITIONS,
    AdjustmentDirection,
    AutoTransaction,
    CandidateTransaction,
    ConfirmationType,
    IngestionOutcome,
    IngestionStatus,
    InvalidTransitionError,
    LocalAccount,
    SourceType,
    TransactionStats,
    TransactionStatus,
    TransactionType,
    utc_now,
)
from ledger_sync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from ledger_sync.models.bank import (
    BALANCE_PRIORITY,
    AccountMapping,
    BalanceEntry,
    BalanceType,
    BankCredentials,
    CachedBalance,
    ProviderTransaction,
    RemoteAccount,
    SessionAccounts,
    SyncContext,
    SyncResult,
    extract_numeric,
    first_present,
    parse_balance_type,
    select_balance,
)

__all__ = [
    # Transaction models
    "ALLOWED_TRANSITIONS",
    "AdjustmentDirection",
    "AutoTransaction",
    "CandidateTransaction",
    "ConfirmationType",
    "IngestionOutcome",
    "IngestionStatus",
    "InvalidTransitionError",
    "LocalAccount",
    "SourceType",
    "TransactionStats",
    "TransactionStatus",
    "TransactionType",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Bank aggregator models
    "BALANCE_PRIORITY",
    "AccountMapping",
    "BalanceEntry",
    "BalanceType",
    "BankCredentials",
    "CachedBalance",
    "ProviderTransaction",
    "RemoteAccount",
    "SessionAccounts",
    "SyncContext",
    "SyncResult",
    "extract_numeric",
    "first_present",
    "parse_balance_type",
    "select_balance",
]
