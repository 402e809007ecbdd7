"""Audit logging package."""

from ledger_sync.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
