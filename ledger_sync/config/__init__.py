"""Configuration package."""

from ledger_sync.config.settings import (
    AppSettings,
    BankSyncSettings,
    DotSeparatorMode,
    IngestionSettings,
    Settings,
    ValidationSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "BankSyncSettings",
    "DotSeparatorMode",
    "IngestionSettings",
    "Settings",
    "ValidationSettings",
    "get_settings",
]
