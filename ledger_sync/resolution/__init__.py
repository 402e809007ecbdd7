"""Account resolution package."""

from ledger_sync.resolution.accounts import (
    DEFAULT_BRAND_KEYWORDS,
    AccountResolution,
    LocalAccountResolver,
    ResolutionMethod,
)

__all__ = [
    "DEFAULT_BRAND_KEYWORDS",
    "AccountResolution",
    "LocalAccountResolver",
    "ResolutionMethod",
]
