"""Text parsing package: amount normalization and pattern extraction."""

from ledger_sync.parsing.amounts import (
    decimal_separator,
    normalize_token,
    parse_amount,
    parse_signed_amount,
)
from ledger_sync.parsing.rules import (
    RuleRegistry,
    RuleSet,
    default_notification_rules,
    default_sms_rules,
)
from ledger_sync.parsing.extractor import (
    DEFAULT_TRANSFER_KEYWORDS,
    PatternExtractor,
    clean_merchant_name,
    timestamp_to_date,
)

__all__ = [
    "decimal_separator",
    "normalize_token",
    "parse_amount",
    "parse_signed_amount",
    "RuleRegistry",
    "RuleSet",
    "default_notification_rules",
    "default_sms_rules",
    "DEFAULT_TRANSFER_KEYWORDS",
    "PatternExtractor",
    "clean_merchant_name",
    "timestamp_to_date",
]
