"""
Pattern Extraction Engine

Turns a raw SMS body or notification text into a CandidateTransaction.

Flow:
1. Pick the first rule set whose identifier occurs in the source
2. Try its patterns in order expense -> income -> transfer; first match wins
3. Normalize the captured amount; an unreliable (unparseable or zero)
   amount makes the whole signal unrecognized
4. Clean the merchant name and flag likely transfers between own accounts

Unrecognized input is not an error: extract() returns None.
"""

import datetime as dt
import re
from typing import Iterable, Optional

import structlog

from ledger_sync.config.settings import DotSeparatorMode
from ledger_sync.models.transaction import (
    CandidateTransaction,
    ConfirmationType,
    SourceType,
    TransactionType,
)
from ledger_sync.parsing.amounts import parse_amount
from ledger_sync.parsing.rules import PATTERN_ORDER, RuleRegistry


logger = structlog.get_logger(__name__)


# Banks and wallets that, seen as an expense counterparty, usually mean
# money moved between the user's own accounts
DEFAULT_TRANSFER_KEYWORDS = (
    "revolut", "paypal", "postepay", "poste", "bbva", "unicredit", "intesa",
    "bnl", "banco", "banca", "conto", "carta", "prepagata", "coinbase",
    "binance", "crypto", "kraken", "nexo", "n26", "wise", "transferwise",
    "hype", "satispay", "tinaba", "yap", "buddybank", "credit agricole",
    "ing", "webank", "fineco", "widiba", "chebanca", "mediolanum",
    "monte paschi", "mps", "ubi", "bper", "carige",
)

DEFAULT_DESCRIPTIONS = {
    TransactionType.EXPENSE: "Payment",
    TransactionType.INCOME: "Credit",
    TransactionType.TRANSFER: "Transfer",
}

_MERCHANT_NOISE = (
    re.compile(r"\s+\d{2}/\d{2}/\d{2,4}.*$"),  # trailing date
    re.compile(r"\s+\d{2}:\d{2}.*$"),           # trailing time
    re.compile(r"per info.*$", re.IGNORECASE),  # bank footer
    re.compile(r"\*+\d+\*+"),                    # masked card number
)


def clean_merchant_name(merchant: str) -> str:
    """
    Strip trailing dates, times, footers and masked card numbers.

    Falls back to the raw capture when cleanup leaves nothing.
    """
    cleaned = merchant
    for pattern in _MERCHANT_NOISE:
        cleaned = pattern.sub("", cleaned)
    cleaned = cleaned.strip()
    return cleaned or merchant.strip()


def timestamp_to_date(timestamp_ms: int) -> dt.date:
    """UTC calendar date of an epoch-millis timestamp."""
    return dt.datetime.fromtimestamp(timestamp_ms / 1000, tz=dt.timezone.utc).date()


class PatternExtractor:
    """
    Extracts candidate transactions from free text using a RuleRegistry.

    One extractor is bound to one registry (SMS or notification) and one
    source type.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        source_type: SourceType,
        dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
        transfer_keywords: Optional[Iterable[str]] = None,
    ):
        self.registry = registry
        self.source_type = source_type
        self.dot_mode = dot_mode
        keywords = transfer_keywords if transfer_keywords is not None else DEFAULT_TRANSFER_KEYWORDS
        self._transfer_patterns = [
            re.compile(rf"\b{re.escape(k.lower())}\b") for k in keywords if k.strip()
        ]

    def extract(
        self,
        source: str,
        text: str,
        timestamp_ms: int,
    ) -> Optional[CandidateTransaction]:
        """
        Extract a candidate from `text` sent by `source`.

        Args:
            source: SMS sender or notifying app name
            text: Message body (for notifications, title and text joined)
            timestamp_ms: Message timestamp in epoch milliseconds

        Returns:
            CandidateTransaction, or None if the text is unrecognized
        """
        rule_set = self.registry.match(source)
        if rule_set is None:
            logger.debug("no_rule_set", source=source, source_type=self.source_type.value)
            return None

        kind, match = None, None
        for candidate_kind in PATTERN_ORDER:
            pattern = rule_set.pattern_for(candidate_kind)
            if pattern is None:
                continue
            match = pattern.search(text)
            if match:
                kind = candidate_kind
                break

        if match is None:
            logger.debug("no_pattern_matched", rule_set=rule_set.name)
            return None

        amount = parse_amount(match.group(1), self.dot_mode)
        if amount is None:
            logger.debug(
                "unreliable_amount",
                rule_set=rule_set.name,
                token=match.group(1),
            )
            return None

        captured = ""
        if match.lastindex and match.lastindex >= 2 and match.group(2):
            captured = match.group(2).strip()

        to_account = None
        if kind == TransactionType.TRANSFER:
            if not captured:
                logger.debug("transfer_without_destination", rule_set=rule_set.name)
                return None
            to_account = captured
            description = DEFAULT_DESCRIPTIONS[kind]
        elif kind == TransactionType.EXPENSE:
            description = clean_merchant_name(captured) if captured else DEFAULT_DESCRIPTIONS[kind]
        else:
            description = captured or DEFAULT_DESCRIPTIONS[kind]

        requires_confirmation = (
            kind == TransactionType.EXPENSE and self.is_likely_transfer(description)
        )

        return CandidateTransaction(
            type=kind,
            amount=amount,
            description=description[:500],
            date=timestamp_to_date(timestamp_ms),
            account=rule_set.account_name,
            to_account=to_account,
            source_type=self.source_type,
            source_app=rule_set.name.lower(),
            raw_text=text,
            requires_confirmation=requires_confirmation,
            confirmation_type=(
                ConfirmationType.TRANSFER_OR_EXPENSE if requires_confirmation else None
            ),
        )

    def is_likely_transfer(self, description: str) -> bool:
        """True when an expense counterparty names a bank or wallet."""
        lowered = description.lower()
        return any(p.search(lowered) for p in self._transfer_patterns)

    def supported_sources(self) -> list[str]:
        return self.registry.names()
