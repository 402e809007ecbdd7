"""
Extraction Rule Registry

A rule set ties a source identifier (matched case-insensitively as a
substring of the SMS sender or the notifying app) to up to three
patterns: expense, income and transfer. Each pattern captures the amount
in group 1 and the counterparty (or, for transfers, the destination
account) in group 2.

New rule sets are added through RuleRegistry.register(); the extractor
never needs to change.
"""

import re
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledger_sync.models.transaction import TransactionType


# Amount capture shared by most rules: digits with optional '.'/',' groups
AMOUNT = r"(\d+(?:[.,]\d+)*)"

PATTERN_ORDER = (
    TransactionType.EXPENSE,
    TransactionType.INCOME,
    TransactionType.TRANSFER,
)


class RuleSet(BaseModel):
    """Patterns for one bank or wallet."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name, e.g. 'Revolut'")
    identifier: str = Field(
        ...,
        min_length=1,
        description="Substring looked up in the sender / app name"
    )
    account_name: str = Field(
        ...,
        min_length=1,
        description="Local account label transactions are booked to"
    )
    expense: Optional[re.Pattern] = None
    income: Optional[re.Pattern] = None
    transfer: Optional[re.Pattern] = None

    @field_validator("expense", "income", "transfer", mode="before")
    @classmethod
    def compile_pattern(cls, v):
        if isinstance(v, str):
            return re.compile(v, re.IGNORECASE)
        return v

    def matches_source(self, source: str) -> bool:
        return self.identifier.lower() in (source or "").lower()

    def pattern_for(self, kind: TransactionType) -> Optional[re.Pattern]:
        return {
            TransactionType.EXPENSE: self.expense,
            TransactionType.INCOME: self.income,
            TransactionType.TRANSFER: self.transfer,
        }.get(kind)


class RuleRegistry:
    """
    Ordered collection of rule sets.

    The first rule set whose identifier occurs in the source wins; there
    is no scoring and no fallback to later rule sets.
    """

    def __init__(self, rule_sets: Optional[Iterable[RuleSet]] = None):
        self._rule_sets: list[RuleSet] = list(rule_sets or [])

    def register(self, rule_set: RuleSet) -> None:
        """Append a rule set; earlier registrations keep priority."""
        self._rule_sets.append(rule_set)

    def match(self, source: str) -> Optional[RuleSet]:
        for rule_set in self._rule_sets:
            if rule_set.matches_source(source):
                return rule_set
        return None

    def names(self) -> list[str]:
        """Supported banks / apps, in priority order."""
        return [rule_set.name for rule_set in self._rule_sets]

    def __len__(self) -> int:
        return len(self._rule_sets)


# =============================================================================
# DEFAULT RULE SETS
# =============================================================================

def default_sms_rules() -> RuleRegistry:
    """Rule sets for bank SMS alerts."""
    return RuleRegistry([
        RuleSet(
            name="Revolut",
            identifier="revolut",
            account_name="Revolut",
            expense=rf"(?:hai\s+speso|payment\s+of|spent).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:at|presso|da|in)\s+(.+)",
            income=rf"(?:ricevuto|received).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:from|da)\s+(.+)",
            transfer=rf"(?:trasferimento|transfer).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:to|a|verso)\s+(.+)",
        ),
        RuleSet(
            name="PayPal",
            identifier="paypal",
            account_name="PayPal",
            expense=rf"(?:hai\s+inviato|inviato|sent).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:to|a)\s+(.+)",
            income=rf"(?:hai\s+ricevuto|ricevuto|received).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:from|da)\s+(.+)",
        ),
        RuleSet(
            name="Postepay",
            identifier="postepay",
            account_name="Postepay",
            expense=rf"(?:pagamento|addebito).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:presso|at)\s+(.+)",
            income=rf"(?:accredito|ricarica).*?{AMOUNT}",
            transfer=rf"bonifico.*?{AMOUNT}\s*(?:€|EUR)?.*?(?:a|verso)\s+(.+)",
        ),
        RuleSet(
            name="BBVA",
            identifier="bbva",
            account_name="BBVA",
            expense=rf"(?:compra|pago|cargo).*?{AMOUNT}\s*(?:€|EUR)?.*?(?:en|at)\s+(.+)",
            income=rf"(?:ingreso|abono).*?{AMOUNT}",
            transfer=rf"transferencia.*?{AMOUNT}\s*(?:€|EUR)?.*?(?:a|para)\s+(.+)",
        ),
        RuleSet(
            name="Intesa Sanpaolo",
            identifier="intesa",
            account_name="Intesa Sanpaolo",
            expense=rf"(?:addebito|pagamento)\s+carta.*?{AMOUNT}\s*(?:€|EUR)?.*?presso\s+(.+)",
            income=rf"accredito.*?{AMOUNT}",
            transfer=rf"bonifico.*?{AMOUNT}\s*(?:€|EUR)?.*?(?:a|verso)\s+(.+)",
        ),
        RuleSet(
            name="UniCredit",
            identifier="unicredit",
            account_name="UniCredit",
            expense=rf"(?:addebito|pagamento|autorizzata|transazione).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:presso|at|c/o)\s+(.+)",
            income=rf"(?:accredito|bonifico).*?{AMOUNT}",
            transfer=rf"bonifico.*?{AMOUNT}\s*(?:EUR|€)?.*?(?:verso|a)\s+(.+)",
        ),
        RuleSet(
            name="Mastercard",
            identifier="mastercard",
            account_name="Carta Mastercard",
            expense=rf"(?:autorizzazione|spesa|pagamento).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:presso|at)\s+(.+)",
        ),
    ])


def default_notification_rules() -> RuleRegistry:
    """Rule sets for banking app push notifications (title + text)."""
    return RuleRegistry([
        RuleSet(
            name="Revolut",
            identifier="revolut",
            account_name="Revolut",
            expense=rf"(?:you\s+spent|hai\s+speso|payment|pagamento).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:at|presso|in|to|a|di)\s+(.+)",
            income=rf"(?:you\s+received|hai\s+ricevuto|received|accredito).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:from|da)\s+(.+)",
            transfer=rf"(?:transfer|trasferimento|bonifico).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:to|a)\s+(.+)",
        ),
        RuleSet(
            name="PayPal",
            identifier="paypal",
            account_name="PayPal",
            expense=rf"(?:you\s+sent|hai\s+inviato|pagamento).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:to|a)\s+(.+)",
            income=rf"(?:you\s+received|hai\s+ricevuto).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:from|da)\s+(.+)",
        ),
        RuleSet(
            name="Postepay",
            identifier="postepay",
            account_name="Postepay",
            expense=rf"(?:pagamento|addebito|autorizzazione).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:presso|at|c/o)\s+(.+)",
            income=rf"(?:accredito|ricarica).*?{AMOUNT}",
            transfer=rf"bonifico.*?{AMOUNT}\s*(?:EUR|€)?.*?(?:a|verso)\s+(.+)",
        ),
        RuleSet(
            name="BBVA",
            identifier="bbva",
            account_name="BBVA",
            expense=rf"(?:compra|pago|cargo|acquisto).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:en|c/o)\s+(.+)",
            income=rf"(?:ingreso|abono|entrata).*?{AMOUNT}",
            transfer=rf"transferencia.*?{AMOUNT}\s*(?:EUR|€)?.*?a\s+(.+)",
        ),
        RuleSet(
            name="Intesa Sanpaolo",
            identifier="intesa",
            account_name="Intesa Sanpaolo",
            expense=rf"(?:addebito|pagamento|pos).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:presso|c/o)\s+(.+)",
            income=rf"accredito.*?{AMOUNT}",
            transfer=rf"bonifico.*?{AMOUNT}\s*(?:EUR|€)?.*?(?:a|favore)\s+(.+)",
        ),
        RuleSet(
            name="BNL",
            identifier="bnl",
            account_name="BNL",
            expense=rf"(?:pagamento|prelievo|addebito).*?{AMOUNT}\s*(?:EUR|€)?.*?(?:presso|c/o)\s+(.+)",
            income=rf"accredito.*?{AMOUNT}",
        ),
        RuleSet(
            name="UniCredit",
            identifier="unicredit",
            account_name="UniCredit",
            # "autorizzata op.Internet 60,40 EUR carta *1210 c/o PAYPAL *SHOP.IT"
            expense=(
                r"(?:autorizzata|addebito|pagamento|transazione)\s+(?:op\.?\w*\s+)?"
                r"(\d+[.,]\d{2})\s*(?:EUR|€).*?(?:c/o|presso|at)\s+"
                r"(.+?)(?:\s+\d{6,}|\s+\d{2}/\d{2}/\d{2}|per info|$)"
            ),
            income=r"(?:accredito|bonifico).*?(\d+[.,]\d{2})",
            transfer=r"bonifico.*?(\d+[.,]\d{2})\s*(?:EUR|€)?.*?(?:verso|a)\s+(.+)",
        ),
    ])
