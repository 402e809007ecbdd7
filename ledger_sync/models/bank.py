"""
Bank Aggregator Models

Typed views over the aggregator's JSON payloads, plus the sync-cycle
value objects shared with the UI collaborator.

DESIGN DECISION: Provider payloads are never duck-typed downstream.
Each known response variant is decoded here, once, through an explicit
alias table (camelCase, snake_case and ISO code spellings all appear in
the wild). Everything after this module works with typed fields.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ledger_sync.config import DotSeparatorMode
from ledger_sync.models.transaction import LocalAccount, utc_now
from ledger_sync.parsing.amounts import parse_signed_amount


# =============================================================================
# ALIAS TABLES
# =============================================================================

TRANSACTION_AMOUNT_KEYS = ("transactionAmount", "transaction_amount", "amount")
TRANSACTION_DATE_KEYS = ("bookingDate", "booking_date", "valueDate", "value_date", "transaction_date")
TRANSACTION_DESCRIPTION_KEYS = (
    "description",
    "remittanceInformationUnstructured",
    "remittance_information_unstructured",
    "remittance_information",
    "creditor_name",
    "debtor_name",
)
TRANSACTION_ID_KEYS = (
    "entryReference",
    "entry_reference",
    "transactionId",
    "transaction_id",
    "endToEndId",
    "end_to_end_id",
)
CREDIT_DEBIT_KEYS = ("creditDebitIndicator", "credit_debit_indicator")

BALANCE_TYPE_KEYS = ("balanceType", "balance_type")
BALANCE_AMOUNT_KEYS = ("balanceAmount", "balance_amount", "amount", "value")

# Keys walked when a numeric value is nested inside objects,
# e.g. {"balance_amount": {"amount": "12.30", "currency": "EUR"}}
NUMERIC_VALUE_KEYS = (
    "amount",
    "value",
    "balanceAmount",
    "balance_amount",
    "transactionAmount",
    "transaction_amount",
)

ACCOUNT_UID_KEYS = ("uid", "account_uid", "accountUid", "id")
ACCOUNT_NAME_KEYS = ("name", "product", "details", "account_name", "accountName")
ACCOUNT_ASPSP_KEYS = ("aspsp_name", "aspspName")


class BalanceType(str, Enum):
    """Semantic balance types, in reconciliation priority order."""
    INTERIM_AVAILABLE = "interimAvailable"
    CLOSING_AVAILABLE = "closingAvailable"
    INTERIM_BOOKED = "interimBooked"
    CLOSING_BOOKED = "closingBooked"
    EXPECTED = "expected"
    OPENING_BOOKED = "openingBooked"
    INFORMATION = "information"


BALANCE_PRIORITY: tuple[BalanceType, ...] = tuple(BalanceType)

# ISO 20022 codes used by some providers instead of the camelCase names
_BALANCE_TYPE_CODES = {
    "ITAV": BalanceType.INTERIM_AVAILABLE,
    "CLAV": BalanceType.CLOSING_AVAILABLE,
    "ITBD": BalanceType.INTERIM_BOOKED,
    "CLBD": BalanceType.CLOSING_BOOKED,
    "XPCD": BalanceType.EXPECTED,
    "OPBD": BalanceType.OPENING_BOOKED,
    "INFO": BalanceType.INFORMATION,
}


def first_present(payload: dict[str, Any], keys: Iterable[str]) -> Any:
    """Return the first non-empty value among `keys`, or None."""
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def extract_numeric(
    value: Any,
    max_depth: int = 4,
    dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
) -> Optional[Decimal]:
    """
    Pull a signed Decimal out of a possibly nested amount value.

    Numbers are taken as-is, strings go through locale-aware parsing, and
    dicts are walked through NUMERIC_VALUE_KEYS up to `max_depth` levels.
    Zero is a legitimate balance here, unlike in text extraction. NaN and
    infinities (which JSON decoding lets through) count as no amount.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
        return number if number.is_finite() else None
    if isinstance(value, str):
        return parse_signed_amount(value, dot_mode=dot_mode, allow_zero=True)
    if isinstance(value, dict) and max_depth > 0:
        for key in NUMERIC_VALUE_KEYS:
            if key in value:
                found = extract_numeric(value[key], max_depth - 1, dot_mode)
                if found is not None:
                    return found
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        parts = [str(v).strip() for v in value if v]
        return " ".join(parts) or None
    text = str(value).strip()
    return text or None


# =============================================================================
# PROVIDER PAYLOADS
# =============================================================================

class ProviderTransaction(BaseModel):
    """One entry of `GET /accounts/{uid}/transactions`."""

    amount: Decimal = Field(..., description="Signed amount, negative = money out")
    booking_date: Optional[dt.date] = None
    description: Optional[str] = None
    reference: Optional[str] = Field(
        default=None,
        description="entryReference / transactionId / endToEndId"
    )
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        max_depth: int = 4,
        dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
    ) -> Optional['ProviderTransaction']:
        """Decode a raw entry; returns None when no amount can be found."""
        amount = extract_numeric(
            first_present(payload, TRANSACTION_AMOUNT_KEYS), max_depth, dot_mode
        )
        if amount is None:
            return None

        indicator = str(first_present(payload, CREDIT_DEBIT_KEYS) or "").upper()
        if indicator == "DBIT" and amount > 0:
            amount = -amount

        booking_date = None
        raw_date = first_present(payload, TRANSACTION_DATE_KEYS)
        if raw_date:
            try:
                booking_date = dt.date.fromisoformat(str(raw_date)[:10])
            except ValueError:
                booking_date = None

        reference = first_present(payload, TRANSACTION_ID_KEYS)

        return cls(
            amount=amount,
            booking_date=booking_date,
            description=_as_text(first_present(payload, TRANSACTION_DESCRIPTION_KEYS)),
            reference=str(reference) if reference is not None else None,
            raw=payload,
        )


class BalanceEntry(BaseModel):
    """One entry of `GET /accounts/{uid}/balances`."""

    balance_type: Optional[BalanceType] = None
    raw_type: Optional[str] = None
    amount: Decimal

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        max_depth: int = 4,
        dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
    ) -> Optional['BalanceEntry']:
        amount = extract_numeric(
            first_present(payload, BALANCE_AMOUNT_KEYS), max_depth, dot_mode
        )
        if amount is None:
            return None

        raw_type = first_present(payload, BALANCE_TYPE_KEYS)
        return cls(
            balance_type=parse_balance_type(raw_type),
            raw_type=str(raw_type) if raw_type is not None else None,
            amount=amount,
        )


def parse_balance_type(raw: Any) -> Optional[BalanceType]:
    """Map a camelCase name or ISO code to a BalanceType."""
    if raw is None:
        return None
    text = str(raw).strip()
    if text.upper() in _BALANCE_TYPE_CODES:
        return _BALANCE_TYPE_CODES[text.upper()]
    for balance_type in BalanceType:
        if balance_type.value.lower() == text.lower():
            return balance_type
    return None


def select_balance(entries: list[BalanceEntry]) -> Optional[BalanceEntry]:
    """
    Pick the authoritative balance.

    Entries are tried in BALANCE_PRIORITY order; if none carries a known
    type, the first entry present wins.
    """
    for wanted in BALANCE_PRIORITY:
        for entry in entries:
            if entry.balance_type == wanted:
                return entry
    return entries[0] if entries else None


class RemoteAccount(BaseModel):
    """A bank account as reported by the aggregator."""
    model_config = ConfigDict(str_strip_whitespace=True)

    uid: str = Field(..., min_length=1)
    name: Optional[str] = None
    aspsp_name: Optional[str] = None
    iban: Optional[str] = None
    session_id: Optional[str] = Field(
        default=None,
        description="Session the account was most recently seen under"
    )

    @property
    def label(self) -> str:
        """Human-readable label for audit descriptions."""
        return self.iban or self.name or self.uid

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Optional['RemoteAccount']:
        uid = first_present(payload, ACCOUNT_UID_KEYS)
        if uid is None:
            return None

        aspsp_name = first_present(payload, ACCOUNT_ASPSP_KEYS)
        aspsp = payload.get("aspsp")
        if aspsp_name is None and isinstance(aspsp, dict):
            aspsp_name = aspsp.get("name")

        iban = None
        account_id = payload.get("account_id")
        if isinstance(account_id, dict):
            iban = account_id.get("iban")
        iban = iban or payload.get("iban")

        return cls(
            uid=str(uid),
            name=_as_text(first_present(payload, ACCOUNT_NAME_KEYS)),
            aspsp_name=_as_text(aspsp_name),
            iban=_as_text(iban),
        )

    def enriched_with(self, other: 'RemoteAccount') -> 'RemoteAccount':
        """Fill missing descriptive fields from a catalogue entry."""
        return self.model_copy(
            update={
                "name": self.name or other.name,
                "aspsp_name": self.aspsp_name or other.aspsp_name,
                "iban": self.iban or other.iban,
            }
        )


class SessionAccounts(BaseModel):
    """
    Decoded `GET /sessions/{id}` (or `POST /sessions`) payload.

    `accounts` holds fully described accounts; `account_ids` holds bare
    identifiers that still need enrichment or an individual fetch.
    """

    accounts: list[RemoteAccount] = Field(default_factory=list)
    account_ids: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.accounts and not self.account_ids

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> 'SessionAccounts':
        raw_accounts = payload.get("accounts_data") or payload.get("accounts") or []
        accounts: list[RemoteAccount] = []
        account_ids: list[str] = []
        for item in raw_accounts:
            if isinstance(item, str):
                account_ids.append(item)
            elif isinstance(item, dict):
                account = RemoteAccount.from_payload(item)
                if account is None:
                    continue
                # A bare {"uid": ...} reference carries nothing to reconcile against
                if account.name or account.iban or account.aspsp_name:
                    accounts.append(account)
                else:
                    account_ids.append(account.uid)
        return cls(accounts=accounts, account_ids=account_ids)


# =============================================================================
# SYNC CYCLE VALUE OBJECTS
# =============================================================================

class BankCredentials(BaseModel):
    """
    Aggregator application credentials, owned by the UI collaborator.

    The engine only reads them to sign assertions.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    app_id: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    private_key: SecretStr


class SyncContext(BaseModel):
    """
    Everything one sync call needs from the application layer.

    Passed explicitly into every orchestrator call; the engine holds no
    ambient credential or account state.
    """

    credentials: BankCredentials
    local_accounts: list[LocalAccount] = Field(default_factory=list)
    correlation_id: UUID = Field(default_factory=uuid4)


class AccountMapping(BaseModel):
    """User-set association of a remote account with a local one."""

    remote_uid: str = Field(..., min_length=1)
    local_account_id: str = Field(..., min_length=1)
    created_at: dt.datetime = Field(default_factory=utc_now)


class CachedBalance(BaseModel):
    """Last authoritative balance seen for a local account."""

    account_id: str
    balance: Decimal
    balance_type: Optional[str] = None
    synced_at: dt.datetime = Field(default_factory=utc_now)


class SyncResult(BaseModel):
    """Outcome of one sync cycle, as returned to the UI collaborator."""

    transactions_added: int = Field(default=0, ge=0)
    adjustments_created: int = Field(default=0, ge=0)
    accounts_synced: int = Field(default=0, ge=0)
    accounts_failed: int = Field(default=0, ge=0)
    sessions_pruned: list[str] = Field(default_factory=list)
    skipped: bool = False
    skip_reason: Optional[str] = None

    @classmethod
    def skipped_because(cls, reason: str) -> 'SyncResult':
        return cls(skipped=True, skip_reason=reason)
