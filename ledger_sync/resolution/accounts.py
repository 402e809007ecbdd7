"""
Local Account Resolver

Maps a remote bank account to a local account id, in order:
1. Explicit user mapping
2. Brand keywords (tested against the account name and the ASPSP name)
3. Fuzzy containment against local account names
4. The remote uid itself, as an unmapped pseudo-account

The brand table is heuristic and never complete, so it is a constructor
argument with register_brand() for additions.
"""

from enum import Enum
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel

from ledger_sync.models.bank import RemoteAccount
from ledger_sync.models.transaction import LocalAccount


logger = structlog.get_logger(__name__)


DEFAULT_BRAND_KEYWORDS: dict[str, tuple[str, ...]] = {
    "revolut": ("revolut",),
    "paypal": ("paypal",),
    "bbva": ("bbva",),
    "poste": ("poste", "postepay", "bancoposta"),
    "unicredit": ("unicredit",),
    "intesa": ("intesa", "sanpaolo"),
    "n26": ("n26",),
    "hype": ("hype",),
    "crypto": ("binance", "coinbase", "kraken", "crypto.com", "nexo", "crypto"),
}


class ResolutionMethod(str, Enum):
    EXPLICIT = "explicit"
    BRAND = "brand"
    FUZZY = "fuzzy"
    UNMAPPED = "unmapped"


class AccountResolution(BaseModel):
    remote_uid: str
    local_account_id: str
    method: ResolutionMethod

    @property
    def is_mapped(self) -> bool:
        return self.method != ResolutionMethod.UNMAPPED


class LocalAccountResolver:
    """Resolve remote accounts against the user's local accounts."""

    def __init__(
        self,
        brand_keywords: Optional[dict[str, Iterable[str]]] = None,
        min_name_length: int = 3,
    ):
        table = brand_keywords if brand_keywords is not None else DEFAULT_BRAND_KEYWORDS
        self._brands: dict[str, tuple[str, ...]] = {
            brand.lower(): tuple(k.lower() for k in keywords)
            for brand, keywords in table.items()
        }
        self.min_name_length = min_name_length

    def register_brand(self, brand: str, keywords: Iterable[str]) -> None:
        """Add or extend a brand's keyword list."""
        key = brand.lower()
        existing = self._brands.get(key, ())
        self._brands[key] = existing + tuple(
            k.lower() for k in keywords if k.lower() not in existing
        )

    def brands(self) -> dict[str, tuple[str, ...]]:
        return dict(self._brands)

    def detect_brand(self, remote: RemoteAccount) -> Optional[str]:
        """First brand whose keywords occur in the account or ASPSP name."""
        haystacks = [h.lower() for h in (remote.name, remote.aspsp_name) if h]
        for brand, keywords in self._brands.items():
            if any(k in h for k in keywords for h in haystacks):
                return brand
        return None

    def resolve(
        self,
        remote: RemoteAccount,
        local_accounts: list[LocalAccount],
        mappings: Optional[dict[str, str]] = None,
    ) -> AccountResolution:
        """
        Pick the local account for `remote`.

        Never fails: unresolvable accounts come back as UNMAPPED with the
        remote uid as their local id.
        """
        mapped = (mappings or {}).get(remote.uid)
        if mapped:
            return AccountResolution(
                remote_uid=remote.uid,
                local_account_id=mapped,
                method=ResolutionMethod.EXPLICIT,
            )

        brand = self.detect_brand(remote)
        if brand is not None:
            keywords = self._brands[brand]
            for account in local_accounts:
                name = account.name.lower()
                if any(k in name for k in keywords):
                    return AccountResolution(
                        remote_uid=remote.uid,
                        local_account_id=account.id,
                        method=ResolutionMethod.BRAND,
                    )

        remote_names = [n.lower() for n in (remote.name, remote.aspsp_name) if n]
        for account in local_accounts:
            local_name = account.name.strip().lower()
            if len(local_name) < self.min_name_length:
                continue
            if any(local_name in r or r in local_name for r in remote_names):
                return AccountResolution(
                    remote_uid=remote.uid,
                    local_account_id=account.id,
                    method=ResolutionMethod.FUZZY,
                )

        logger.warning(
            "remote_account_unmapped",
            remote_uid=remote.uid,
            remote_name=remote.name,
            aspsp_name=remote.aspsp_name,
        )
        return AccountResolution(
            remote_uid=remote.uid,
            local_account_id=remote.uid,
            method=ResolutionMethod.UNMAPPED,
        )
