"""
Signed Assertions for the Bank Aggregator

Every authenticated call carries `Authorization: Bearer <jwt>`, an RS256
JWT signed with the application's private key:
- header `kid` = app id
- `iss` = `sub` = client id
- `aud` = API host
- one hour lifetime

Keys arrive in whatever shape the user pasted: PKCS#8 PEM, PKCS#1
("RSA PRIVATE KEY") PEM, a bare base64 body without armor, or a PEM with
literal "\\n" escapes. normalize_private_key() turns all of them into
PKCS#8 PEM, which is what the signer loads.
"""

import datetime as dt
import hashlib
import re
from typing import Callable, Optional

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from ledger_sync.models.bank import BankCredentials
from ledger_sync.services.bank.errors import BankAuthenticationError


_ARMOR = re.compile(r"-----(BEGIN|END) ([A-Z ]+)-----")
_TOKEN_REFRESH_MARGIN = dt.timedelta(seconds=60)


def _armor(body: str, label: str) -> bytes:
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return (
        f"-----BEGIN {label}-----\n" + "\n".join(lines) + f"\n-----END {label}-----\n"
    ).encode("ascii")


def _load(pem: bytes):
    return serialization.load_pem_private_key(pem, password=None)


def normalize_private_key(raw: str) -> bytes:
    """
    Return the key as unencrypted PKCS#8 PEM.

    Raises:
        BankAuthenticationError: If the input is not a usable private key
    """
    text = (raw or "").replace("\\n", "\n").strip()
    if not text:
        raise BankAuthenticationError("Private key is empty")

    try:
        if _ARMOR.search(text):
            key = _load(text.encode("ascii"))
        else:
            body = re.sub(r"\s+", "", text)
            try:
                key = _load(_armor(body, "PRIVATE KEY"))
            except ValueError:
                key = _load(_armor(body, "RSA PRIVATE KEY"))
    except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as e:
        raise BankAuthenticationError(f"Private key could not be read: {e}") from e

    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class AssertionSigner:
    """
    Builds and caches signed assertions.

    A token is reused until one minute before it expires, as long as the
    credentials have not changed.
    """

    def __init__(
        self,
        audience: str,
        ttl_seconds: int = 3600,
        clock: Callable[[], dt.datetime] = _utc_now,
    ):
        self.audience = audience
        self.ttl = dt.timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._cached: Optional[tuple[str, str, dt.datetime]] = None

    @staticmethod
    def _fingerprint(credentials: BankCredentials) -> str:
        material = "|".join((
            credentials.app_id,
            credentials.client_id,
            credentials.private_key.get_secret_value(),
        ))
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def sign(self, credentials: BankCredentials) -> str:
        """Build a fresh assertion."""
        key = normalize_private_key(credentials.private_key.get_secret_value())
        now = self._clock()
        payload = {
            "iss": credentials.client_id,
            "sub": credentials.client_id,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        try:
            return jwt.encode(
                payload,
                key,
                algorithm="RS256",
                headers={"kid": credentials.app_id, "typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise BankAuthenticationError(f"Could not sign assertion: {e}") from e

    def token(self, credentials: BankCredentials) -> str:
        """Cached assertion for `credentials`, re-signed when near expiry."""
        fingerprint = self._fingerprint(credentials)
        now = self._clock()
        if self._cached is not None:
            cached_fp, cached_token, expires_at = self._cached
            if cached_fp == fingerprint and now < expires_at - _TOKEN_REFRESH_MARGIN:
                return cached_token

        token = self.sign(credentials)
        self._cached = (fingerprint, token, now + self.ttl)
        return token

    def invalidate(self) -> None:
        self._cached = None
