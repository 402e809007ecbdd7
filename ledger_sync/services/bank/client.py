"""
Bank Aggregator Client (Enable Banking API shapes)

Thin async client over the handful of endpoints a sync cycle needs.
It does transport, authentication headers, rate-limit retries and
payload decoding; it makes no sync decisions.

Transport rules:
- Every call carries `Authorization: Bearer <signed assertion>`
- HTTP 429 is retried with exponential backoff (base 1.5 s, doubling,
  3 retries by default); nothing else is retried
- Network failures become BankConnectivityError, distinct from
  API-level errors
- HTTP 401 becomes SessionExpiredError
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger_sync.config.settings import BankSyncSettings, DotSeparatorMode, get_settings
from ledger_sync.models.bank import (
    BalanceEntry,
    BankCredentials,
    ProviderTransaction,
    RemoteAccount,
    SessionAccounts,
)
from ledger_sync.services.bank.errors import (
    BankApiError,
    BankConnectivityError,
    RateLimitedError,
    SessionExpiredError,
)
from ledger_sync.services.bank.signing import AssertionSigner


logger = structlog.get_logger(__name__)

# Status codes a provider uses to refuse the `status=both` filter
_FILTER_REJECTED = frozenset({400, 404, 422})


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:300]
    if isinstance(body, dict):
        for key in ("message", "detail", "error", "error_description"):
            if body.get(key):
                return str(body[key])[:300]
    return str(body)[:300]


class EnableBankingClient:
    """
    Async client for the bank aggregator API.

    Usage:
        async with EnableBankingClient() as client:
            accounts = await client.list_accounts(credentials)
    """

    def __init__(
        self,
        settings: Optional[BankSyncSettings] = None,
        signer: Optional[AssertionSigner] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
    ):
        self._settings = settings or get_settings().bank_sync
        self._signer = signer or AssertionSigner(
            audience=self._settings.audience,
            ttl_seconds=self._settings.assertion_ttl_seconds,
        )
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep
        self._dot_mode = dot_mode

    async def __aenter__(self) -> "EnableBankingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self._settings.request_timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def authenticate(self, credentials: BankCredentials) -> str:
        """
        Produce (or reuse) the signed assertion.

        Raises:
            BankAuthenticationError: If the credentials cannot be signed
        """
        return self._signer.token(credentials)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _send_once(
        self,
        method: str,
        path: str,
        credentials: BankCredentials,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        token = self._signer.token(credentials)
        try:
            response = await self._get_client().request(
                method,
                path,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as e:
            logger.warning("bank_transport_failed", path=path, error=str(e))
            raise BankConnectivityError(f"Could not reach bank API ({path}): {e}") from e

        if response.status_code == 429:
            logger.info("bank_rate_limited", path=path)
            raise RateLimitedError(_error_detail(response), path)
        return response

    async def request(
        self,
        method: str,
        path: str,
        credentials: BankCredentials,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Perform one API call with rate-limit retries.

        Returns:
            The decoded JSON object (empty dict for an empty body)

        Raises:
            BankConnectivityError: Network or TLS failure
            RateLimitedError: Still rate limited after every retry
            SessionExpiredError: HTTP 401
            BankApiError: Any other non-success status
            BankAuthenticationError: The assertion could not be signed
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RateLimitedError),
            stop=stop_after_attempt(self._settings.rate_limit_max_retries + 1),
            wait=wait_exponential(
                multiplier=self._settings.rate_limit_base_delay_seconds,
                exp_base=2,
            ),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._send_once(method, path, credentials, params, json)

        if response.status_code == 401:
            raise SessionExpiredError(_error_detail(response), path)
        if response.status_code >= 400:
            raise BankApiError(response.status_code, _error_detail(response), path)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise BankApiError(response.status_code, "Response is not JSON", path) from e
        return body if isinstance(body, dict) else {"items": body}

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    async def list_aspsps(
        self,
        credentials: BankCredentials,
        country: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Banks available through the aggregator."""
        params = {"country": country} if country else None
        data = await self.request("GET", "/aspsps", credentials, params=params)
        return list(data.get("aspsps") or [])

    async def start_authorization(
        self,
        credentials: BankCredentials,
        aspsp_name: str,
        country: str,
        redirect_url: str,
        state: str,
        valid_until: str,
    ) -> str:
        """
        Start a bank authorization.

        Returns:
            The URL the user must open to authorize access
        """
        data = await self.request(
            "POST",
            "/auth",
            credentials,
            json={
                "aspsp": {"name": aspsp_name, "country": country},
                "redirect_url": redirect_url,
                "state": state,
                "access": {
                    "valid_until": valid_until,
                    "balances": True,
                    "transactions": True,
                },
            },
        )
        url = data.get("url")
        if not url:
            raise BankApiError(200, "Authorization response has no url", "/auth")
        return str(url)

    async def create_session(
        self,
        credentials: BankCredentials,
        code: str,
        redirect_url: Optional[str] = None,
    ) -> tuple[str, SessionAccounts]:
        """Exchange an authorization code for a session."""
        body: dict[str, Any] = {"code": code}
        if redirect_url:
            body["redirect_url"] = redirect_url
        data = await self.request("POST", "/sessions", credentials, json=body)
        session_id = data.get("session_id")
        if not session_id:
            raise BankApiError(200, "Session response has no session_id", "/sessions")
        return str(session_id), SessionAccounts.from_payload(data)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def get_session(
        self,
        credentials: BankCredentials,
        session_id: str,
    ) -> SessionAccounts:
        data = await self.request("GET", f"/sessions/{session_id}", credentials)
        return SessionAccounts.from_payload(data)

    async def list_accounts(self, credentials: BankCredentials) -> list[RemoteAccount]:
        """Global account catalogue."""
        data = await self.request("GET", "/accounts", credentials)
        accounts = []
        for item in data.get("accounts") or []:
            if isinstance(item, dict):
                account = RemoteAccount.from_payload(item)
                if account is not None:
                    accounts.append(account)
        return accounts

    async def get_account_details(
        self,
        credentials: BankCredentials,
        account_uid: str,
    ) -> Optional[RemoteAccount]:
        data = await self.request("GET", f"/accounts/{account_uid}/details", credentials)
        return RemoteAccount.from_payload({**data, "uid": account_uid})

    # -------------------------------------------------------------------------
    # Transactions and balances
    # -------------------------------------------------------------------------

    async def _fetch_transaction_pages(
        self,
        credentials: BankCredentials,
        account_uid: str,
        base_params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        path = f"/accounts/{account_uid}/transactions"
        raw: list[dict[str, Any]] = []
        params = dict(base_params)
        for _ in range(self._settings.max_transaction_pages):
            data = await self.request("GET", path, credentials, params=params or None)
            raw.extend(t for t in data.get("transactions") or [] if isinstance(t, dict))
            continuation_key = data.get("continuation_key")
            if not continuation_key:
                break
            params = {**base_params, "continuation_key": continuation_key}
        else:
            logger.warning("transaction_page_cap_reached", account_uid=account_uid)
        return raw

    async def get_transactions(
        self,
        credentials: BankCredentials,
        account_uid: str,
    ) -> list[ProviderTransaction]:
        """
        Pending and booked transactions for an account.

        Falls back to an unfiltered listing when the provider rejects
        `status=both`.
        """
        try:
            raw = await self._fetch_transaction_pages(
                credentials, account_uid, {"status": "both"}
            )
        except BankApiError as e:
            if e.status_code not in _FILTER_REJECTED:
                raise
            logger.info(
                "transaction_status_filter_rejected",
                account_uid=account_uid,
                status_code=e.status_code,
            )
            raw = await self._fetch_transaction_pages(credentials, account_uid, {})

        transactions = []
        for payload in raw:
            decoded = ProviderTransaction.from_payload(
                payload,
                max_depth=self._settings.balance_value_max_depth,
                dot_mode=self._dot_mode,
            )
            if decoded is None:
                logger.debug("transaction_without_amount", account_uid=account_uid)
                continue
            transactions.append(decoded)
        return transactions

    async def get_balances(
        self,
        credentials: BankCredentials,
        account_uid: str,
    ) -> list[BalanceEntry]:
        data = await self.request("GET", f"/accounts/{account_uid}/balances", credentials)
        entries = []
        for payload in data.get("balances") or []:
            if not isinstance(payload, dict):
                continue
            entry = BalanceEntry.from_payload(
                payload,
                max_depth=self._settings.balance_value_max_depth,
                dot_mode=self._dot_mode,
            )
            if entry is not None:
                entries.append(entry)
        return entries
