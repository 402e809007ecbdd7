"""
Shared fixtures for Ledger Sync tests.

No real API calls: the aggregator is a FakeAggregator served through
httpx.MockTransport, and the clock is a FakeClock the test moves by hand.
"""

import datetime as dt
from typing import Any, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ledger_sync.audit import AuditLogger
from ledger_sync.config import BankSyncSettings, IngestionSettings
from ledger_sync.models import BankCredentials, LocalAccount, SyncContext
from ledger_sync.orchestrator import BankSyncFlow, IngestionFlow
from ledger_sync.services.bank import EnableBankingClient
from ledger_sync.services.storage import InMemoryLedgerStorage


BASE_URL = "https://api.enablebanking.com"


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, start: Optional[dt.datetime] = None):
        self.now = start or dt.datetime(2024, 6, 1, 12, 0, tzinfo=dt.timezone.utc)

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + dt.timedelta(**kwargs)


class FakeAggregator:
    """
    In-process stand-in for the aggregator API.

    Every route answers from a dict; an int value is returned as that
    HTTP status with an error body. Bytes are sent verbatim as JSON.
    """

    def __init__(self):
        self.catalogue: Any = {"accounts": []}
        self.sessions: dict[str, Any] = {}
        self.details: dict[str, Any] = {}
        self.transactions: dict[str, Any] = {}
        self.balances: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _reply(value: Any) -> httpx.Response:
        if isinstance(value, int):
            return httpx.Response(value, json={"message": f"error {value}"})
        if isinstance(value, bytes):
            return httpx.Response(200, content=value, headers={"Content-Type": "application/json"})
        return httpx.Response(200, json=value)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [p for p in request.url.path.split("/") if p]

        if request.method == "POST" and parts == ["sessions"]:
            return httpx.Response(200, json={
                "session_id": "session-new",
                "accounts": [{"uid": "acc-new", "name": "New account"}],
            })
        if request.method == "POST" and parts == ["auth"]:
            return httpx.Response(200, json={"url": "https://bank.example/authorize"})
        if parts == ["aspsps"]:
            return httpx.Response(200, json={"aspsps": [{"name": "Revolut", "country": "IT"}]})
        if parts == ["accounts"]:
            return self._reply(self.catalogue)
        if len(parts) == 2 and parts[0] == "sessions":
            return self._reply(self.sessions.get(parts[1], 404))
        if len(parts) == 3 and parts[0] == "accounts":
            uid, resource = parts[1], parts[2]
            table = {
                "details": self.details,
                "transactions": self.transactions,
                "balances": self.balances,
            }.get(resource)
            if table is not None:
                return self._reply(table.get(uid, 404))
        return httpx.Response(404, json={"message": "no route"})

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def credentials(private_key_pem) -> BankCredentials:
    return BankCredentials(
        app_id="app-123",
        client_id="client-456",
        private_key=private_key_pem,
    )


@pytest.fixture
def storage() -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def aggregator() -> FakeAggregator:
    return FakeAggregator()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def bank_settings() -> BankSyncSettings:
    return BankSyncSettings(base_url=BASE_URL)


@pytest.fixture
def bank_client(aggregator, bank_settings, recording_sleep) -> EnableBankingClient:
    http_client = httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(aggregator.handler),
    )
    return EnableBankingClient(
        settings=bank_settings,
        http_client=http_client,
        sleep=recording_sleep,
    )


@pytest.fixture
def ingestion_flow(storage, clock) -> IngestionFlow:
    return IngestionFlow(
        transaction_storage=storage,
        ignored_storage=storage,
        audit_logger=AuditLogger(storage),
        settings=IngestionSettings(),
        clock=clock,
    )


@pytest.fixture
def bank_sync_flow(bank_client, ingestion_flow, storage, bank_settings, clock) -> BankSyncFlow:
    return BankSyncFlow(
        client=bank_client,
        ingestion=ingestion_flow,
        transaction_storage=storage,
        sync_state=storage,
        audit_logger=AuditLogger(storage),
        settings=bank_settings,
        clock=clock,
    )


@pytest.fixture
def sync_context(credentials) -> SyncContext:
    return SyncContext(
        credentials=credentials,
        local_accounts=[
            LocalAccount(id="local-revolut", name="Revolut"),
            LocalAccount(id="local-intesa", name="Conto Intesa"),
        ],
    )
