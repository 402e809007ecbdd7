"""
Tests for the aggregator HTTP client.

Transport is httpx.MockTransport; retries sleep through a recorder.
"""

from decimal import Decimal

import httpx
import jwt
import pytest

from ledger_sync.services.bank import (
    BankApiError,
    BankConnectivityError,
    EnableBankingClient,
    RateLimitedError,
    SessionExpiredError,
)

from conftest import BASE_URL


def client_for(handler, bank_settings, recording_sleep) -> EnableBankingClient:
    return EnableBankingClient(
        settings=bank_settings,
        http_client=httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)),
        sleep=recording_sleep,
    )


class TestTransport:
    """Authentication header, retries and error mapping."""

    @pytest.mark.asyncio
    async def test_bearer_assertion_is_sent(self, bank_client, aggregator, credentials):
        await bank_client.list_accounts(credentials)

        auth = aggregator.requests[0].headers["Authorization"]
        assert auth.startswith("Bearer ")
        assert jwt.get_unverified_header(auth[len("Bearer "):])["kid"] == "app-123"

    @pytest.mark.asyncio
    async def test_rate_limit_backoff_then_success(self, bank_settings, recording_sleep, credentials):
        """Test two 429s followed by success: delays 1.5 s then 3 s."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) <= 2:
                return httpx.Response(429, json={"message": "slow down"})
            return httpx.Response(200, json={"accounts": []})

        client = client_for(handler, bank_settings, recording_sleep)
        assert await client.list_accounts(credentials) == []
        assert len(calls) == 3
        assert recording_sleep.delays == [1.5, 3.0]

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, bank_settings, recording_sleep, credentials):
        """Test that 3 retries means 4 attempts, then the 429 surfaces."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, json={"message": "slow down"})

        client = client_for(handler, bank_settings, recording_sleep)
        with pytest.raises(RateLimitedError):
            await client.list_accounts(credentials)
        assert len(calls) == 4
        assert recording_sleep.delays == [1.5, 3.0, 6.0]

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, bank_settings, recording_sleep, credentials):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"detail": "boom"})

        client = client_for(handler, bank_settings, recording_sleep)
        with pytest.raises(BankApiError) as exc_info:
            await client.list_accounts(credentials)
        assert exc_info.value.status_code == 500
        assert "boom" in exc_info.value.detail
        assert len(calls) == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_401_is_session_expired(self, bank_client, aggregator, credentials):
        aggregator.sessions["s1"] = 401
        with pytest.raises(SessionExpiredError):
            await bank_client.get_session(credentials, "s1")

    @pytest.mark.asyncio
    async def test_network_failure_is_connectivity_error(self, bank_settings, recording_sleep, credentials):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = client_for(handler, bank_settings, recording_sleep)
        with pytest.raises(BankConnectivityError):
            await client.list_accounts(credentials)

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self, bank_settings):
        async with EnableBankingClient(settings=bank_settings) as client:
            http = client._get_client()
        assert http.is_closed


class TestEndpoints:
    """Payload decoding per endpoint."""

    @pytest.mark.asyncio
    async def test_transactions_follow_continuation_keys(self, bank_settings, recording_sleep, credentials):
        def handler(request):
            if "continuation_key" not in request.url.params:
                return httpx.Response(200, json={
                    "transactions": [{"entry_reference": "E1", "transaction_amount": {"amount": "1.00"}}],
                    "continuation_key": "page-2",
                })
            return httpx.Response(200, json={
                "transactions": [{"entry_reference": "E2", "transaction_amount": {"amount": "2.00"}}],
            })

        client = client_for(handler, bank_settings, recording_sleep)
        transactions = await client.get_transactions(credentials, "acc-1")
        assert [t.reference for t in transactions] == ["E1", "E2"]

    @pytest.mark.asyncio
    async def test_status_filter_fallback(self, bank_settings, recording_sleep, credentials):
        """Test that a rejected status=both retries without a filter."""
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            if request.url.params.get("status") == "both":
                return httpx.Response(422, json={"message": "unsupported"})
            return httpx.Response(200, json={
                "transactions": [
                    {"entry_reference": "E1", "transaction_amount": {"amount": "4.20"}},
                    {"entry_reference": "E2"},
                ],
            })

        client = client_for(handler, bank_settings, recording_sleep)
        transactions = await client.get_transactions(credentials, "acc-1")
        assert seen == [{"status": "both"}, {}]
        assert len(transactions) == 1
        assert transactions[0].amount == Decimal("4.20")

    @pytest.mark.asyncio
    async def test_balances(self, bank_client, aggregator, credentials):
        aggregator.balances["acc-1"] = {"balances": [
            {"balance_type": "CLBD", "balance_amount": {"amount": "10.00", "currency": "EUR"}},
            {"balance_type": "ITAV", "balance_amount": {"amount": "0"}},
            {"balance_type": "ITBD"},
        ]}
        entries = await bank_client.get_balances(credentials, "acc-1")
        assert [e.amount for e in entries] == [Decimal("10.00"), Decimal("0")]

    @pytest.mark.asyncio
    async def test_create_session(self, bank_client, credentials):
        session_id, session = await bank_client.create_session(credentials, "code-1")
        assert session_id == "session-new"
        assert session.accounts[0].uid == "acc-new"

    @pytest.mark.asyncio
    async def test_start_authorization_returns_url(self, bank_client, aggregator, credentials):
        url = await bank_client.start_authorization(
            credentials,
            aspsp_name="Revolut",
            country="IT",
            redirect_url="https://app.example/callback",
            state="state-1",
            valid_until="2024-09-01T00:00:00+00:00",
        )
        assert url == "https://bank.example/authorize"
        assert aggregator.paths() == ["/auth"]
