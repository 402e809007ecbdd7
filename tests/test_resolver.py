"""
Tests for remote-to-local account resolution.
"""

import pytest

from ledger_sync.models import LocalAccount, RemoteAccount
from ledger_sync.resolution import LocalAccountResolver, ResolutionMethod


LOCAL_ACCOUNTS = [
    LocalAccount(id="local-revolut", name="Revolut"),
    LocalAccount(id="local-poste", name="Carta Postepay Evolution"),
    LocalAccount(id="local-savings", name="Savings"),
    LocalAccount(id="local-x", name="X"),
]


@pytest.fixture
def resolver() -> LocalAccountResolver:
    return LocalAccountResolver()


class TestLocalAccountResolver:

    def test_explicit_mapping_wins(self, resolver):
        remote = RemoteAccount(uid="acc-1", name="Revolut EUR")
        resolution = resolver.resolve(remote, LOCAL_ACCOUNTS, {"acc-1": "local-savings"})

        assert resolution.method == ResolutionMethod.EXPLICIT
        assert resolution.local_account_id == "local-savings"

    def test_brand_keyword_on_aspsp_name(self, resolver):
        """Test that a generic account name still resolves through its bank."""
        remote = RemoteAccount(uid="acc-2", name="Conto", aspsp_name="Poste Italiane")
        resolution = resolver.resolve(remote, LOCAL_ACCOUNTS)

        assert resolution.method == ResolutionMethod.BRAND
        assert resolution.local_account_id == "local-poste"

    def test_fuzzy_containment(self, resolver):
        remote = RemoteAccount(uid="acc-3", name="My Savings Account")
        resolution = resolver.resolve(remote, LOCAL_ACCOUNTS)

        assert resolution.method == ResolutionMethod.FUZZY
        assert resolution.local_account_id == "local-savings"

    def test_short_local_names_skip_fuzzy_matching(self, resolver):
        """Test that a one-letter local name does not swallow everything."""
        remote = RemoteAccount(uid="acc-4", name="Xtra Card")
        resolution = resolver.resolve(remote, LOCAL_ACCOUNTS)

        assert resolution.method == ResolutionMethod.UNMAPPED

    def test_unmapped_uses_remote_uid(self, resolver):
        remote = RemoteAccount(uid="acc-5", name="Mystery Bank")
        resolution = resolver.resolve(remote, LOCAL_ACCOUNTS)

        assert resolution.is_mapped is False
        assert resolution.local_account_id == "acc-5"

    def test_registered_brand(self, resolver):
        resolver.register_brand("fineco", ["fineco"])
        local = [LocalAccount(id="local-fineco", name="Fineco conto")]
        remote = RemoteAccount(uid="acc-6", name="Conto corrente", aspsp_name="FinecoBank")

        assert resolver.resolve(remote, local).local_account_id == "local-fineco"
        assert "fineco" in resolver.brands()

    def test_custom_brand_table_replaces_default(self):
        resolver = LocalAccountResolver(brand_keywords={"acme": ["acme"]})
        assert resolver.detect_brand(RemoteAccount(uid="a", name="Revolut")) is None
        assert resolver.detect_brand(RemoteAccount(uid="b", name="ACME Bank")) == "acme"
