"""
Pytest fixtures for WalletAudit tests.

Upstream clients are replaced by MagicMock objects with AsyncMock methods, so
no test touches the network. The stats store uses a temporary SQLite DB.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

WALLET = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """No real provider credentials, fresh process cache, stats DB under tmp_path."""
    for name in (
        "ALCHEMY_RPC_URL",
        "ETHERSCAN_API_KEY",
        "ADMIN_STATS_TOKEN",
        "WALLETAUDIT_DB_URL",
        "DATABASE_URL",
        "WALLETAUDIT_SUMMARY_LOCALE",
    ):
        monkeypatch.setenv(name, "")
    monkeypatch.setenv("WALLETAUDIT_DB_PATH", str(tmp_path / "walletaudit_test.db"))

    from walletaudit.cache.ttl_cache import reset_default_cache_for_test

    reset_default_cache_for_test()
    yield
    reset_default_cache_for_test()


@pytest.fixture
def stats_db():
    """Stats store module pointed at the temporary SQLite DB, tables created."""
    import walletaudit.api_server.db_report_stats as db

    db.reset_engine_for_test()
    db.init_db()
    yield db
    db.reset_engine_for_test()


@pytest.fixture
def make_transfer():
    from walletaudit.upstream.models import AssetTransfer

    def _make(
        tx_hash: str,
        to: str | None = OTHER,
        when: str | None = "2024-01-03T12:00:00.000Z",
        sender: str = WALLET,
        category: str = "external",
    ) -> AssetTransfer:
        return AssetTransfer.model_validate({
            "hash": tx_hash,
            "from": sender,
            "to": to,
            "category": category,
            "metadata": {"blockTimestamp": when} if when else None,
        })

    return _make


@pytest.fixture
def make_rpc():
    """Factory for a fake AlchemyRpcClient."""
    from walletaudit.upstream.rpc import TokenMetadata

    def _make(
        eth_wei: int = 0,
        token_balances: list[tuple[str, int]] | None = None,
        metadata: dict[str, Any] | None = None,
        transfers: list[Any] | None = None,
        receipts: dict[str, Any] | None = None,
        is_contract: bool = False,
        first_ts: int | None = None,
    ) -> MagicMock:
        metadata = {k.lower(): v for k, v in (metadata or {}).items()}
        receipts = receipts or {}
        rpc = MagicMock()
        rpc.get_eth_balance = AsyncMock(return_value=eth_wei)
        rpc.get_token_balances = AsyncMock(return_value=list(token_balances or []))
        rpc.get_token_metadata = AsyncMock(side_effect=lambda c: metadata.get(c.lower(), TokenMetadata()))
        rpc.get_outbound_transfers = AsyncMock(return_value=list(transfers or []))
        rpc.get_transaction_receipt = AsyncMock(side_effect=lambda h: receipts.get(h))
        rpc.is_contract = AsyncMock(return_value=is_contract)
        rpc.get_first_transfer_timestamp = AsyncMock(return_value=first_ts)
        return rpc

    return _make


@pytest.fixture
def make_prices():
    def _make(eth_price: float = 2000.0, token_prices: dict[str, float] | None = None) -> MagicMock:
        prices = MagicMock()
        prices.get_eth_price = AsyncMock(return_value=eth_price)
        prices.get_token_prices = AsyncMock(return_value=dict(token_prices or {}))
        return prices

    return _make


@pytest.fixture
def make_explorer():
    def _make(txs: list[Any] | None = None, contract_names: dict[str, str] | None = None) -> MagicMock:
        names = contract_names or {}
        explorer = MagicMock()
        explorer.get_tx_list = AsyncMock(return_value=list(txs or []))
        explorer.get_contract_name = AsyncMock(side_effect=lambda a: names.get(a.lower()))
        return explorer

    return _make
