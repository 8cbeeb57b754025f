"""
Tests for upstream clients against httpx.MockTransport (no network).
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from walletaudit.cache.ttl_cache import NullCache, TTLCache
from walletaudit.upstream.explorer import EtherscanClient
from walletaudit.upstream.http import HttpFetcher
from walletaudit.upstream.labels import LabelResolver
from walletaudit.upstream.prices import FALLBACK_ETH_PRICE, PriceService
from walletaudit.upstream.rpc import AlchemyRpcClient, TokenMetadata

RPC_URL = "https://eth-mainnet.example/v2/secret-key"
WALLET = "0x1111111111111111111111111111111111111111"
TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
UNVERIFIED = "0x4444444444444444444444444444444444444444"


def _run(handler, scenario):
    """Run scenario(fetcher) with an AsyncClient backed by handler."""

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await scenario(HttpFetcher(client, timeout=1.0))

    return asyncio.run(go())


def _rpc_handler(results: dict, calls: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append(body)
        method = body["method"]
        if method not in results:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "nope"}})
        result = results[method]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result(body) if callable(result) else result})

    return handler


# -----------------------------------------------------------------------------
# HttpFetcher
# -----------------------------------------------------------------------------


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "down"}),
        httpx.Response(429, text="slow down"),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
def test_fetch_json_failures_return_none(response):
    out = _run(lambda request: response, lambda f: f.get_json("https://api.example/x"))
    assert out is None


def test_fetch_json_timeout_and_transport_errors_return_none():
    def timeout(request):
        raise httpx.ConnectTimeout("slow", request=request)

    def refused(request):
        raise httpx.ConnectError("refused", request=request)

    assert _run(timeout, lambda f: f.get_json("https://api.example/x")) is None
    assert _run(refused, lambda f: f.post_json("https://api.example/x", {"a": 1})) is None


def test_fetch_json_ok():
    out = _run(lambda request: httpx.Response(200, json={"ok": True}), lambda f: f.get_json("https://api.example/x"))
    assert out == {"ok": True}


# -----------------------------------------------------------------------------
# JSON-RPC
# -----------------------------------------------------------------------------


def test_rpc_balance_and_contract_detection():
    handler = _rpc_handler({
        "eth_getBalance": "0xde0b6b3a7640000",
        "eth_getCode": lambda body: "0x6080" if body["params"][0] == TOKEN else "0x",
    })

    async def scenario(fetcher):
        rpc = AlchemyRpcClient(fetcher, RPC_URL, cache=TTLCache())
        return await rpc.get_eth_balance(WALLET), await rpc.is_contract(TOKEN), await rpc.is_contract(WALLET)

    assert _run(handler, scenario) == (10**18, True, False)


def test_rpc_error_envelope_maps_to_fallback():
    async def scenario(fetcher):
        rpc = AlchemyRpcClient(fetcher, RPC_URL, cache=NullCache())
        return await rpc.get_eth_balance(WALLET), await rpc.get_transaction_receipt("0xabc")

    assert _run(_rpc_handler({}), scenario) == (0, None)


def test_rpc_not_configured_makes_no_requests():
    def handler(request):
        raise AssertionError("no request expected")

    async def scenario(fetcher):
        rpc = AlchemyRpcClient(fetcher, "", cache=NullCache())
        return await rpc.get_token_balances(WALLET), await rpc.get_outbound_transfers(WALLET)

    assert _run(handler, scenario) == ([], [])


def test_rpc_token_balances_skip_zero_and_errors():
    handler = _rpc_handler({
        "alchemy_getTokenBalances": {
            "address": WALLET,
            "tokenBalances": [
                {"contractAddress": TOKEN, "tokenBalance": "0x" + "0" * 63 + "a"},
                {"contractAddress": UNVERIFIED, "tokenBalance": "0x0"},
                {"contractAddress": WALLET, "tokenBalance": None, "error": "execution reverted"},
            ],
        },
    })

    async def scenario(fetcher):
        return await AlchemyRpcClient(fetcher, RPC_URL, cache=NullCache()).get_token_balances(WALLET)

    assert _run(handler, scenario) == [(TOKEN, 10)]


def test_rpc_token_metadata_defaults_and_cache():
    calls: list = []
    handler = _rpc_handler({"alchemy_getTokenMetadata": {"symbol": " USDC ", "decimals": "6"}}, calls)

    async def scenario(fetcher):
        rpc = AlchemyRpcClient(fetcher, RPC_URL, cache=TTLCache())
        first = await rpc.get_token_metadata(TOKEN)
        second = await rpc.get_token_metadata(TOKEN.upper().replace("0X", "0x"))
        return first, second

    first, second = _run(handler, scenario)
    assert first == TokenMetadata("USDC", 6)
    assert second == first
    assert len(calls) == 1

    async def missing(fetcher):
        return await AlchemyRpcClient(fetcher, RPC_URL, cache=NullCache()).get_token_metadata(TOKEN)

    assert _run(_rpc_handler({"alchemy_getTokenMetadata": {"symbol": None, "decimals": None}}), missing) == TokenMetadata()


def test_rpc_outbound_transfers_request_shape():
    calls: list = []
    handler = _rpc_handler({
        "alchemy_getAssetTransfers": {
            "transfers": [{"hash": "0x1", "from": WALLET, "to": TOKEN, "metadata": {"blockTimestamp": "2024-01-01T00:00:00.000Z"}}],
        },
    }, calls)

    async def scenario(fetcher):
        rpc = AlchemyRpcClient(fetcher, RPC_URL, cache=NullCache())
        return await rpc.get_outbound_transfers(WALLET), await rpc.get_first_transfer_timestamp(WALLET, "to")

    transfers, first_ts = _run(handler, scenario)
    assert transfers[0].to_address == TOKEN
    assert first_ts == 1704067200
    outbound, first_in = calls[0]["params"][0], calls[1]["params"][0]
    assert outbound["fromAddress"] == WALLET
    assert outbound["maxCount"] == hex(500)
    assert outbound["order"] == "desc"
    assert first_in["toAddress"] == WALLET
    assert first_in["maxCount"] == "0x1"
    assert first_in["order"] == "asc"


# -----------------------------------------------------------------------------
# Explorer and labels
# -----------------------------------------------------------------------------


def _explorer_handler(calls: list):
    def handler(request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        calls.append(params)
        if params["action"] == "getsourcecode":
            name = "FiatTokenProxy" if params["address"] == TOKEN else ""
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": [{"ContractName": name}]})
        if params["action"] == "txlist":
            return httpx.Response(200, json={
                "status": "1",
                "message": "OK",
                "result": [
                    {"hash": "0xa", "from": WALLET, "to": TOKEN, "input": "0x", "timeStamp": "1700000000"},
                    "garbage",
                ],
            })
        return httpx.Response(200, json={"status": "0", "message": "NOTOK", "result": "Invalid action"})

    return handler


def test_explorer_contract_name_hit_and_miss_are_cached():
    calls: list = []

    async def scenario(fetcher):
        explorer = EtherscanClient(fetcher, "key", cache=TTLCache())
        out = [
            await explorer.get_contract_name(TOKEN),
            await explorer.get_contract_name(TOKEN),
            await explorer.get_contract_name(UNVERIFIED),
            await explorer.get_contract_name(UNVERIFIED),
        ]
        return out

    assert _run(_explorer_handler(calls), scenario) == ["FiatTokenProxy", "FiatTokenProxy", None, None]
    assert len(calls) == 2
    assert calls[0]["chainid"] == "1"
    assert calls[0]["apikey"] == "key"


def test_explorer_tx_list_skips_malformed_rows():
    calls: list = []

    async def scenario(fetcher):
        return await EtherscanClient(fetcher, "key", cache=NullCache()).get_tx_list(WALLET, limit=100)

    txs = _run(_explorer_handler(calls), scenario)
    assert [tx.hash for tx in txs] == ["0xa"]
    assert txs[0].time_stamp == 1700000000
    assert calls[0]["sort"] == "desc"
    assert calls[0]["offset"] == "100"


def test_explorer_without_key_returns_fallbacks():
    def handler(request):
        raise AssertionError("no request expected")

    async def scenario(fetcher):
        explorer = EtherscanClient(fetcher, "", cache=NullCache())
        return await explorer.get_contract_name(TOKEN), await explorer.get_tx_list(WALLET)

    assert _run(handler, scenario) == (None, [])


def test_label_resolver_prefers_known_labels():
    calls: list = []

    async def scenario(fetcher):
        labels = LabelResolver(EtherscanClient(fetcher, "key", cache=NullCache()))
        return (
            await labels.format_with_label(TOKEN),
            await labels.format_with_label(UNVERIFIED),
            await labels.format_with_label("not-an-address"),
        )

    known, unknown, junk = _run(_explorer_handler(calls), scenario)
    assert known == f"USD Coin ({TOKEN})"
    assert unknown == UNVERIFIED
    assert junk == "not-an-address"
    # Known label resolved locally; only the unverified address hit the explorer.
    assert len(calls) == 1


# -----------------------------------------------------------------------------
# Prices
# -----------------------------------------------------------------------------


def test_eth_price_falls_through_sources():
    def handler(request: httpx.Request) -> httpx.Response:
        if "binance" in request.url.host:
            return httpx.Response(503)
        return httpx.Response(200, json={"ethereum": {"usd": 2345.6}})

    async def scenario(fetcher):
        return await PriceService(
            fetcher, "https://api.coingecko.example/api/v3", "https://api.binance.example/api/v3", cache=NullCache()
        ).get_eth_price()

    assert _run(handler, scenario) == 2345.6


def test_eth_price_fallback_when_every_source_fails():
    async def scenario(fetcher):
        return await PriceService(fetcher, cache=NullCache()).get_eth_price()

    assert _run(lambda request: httpx.Response(200, json={"price": "-1"}), scenario) == FALLBACK_ETH_PRICE


def test_token_prices_lowercase_and_skip_unpriced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={TOKEN: {"usd": 1.0001}, UNVERIFIED: {}})

    async def scenario(fetcher):
        return await PriceService(fetcher, cache=NullCache()).get_token_prices(
            [TOKEN.upper().replace("0X", "0x"), UNVERIFIED, TOKEN]
        )

    assert _run(handler, scenario) == {TOKEN: 1.0001}


def test_failed_token_price_chunk_is_not_cached():
    calls: list = []

    def handler(request):
        calls.append(1)
        return httpx.Response(500)

    async def scenario(fetcher):
        prices = PriceService(fetcher, cache=TTLCache())
        return await prices.get_token_prices([TOKEN]), await prices.get_token_prices([TOKEN])

    assert _run(handler, scenario) == ({}, {})
    assert len(calls) == 2
