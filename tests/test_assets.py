"""
Tests for the assets aggregator (fake RPC and price service).
"""

from __future__ import annotations

import asyncio

import pytest

from walletaudit.analytics.assets import (
    build_allocation,
    build_assets,
    classify_token,
    price_warning_text,
)
from walletaudit.analytics.models import TokenHolding
from walletaudit.upstream.prices import FALLBACK_ETH_PRICE
from walletaudit.upstream.rpc import TokenMetadata

WALLET = "0x1111111111111111111111111111111111111111"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
PEPE = "0x6982508145454ce325ddbe47a25d4ec3d2311933"
JUNK = "0x3333333333333333333333333333333333333333"


@pytest.mark.parametrize(
    "symbol, category",
    [
        ("USDC", "Stablecoins"),
        ("usdt", "Stablecoins"),
        ("WBTC", "Majors"),
        ("PEPE", "Meme"),
        ("BABYDOGE", "Meme"),
        ("HarryPotterObamaSonic10Inu", "Meme"),
        ("XYZ", "Others"),
        ("", "Others"),
        (None, "Others"),
    ],
)
def test_classify_token(symbol, category):
    assert classify_token(symbol) == category


def test_build_allocation_ratios_sum_to_one():
    tokens = [
        TokenHolding("0xa", "USDC", 6, 100, usd_value=100, has_price=True),
        TokenHolding("0xb", "DAI", 18, 100, usd_value=100, has_price=True),
        TokenHolding("0xc", "PEPE", 18, 1e9, usd_value=50, has_price=True),
    ]
    total, buckets = build_allocation(250.0, tokens)
    assert total == 500.0
    assert [b.category for b in buckets] == ["ETH", "Stablecoins", "Meme"]
    assert [b.value for b in buckets] == [250.0, 200.0, 50.0]
    assert sum(b.ratio for b in buckets) == pytest.approx(1.0)


def test_build_allocation_empty():
    assert build_allocation(0.0, []) == (0.0, [])


def test_price_warning_text():
    assert price_warning_text(0) is None
    assert price_warning_text(1).startswith("1 token holding ")
    assert price_warning_text(3).startswith("3 token holdings ")


def test_build_assets_prices_and_buckets(make_rpc, make_prices):
    rpc = make_rpc(
        eth_wei=2 * 10**18,
        token_balances=[(USDC, 1_000 * 10**6), (PEPE, 10**24), (JUNK, 5), (USDC.upper().replace("0X", "0x"), 1)],
        metadata={
            USDC: TokenMetadata(symbol="USDC", decimals=6),
            PEPE: TokenMetadata(symbol="PEPE", decimals=18),
        },
    )
    prices = make_prices(eth_price=2_000.0, token_prices={USDC: 1.0, PEPE: 0.0000001})

    assets = asyncio.run(build_assets(WALLET, rpc, prices))

    assert assets.eth.amount == 2.0
    assert assets.eth.usd_value == 4_000.0
    # Duplicate contract (different casing) collapsed; first balance wins.
    assert [t.contract_address for t in assets.tokens] == [USDC, PEPE, JUNK]
    usdc = assets.tokens[0]
    assert usdc.amount == 1_000.0 and usdc.usd_value == 1_000.0 and usdc.has_price
    pepe = assets.tokens[1]
    assert pepe.usd_value == pytest.approx(0.1)
    junk = assets.tokens[2]
    assert junk.symbol == "UNKNOWN" and not junk.has_price
    assert assets.total_value == pytest.approx(5_000.1)
    assert [t.contract_address for t in assets.other_tokens] == [PEPE, JUNK]
    assert assets.price_warning == "1 token holding has no market price and is excluded from total value."
    prices.get_token_prices.assert_awaited_once_with([USDC, PEPE, JUNK])


def test_build_assets_survives_source_failures(make_rpc, make_prices):
    rpc = make_rpc()
    rpc.get_eth_balance.side_effect = RuntimeError("rpc down")
    rpc.get_token_balances.side_effect = RuntimeError("rpc down")
    prices = make_prices()
    prices.get_eth_price.side_effect = RuntimeError("price down")

    assets = asyncio.run(build_assets(WALLET, rpc, prices))

    assert assets.total_value == 0.0
    assert assets.allocation == []
    assert assets.tokens == []
    assert assets.eth.price == FALLBACK_ETH_PRICE
    assert assets.price_warning is None
    prices.get_token_prices.assert_not_awaited()
