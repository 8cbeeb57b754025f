"""
Tests for the approval scanner.
"""

from __future__ import annotations

import asyncio

from walletaudit.analytics.approvals import (
    MAX_ITEMS,
    build_approvals,
    decode_spender,
    is_unlimited_allowance,
    rank_approvals,
    scan_approvals,
)
from walletaudit.upstream.models import ExplorerTransaction
from walletaudit.upstream.rpc import TokenMetadata

WALLET = "0x1111111111111111111111111111111111111111"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
DAI = "0x6b175474e89094c44da98b954eedeac495271d0f"
UNISWAP_V2 = "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"
DRAINER = "0x" + "bad" + "0" * 34 + "bad"

UNLIMITED = "f" * 64
SMALL = "0" * 60 + "03e8"


def _calldata(spender: str, amount: str) -> str:
    return "0x095ea7b3" + "0" * 24 + spender[2:] + amount


def _approve(
    token: str,
    spender: str,
    amount: str = UNLIMITED,
    ts: int = 1_700_000_000,
    sender: str = WALLET,
    h="0xh",
    is_error: str = "0",
):
    return ExplorerTransaction.model_validate({
        "hash": h,
        "from": sender,
        "to": token,
        "input": _calldata(spender, amount),
        "methodId": "0x095ea7b3",
        "timeStamp": str(ts),
        "isError": is_error,
    })


def test_decode_spender():
    assert decode_spender(_calldata(DRAINER, UNLIMITED)) == DRAINER
    assert decode_spender("0x095ea7b3") is None
    assert decode_spender(_calldata("0x" + "0" * 40, UNLIMITED)) is None


def test_is_unlimited_allowance():
    assert is_unlimited_allowance(_calldata(DRAINER, UNLIMITED))
    assert is_unlimited_allowance(_calldata(DRAINER, "0" * 32 + "f" * 32))
    assert not is_unlimited_allowance(_calldata(DRAINER, SMALL))
    assert not is_unlimited_allowance(_calldata(DRAINER, "0" * 64))


def test_scan_dedups_token_spender_pairs_and_skips_foreign_senders():
    txs = [
        _approve(USDC, DRAINER, ts=300, h="0xnew"),
        _approve(USDC, DRAINER, amount=SMALL, ts=200, h="0xold"),
        _approve(DAI, DRAINER, ts=100, sender="0x2222222222222222222222222222222222222222"),
        ExplorerTransaction.model_validate({"hash": "0xt", "from": WALLET, "to": USDC, "input": "0xa9059cbb"}),
    ]
    found = scan_approvals(txs, WALLET)
    assert len(found) == 1
    assert found[0]["tx_hash"] == "0xnew"
    assert found[0]["risk_level"] == "High"
    assert found[0]["spender_name"] == "Unknown Contract"


def test_reverted_approve_is_skipped_and_does_not_hide_earlier_one():
    txs = [
        _approve(DAI, DRAINER, ts=400, h="0xreverted", is_error="1"),
        _approve(USDC, DRAINER, ts=300, h="0xfailed", is_error="1"),
        _approve(USDC, DRAINER, amount=SMALL, ts=200, h="0xok"),
    ]
    found = scan_approvals(txs, WALLET)
    assert [f["tx_hash"] for f in found] == ["0xok"]
    assert found[0]["amount"] == "Limited"
    assert found[0]["risk_level"] == "Low"


def test_build_approvals_ignores_reverted_unlimited(make_rpc, make_explorer):
    txs = [_approve(USDC, DRAINER, h="0xrev", is_error="1")]
    module = asyncio.run(build_approvals(WALLET, make_explorer(txs=txs), make_rpc()))
    assert module.risk_count == 0
    assert module.items == []


def test_safe_spender_is_low_even_when_unlimited():
    found = scan_approvals([_approve(USDC, UNISWAP_V2)], WALLET)
    assert found[0]["risk_level"] == "Low"
    assert found[0]["amount"] == "Unlimited"
    assert found[0]["spender_name"] == "Uniswap V2 Router"


def test_rank_puts_high_risk_first_then_newest():
    items = [
        {"risk_level": "Low", "last_updated": 500},
        {"risk_level": "High", "last_updated": 100},
        {"risk_level": "High", "last_updated": 300},
    ]
    assert [(i["risk_level"], i["last_updated"]) for i in rank_approvals(items)] == [
        ("High", 300), ("High", 100), ("Low", 500),
    ]


def test_build_approvals_truncates_and_counts_all_high(make_rpc, make_explorer):
    spenders = [f"0x{i:040x}" for i in range(1, 8)]
    txs = [_approve(USDC, s, ts=1_000 + i, h=f"0x{i}") for i, s in enumerate(spenders)]
    rpc = make_rpc(metadata={USDC: TokenMetadata(symbol="USDC", decimals=6)})
    module = asyncio.run(build_approvals(WALLET, make_explorer(txs=txs), rpc))
    assert module.risk_count == 7
    assert len(module.items) == MAX_ITEMS
    assert module.items[0].spender == spenders[-1]
    assert all(i.token_symbol == "USDC" for i in module.items)
    # One metadata lookup per distinct token.
    assert rpc.get_token_metadata.await_count == 1


def test_build_approvals_empty_history(make_rpc, make_explorer):
    module = asyncio.run(build_approvals(WALLET, make_explorer(), make_rpc()))
    assert module.risk_count == 0
    assert module.items == []
