"""
Approval scanner: ERC-20 approve() calls in recent explorer history.

Input is the explorer tx list, newest first. For each approve sent by the
wallet, the spender is read from the first calldata slot and the allowance
from the second. Dedup by (token, spender), first occurrence wins.

Risk: spender in SAFE_SPENDERS -> Low. Otherwise an unlimited allowance
(slot made only of `f` digits after leading zeros) -> High.
Order: High first, then last_updated desc, then scan order. Truncated to
MAX_ITEMS; risk_count counts every High item before truncation.
"""

from __future__ import annotations

import re

from walletaudit.analytics.models import (
    AMOUNT_LIMITED,
    AMOUNT_UNLIMITED,
    RISK_HIGH,
    RISK_LOW,
    ApprovalItem,
    ApprovalsModule,
)
from walletaudit.audit_logging import get_logger
from walletaudit.upstream.explorer import EtherscanClient
from walletaudit.upstream.labels import SAFE_SPENDERS
from walletaudit.upstream.models import ExplorerTransaction
from walletaudit.upstream.rpc import UNKNOWN_SYMBOL, AlchemyRpcClient
from walletaudit.utils.wallet_utils import ZERO_ADDRESS, is_valid_wallet, shorten_address

logger = get_logger(__name__)

APPROVE_METHOD_ID = "0x095ea7b3"
SCAN_LIMIT = 100
MAX_ITEMS = 5
UNKNOWN_SPENDER_NAME = "Unknown Contract"
MIN_UNLIMITED_DIGITS = 8

# 0x + 8 selector chars + 24 zero-padding chars; the address is the next 40.
_SPENDER_START = 34
_SPENDER_END = 74
_AMOUNT_END = _SPENDER_END + 64
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def is_approve_call(tx: ExplorerTransaction) -> bool:
    method_id = (tx.method_id or tx.input[:10]).lower()
    if method_id == APPROVE_METHOD_ID:
        return True
    return (tx.function_name or "").strip().lower().startswith("approve")


def decode_spender(calldata: str) -> str | None:
    """Spender address from approve calldata; None when short, non-hex or zero."""
    if not calldata or len(calldata) < _SPENDER_END:
        return None
    raw = calldata[_SPENDER_START:_SPENDER_END]
    if not _HEX_RE.match(raw):
        return None
    spender = "0x" + raw.lower()
    if spender == ZERO_ADDRESS or not is_valid_wallet(spender):
        return None
    return spender


def is_unlimited_allowance(calldata: str) -> bool:
    """True when the amount slot, stripped of leading zeros, is all `f` (at least MIN_UNLIMITED_DIGITS)."""
    slot = (calldata or "")[_SPENDER_END:_AMOUNT_END].lower().lstrip("0")
    return len(slot) >= MIN_UNLIMITED_DIGITS and set(slot) == {"f"}


def scan_approvals(txs: list[ExplorerTransaction], address: str) -> list[dict]:
    """
    Approvals sent by address, deduplicated, in scan order. Reverted
    transactions granted nothing and are skipped.

    Returns dicts (token, spender, spender_name, amount, risk_level,
    last_updated, tx_hash); symbols are attached later.
    """
    owner = address.lower()
    seen: set[tuple[str, str]] = set()
    found: list[dict] = []
    for tx in txs[:SCAN_LIMIT]:
        if tx.from_address and tx.from_address.lower() != owner:
            continue
        if not is_approve_call(tx):
            continue
        if tx.is_error == "1":
            continue
        spender = decode_spender(tx.input)
        token = (tx.to_address or "").lower()
        if spender is None or not token:
            continue
        key = (token, spender)
        if key in seen:
            continue
        seen.add(key)

        safe_name = SAFE_SPENDERS.get(spender)
        unlimited = is_unlimited_allowance(tx.input)
        found.append({
            "token": token,
            "spender": spender,
            "spender_name": safe_name or UNKNOWN_SPENDER_NAME,
            "amount": AMOUNT_UNLIMITED if unlimited else AMOUNT_LIMITED,
            "risk_level": RISK_HIGH if unlimited and not safe_name else RISK_LOW,
            "last_updated": tx.time_stamp,
            "tx_hash": tx.hash,
        })
    return found


def rank_approvals(items: list[dict]) -> list[dict]:
    indexed = list(enumerate(items))
    indexed.sort(key=lambda p: (p[1]["risk_level"] != RISK_HIGH, -p[1]["last_updated"], p[0]))
    return [item for _, item in indexed]


async def build_approvals(address: str, explorer: EtherscanClient, rpc: AlchemyRpcClient) -> ApprovalsModule:
    txs = await explorer.get_tx_list(address, limit=SCAN_LIMIT)
    found = scan_approvals(txs, address)
    if not found:
        return ApprovalsModule()

    ranked = rank_approvals(found)
    risk_count = sum(1 for i in ranked if i["risk_level"] == RISK_HIGH)
    shown = ranked[:MAX_ITEMS]

    symbols: dict[str, str] = {}
    for item in shown:
        token = item["token"]
        if token not in symbols:
            try:
                symbols[token] = (await rpc.get_token_metadata(token)).symbol
            except Exception as e:
                logger.debug("approval_symbol_failed", token=token, error=str(e))
                symbols[token] = UNKNOWN_SYMBOL

    logger.info(
        "approvals_built",
        wallet=shorten_address(address),
        approvals=len(found),
        risk_count=risk_count,
    )
    return ApprovalsModule(
        risk_count=risk_count,
        items=[ApprovalItem(token_symbol=symbols[i["token"]], **i) for i in shown],
    )
