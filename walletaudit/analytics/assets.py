"""
Assets aggregator: native balance + ERC-20 holdings -> priced holdings and allocation.

Data-source failures never propagate: balance 0, no tokens, fallback ETH price.
An all-zero AssetModule is a valid result.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable

from walletaudit.analytics.concurrency import DEFAULT_CONCURRENCY, map_with_concurrency
from walletaudit.analytics.models import (
    CATEGORY_ETH,
    CATEGORY_MAJORS,
    CATEGORY_MEME,
    CATEGORY_OTHERS,
    CATEGORY_STABLECOINS,
    AllocationBucket,
    AssetModule,
    EthPosition,
    TokenHolding,
)
from walletaudit.audit_logging import get_logger
from walletaudit.upstream.prices import FALLBACK_ETH_PRICE, PriceService
from walletaudit.upstream.rpc import AlchemyRpcClient, TokenMetadata
from walletaudit.utils.numbers import ETH_DECIMALS, format_units, ratio, safe_float
from walletaudit.utils.wallet_utils import shorten_address

logger = get_logger(__name__)

STABLE_SYMBOLS = frozenset({
    "USDT", "USDC", "DAI", "USDE", "USDS", "FDUSD", "TUSD", "USDP", "BUSD",
    "FRAX", "LUSD", "GUSD", "PYUSD", "MIM", "ALUSD", "DOLA",
})

MAJOR_SYMBOLS = frozenset({
    "WETH", "WBTC", "CBETH", "RETH", "STETH", "EZETH",
    "UNI", "AAVE", "LDO", "LINK", "MKR", "COMP", "SNX", "CRV", "RPL", "FXS",
    "ARB", "OP", "MATIC", "POL", "IMX", "MNT", "STRK", "ZK",
    "RNDR", "FET", "WLD", "TAO",
    "ENA", "PENDLE", "ONDO",
})

# Substring match, so PEPE2, BABYDOGE etc. count as meme.
MEME_KEYWORDS = (
    "PEPE", "DOGE", "SHIB", "FLOKI", "BONK", "WIF", "MOG", "TURBO",
    "SPX", "LADYS", "MEME", "TRUMP", "MAGA", "BOME", "SLERF", "NEIRO",
    "PENGU", "POPCAT", "BRETT", "HARRYPOTTER", "SNEK",
)

DUST_USD = 1.0

# Display order for equal-value buckets.
_CATEGORY_ORDER = (CATEGORY_ETH, CATEGORY_STABLECOINS, CATEGORY_MAJORS, CATEGORY_MEME, CATEGORY_OTHERS)


def classify_token(symbol: str | None) -> str:
    """Stablecoins / Majors by exact symbol, Meme by keyword substring, else Others."""
    sym = (symbol or "").strip().upper()
    if not sym:
        return CATEGORY_OTHERS
    if sym in STABLE_SYMBOLS:
        return CATEGORY_STABLECOINS
    if sym in MAJOR_SYMBOLS:
        return CATEGORY_MAJORS
    if any(key in sym for key in MEME_KEYWORDS):
        return CATEGORY_MEME
    return CATEGORY_OTHERS


def build_allocation(eth_value: float, tokens: list[TokenHolding]) -> tuple[float, list[AllocationBucket]]:
    """
    Bucket priced value by category.

    Returns (total_value, buckets). Only non-zero buckets are listed, sorted by
    value desc. Ratios sum to 1 when total_value > 0; the list is empty otherwise.
    """
    values: dict[str, float] = {}
    if eth_value > 0:
        values[CATEGORY_ETH] = eth_value
    for t in tokens:
        if t.usd_value > 0:
            cat = classify_token(t.symbol)
            values[cat] = values.get(cat, 0.0) + t.usd_value
    total = sum(values.values())
    if total <= 0:
        return 0.0, []
    ordered = sorted(values.items(), key=lambda kv: (-kv[1], _CATEGORY_ORDER.index(kv[0])))
    return total, [AllocationBucket(category=c, value=v, ratio=ratio(v, total)) for c, v in ordered]


def price_warning_text(unpriced: int) -> str | None:
    if unpriced <= 0:
        return None
    if unpriced == 1:
        return "1 token holding has no market price and is excluded from total value."
    return f"{unpriced} token holdings have no market price and are excluded from total value."


async def _guarded(label: str, awaitable: Awaitable[Any], default: Any) -> Any:
    try:
        return await awaitable
    except Exception as e:
        logger.warning("assets_source_failed", source=label, error=str(e))
        return default


async def build_assets(
    address: str,
    rpc: AlchemyRpcClient,
    prices: PriceService,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> AssetModule:
    """Native + token holdings for address, valued in USD and bucketed by category."""
    wei, raw_balances, eth_price = await asyncio.gather(
        _guarded("eth_balance", rpc.get_eth_balance(address), 0),
        _guarded("token_balances", rpc.get_token_balances(address), []),
        _guarded("eth_price", prices.get_eth_price(), FALLBACK_ETH_PRICE),
    )

    # Case-insensitive dedup; first balance seen wins.
    balances: dict[str, int] = {}
    for contract, raw in raw_balances:
        balances.setdefault(contract.lower(), raw)
    contracts = list(balances)

    metas: list[TokenMetadata] = await map_with_concurrency(
        contracts,
        rpc.get_token_metadata,
        limit=concurrency,
        default=TokenMetadata(),
    )
    token_prices: dict[str, float] = {}
    if contracts:
        token_prices = await _guarded("token_prices", prices.get_token_prices(contracts), {})

    holdings: list[TokenHolding] = []
    for contract, meta in zip(contracts, metas):
        meta = meta or TokenMetadata()
        amount = format_units(balances[contract], meta.decimals)
        price = safe_float(token_prices.get(contract), 0.0)
        has_price = price > 0
        holdings.append(TokenHolding(
            contract_address=contract,
            symbol=meta.symbol,
            decimals=meta.decimals,
            amount=amount,
            usd_value=amount * price if has_price else 0.0,
            has_price=has_price,
        ))
    holdings.sort(key=lambda t: -t.usd_value)

    eth_amount = format_units(int(wei or 0), ETH_DECIMALS)
    eth_price = safe_float(eth_price, FALLBACK_ETH_PRICE)
    eth = EthPosition(amount=eth_amount, price=eth_price, usd_value=eth_amount * eth_price)

    total_value, allocation = build_allocation(eth.usd_value, holdings)
    other_tokens = [t for t in holdings if not t.has_price or t.usd_value < DUST_USD]
    unpriced = sum(1 for t in holdings if not t.has_price)

    logger.info(
        "assets_built",
        wallet=shorten_address(address),
        tokens=len(holdings),
        unpriced=unpriced,
        total_value=round(total_value, 2),
    )
    return AssetModule(
        eth=eth,
        tokens=holdings,
        total_value=total_value,
        allocation=allocation,
        other_tokens=other_tokens,
        price_warning=price_warning_text(unpriced),
    )
