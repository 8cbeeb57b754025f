"""
Gas aggregator: fee spend over the most recent outbound transactions.

Samples the first MAX_SAMPLED_TXS distinct hashes of the outbound transfer
feed (shared with the activity aggregator), fetches receipts through the
bounded worker pool and sums gasUsed * effectiveGasPrice. A failed, missing
or foreign-paid receipt contributes nothing.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

from walletaudit.analytics.concurrency import DEFAULT_CONCURRENCY, map_with_concurrency
from walletaudit.analytics.models import GasModule, GasTx
from walletaudit.audit_logging import get_logger
from walletaudit.upstream.labels import LabelResolver
from walletaudit.upstream.models import AssetTransfer, TransactionReceipt
from walletaudit.upstream.prices import FALLBACK_ETH_PRICE, PriceService
from walletaudit.upstream.rpc import AlchemyRpcClient
from walletaudit.utils.numbers import ETH_DECIMALS, format_units, hex_to_int
from walletaudit.utils.wallet_utils import shorten_address

logger = get_logger(__name__)

MAX_SAMPLED_TXS = 50
TOP_GAS_TXS = 3


def sample_hashes(transfers: list[AssetTransfer], limit: int = MAX_SAMPLED_TXS) -> list[str]:
    """First `limit` distinct tx hashes, in feed order."""
    seen: dict[str, None] = {}
    for t in transfers:
        h = (t.hash or "").lower()
        if h and h not in seen:
            seen[h] = None
            if len(seen) >= limit:
                break
    return list(seen)


def receipt_cost_eth(receipt: TransactionReceipt | None, payer: str | None = None) -> float:
    """gasUsed * (effectiveGasPrice or gasPrice) in ETH; 0 when unknown or paid by someone else."""
    if receipt is None:
        return 0.0
    if payer and receipt.from_address and receipt.from_address.lower() != payer.lower():
        return 0.0
    gas_used = hex_to_int(receipt.gas_used)
    price = hex_to_int(receipt.effective_gas_price) or hex_to_int(receipt.gas_price)
    return format_units(gas_used * price, ETH_DECIMALS)


def aggregate_gas(
    hashes: list[str],
    receipts: list[TransactionReceipt | None],
    eth_price: float,
    payer: str | None = None,
) -> tuple[GasModule, list[str | None]]:
    """
    Pure part of the aggregator. Returns the module (top_txs without labels)
    and the receipt `to` address of each top tx.
    """
    entries: list[tuple[int, str, float, str | None]] = []
    for idx, (h, r) in enumerate(zip(hashes, receipts)):
        cost = receipt_cost_eth(r, payer)
        if cost > 0:
            entries.append((idx, h, cost, r.to_address if r else None))
    total_eth = sum(cost for _, _, cost, _ in entries)
    top = sorted(entries, key=lambda e: (-e[2], e[0]))[:TOP_GAS_TXS]
    module = GasModule(
        tx_count=len(entries),
        total_gas_eth=total_eth,
        total_gas_usd=total_eth * eth_price,
        top_txs=[GasTx(hash=h, gas_eth=cost) for _, h, cost, _ in top],
    )
    return module, [to for _, _, _, to in top]


async def build_gas(
    address: str,
    rpc: AlchemyRpcClient,
    prices: PriceService,
    concurrency: int = DEFAULT_CONCURRENCY,
    labels: LabelResolver | None = None,
) -> GasModule:
    transfers = await rpc.get_outbound_transfers(address)
    hashes = sample_hashes(transfers)
    if not hashes:
        return GasModule()

    receipts, eth_price = await asyncio.gather(
        map_with_concurrency(hashes, rpc.get_transaction_receipt, limit=concurrency, default=None),
        prices.get_eth_price(),
    )
    module, top_to = aggregate_gas(hashes, receipts, eth_price or FALLBACK_ETH_PRICE, payer=address)

    if labels is not None and module.top_txs:
        names = await asyncio.gather(*(_display(labels, to) for to in top_to))
        module = replace(module, top_txs=[replace(t, to_display=n) for t, n in zip(module.top_txs, names)])

    logger.info(
        "gas_built",
        wallet=shorten_address(address),
        sampled=len(hashes),
        priced=module.tx_count,
        total_gas_eth=round(module.total_gas_eth, 6),
    )
    return module


async def _display(labels: LabelResolver, to: str | None) -> str:
    if not to:
        return ""
    try:
        return await labels.format_with_label(to)
    except Exception as e:
        logger.debug("gas_label_failed", address=to, error=str(e))
        return to
