"""
Activity aggregator: outbound transfer feed -> counts, active days, top
counterparties and a weekly histogram.

Only transfers initiated by the wallet are considered (up to 500, newest
first). Counterparty ranking: interaction count desc, ties broken by the
position where the counterparty first appears in the feed.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from walletaudit.analytics.models import ActivityModule, WeeklyCount
from walletaudit.audit_logging import get_logger
from walletaudit.upstream.labels import LabelResolver
from walletaudit.upstream.models import AssetTransfer
from walletaudit.upstream.rpc import AlchemyRpcClient
from walletaudit.utils.wallet_utils import shorten_address

logger = get_logger(__name__)

TOP_COUNTERPARTIES = 3


def parse_block_time(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def week_start(dt: datetime) -> int:
    """Unix seconds of Monday 00:00 UTC of dt's week."""
    day = dt.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    monday = day - timedelta(days=day.weekday())
    return int(monday.timestamp())


def rank_counterparties(transfers: list[AssetTransfer], address: str) -> list[tuple[str, int]]:
    """
    (counterparty, count) for every distinct `to` address except self,
    ordered by count desc then first-seen index.
    """
    self_addr = address.lower()
    counts: dict[str, int] = {}
    first_seen: dict[str, int] = {}
    for idx, t in enumerate(transfers):
        to = (t.to_address or "").lower()
        if not to or to == self_addr:
            continue
        counts[to] = counts.get(to, 0) + 1
        first_seen.setdefault(to, idx)
    return sorted(counts.items(), key=lambda kv: (-kv[1], first_seen[kv[0]]))


def summarize_transfers(transfers: list[AssetTransfer], address: str) -> tuple[ActivityModule, list[str]]:
    """
    Pure part of the aggregator.

    Returns the module with raw counterparty addresses in top_contracts, plus
    that address list for label resolution.
    """
    if not transfers:
        return ActivityModule(), []

    days: set[str] = set()
    weeks: dict[int, int] = {}
    for t in transfers:
        dt = parse_block_time(t.metadata.block_timestamp if t.metadata else None)
        if dt is None:
            continue
        days.add(dt.date().isoformat())
        ws = week_start(dt)
        weeks[ws] = weeks.get(ws, 0) + 1

    ranked = rank_counterparties(transfers, address)
    top = [addr for addr, _ in ranked[:TOP_COUNTERPARTIES]]
    module = ActivityModule(
        tx_count=len(transfers),
        active_days=len(days),
        contracts_interacted=len(ranked),
        top_contracts=top,
        weekly_histogram=[WeeklyCount(week_start=ws, count=c) for ws, c in sorted(weeks.items())],
    )
    return module, top


async def _label(labels: LabelResolver, address: str) -> str:
    try:
        return await labels.format_with_label(address)
    except Exception as e:
        logger.debug("counterparty_label_failed", address=address, error=str(e))
        return address


async def build_activity(address: str, rpc: AlchemyRpcClient, labels: LabelResolver) -> ActivityModule:
    transfers = await rpc.get_outbound_transfers(address)
    module, top = summarize_transfers(transfers, address)
    if top:
        display = await asyncio.gather(*(_label(labels, a) for a in top))
        module = replace(module, top_contracts=list(display))
    logger.info(
        "activity_built",
        wallet=shorten_address(address),
        tx_count=module.tx_count,
        active_days=module.active_days,
        counterparties=module.contracts_interacted,
    )
    return module
