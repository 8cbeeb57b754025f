"""
Report pipeline: address -> full wallet report.

identity, assets, activity, gas and approvals run concurrently; each is
guarded so an unexpected exception yields that module's empty value. Risk,
persona, summary and share are computed from the results, then the value
history delta is attached from the stats store. Reports are cached per
address for WALLETAUDIT_REPORT_CACHE_TTL_SEC; a hit is returned with
meta.from_cache = True.

Single entrypoint for the API and CLI: build_report(address) or
ReportBuilder.build_report(address) when the clients are already built.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

import httpx

from walletaudit.analytics.activity import build_activity
from walletaudit.analytics.approvals import build_approvals
from walletaudit.analytics.assets import build_assets
from walletaudit.analytics.gas import build_gas
from walletaudit.analytics.identity import build_identity
from walletaudit.analytics.models import (
    REPORT_VERSION,
    ActivityModule,
    ApprovalsModule,
    AssetModule,
    GasModule,
    HistoryPoint,
    IdentityModule,
    Report,
    ReportMeta,
)
from walletaudit.analytics.risk_engine import compute_risk
from walletaudit.analytics.share import build_share
from walletaudit.analytics.summary import build_summary
from walletaudit.api_server.db_report_stats import (
    HISTORY_LIMIT,
    NullStatsStore,
    ReportStatsStore,
    init_db,
)
from walletaudit.audit_logging import get_logger
from walletaudit.cache import MISSING, TTLCache, get_default_cache
from walletaudit.config.settings import Settings, get_settings
from walletaudit.core.exceptions import ReportBuildError
from walletaudit.upstream.explorer import EtherscanClient
from walletaudit.upstream.http import HttpFetcher
from walletaudit.upstream.labels import LabelResolver
from walletaudit.upstream.prices import PriceService
from walletaudit.upstream.rpc import AlchemyRpcClient
from walletaudit.utils.wallet_utils import checksum_address, normalize_address, shorten_address

logger = get_logger(__name__)


def value_delta(current: float, previous: float | None) -> tuple[float | None, float | None]:
    """(value_change, value_change_pct). pct is None when there is no positive previous value."""
    if previous is None:
        return None, None
    change = current - previous
    if previous <= 0:
        return change, None
    return change, change / previous * 100.0


async def _guard(name: str, wallet: str, fn: Callable[[], Awaitable[Any]], default: Any) -> Any:
    try:
        return await fn()
    except Exception as e:
        logger.warning("report_module_failed", module=name, wallet=shorten_address(wallet), error=str(e))
        return default


class ReportBuilder:
    """Holds the upstream clients, cache and stats store for report builds."""

    def __init__(
        self,
        rpc: AlchemyRpcClient,
        explorer: EtherscanClient,
        prices: PriceService,
        labels: LabelResolver | None = None,
        stats: ReportStatsStore | None = None,
        cache: TTLCache | None = None,
        cache_ttl_sec: float = 60.0,
        gas_concurrency: int = 5,
        summary_locale: str = "en",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.rpc = rpc
        self.explorer = explorer
        self.prices = prices
        self.labels = labels if labels is not None else LabelResolver(explorer)
        self.stats = stats if stats is not None else NullStatsStore()
        self.cache = cache if cache is not None else get_default_cache()
        self.cache_ttl_sec = cache_ttl_sec
        self.gas_concurrency = gas_concurrency
        self.summary_locale = summary_locale
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        stats: ReportStatsStore | None = None,
        cache: TTLCache | None = None,
    ) -> ReportBuilder:
        settings = settings or get_settings()
        cache = cache if cache is not None else get_default_cache()
        fetcher = HttpFetcher(client, timeout=settings.http_timeout_sec)
        explorer = EtherscanClient(fetcher, settings.etherscan_api_key, settings.etherscan_api_url, cache=cache)
        return cls(
            rpc=AlchemyRpcClient(fetcher, settings.alchemy_rpc_url, cache=cache),
            explorer=explorer,
            prices=PriceService(fetcher, settings.coingecko_api_url, settings.binance_api_url, cache=cache),
            labels=LabelResolver(explorer),
            stats=stats,
            cache=cache,
            cache_ttl_sec=settings.report_cache_ttl_sec,
            gas_concurrency=settings.gas_concurrency,
            summary_locale=settings.summary_locale,
        )

    async def build_report(self, address: str) -> Report:
        """
        Build (or serve from cache) the report for address.

        Raises InvalidAddressError for malformed input and ReportBuildError when
        the report cannot be assembled at all. Upstream and stats-store
        failures only degrade individual modules.
        """
        addr = normalize_address(address)
        now = int(self.clock())
        cache_key = f"report:{self.summary_locale}:{addr}"

        cached = self.cache.get(cache_key)
        if cached is not MISSING:
            logger.info("report_cache_hit", wallet=shorten_address(addr))
            await _guard("stats_view", addr, lambda: self.stats.record_view(addr, now), None)
            return cached.as_cached()

        logger.info("report_build_start", wallet=shorten_address(addr))
        identity, assets, activity, gas, approvals = await asyncio.gather(
            _guard("identity", addr, lambda: build_identity(addr, self.rpc),
                   IdentityModule(address=addr, checksum_address=checksum_address(addr))),
            _guard("assets", addr, lambda: build_assets(addr, self.rpc, self.prices, self.gas_concurrency),
                   AssetModule()),
            _guard("activity", addr, lambda: build_activity(addr, self.rpc, self.labels), ActivityModule()),
            _guard("gas", addr, lambda: build_gas(addr, self.rpc, self.prices, self.gas_concurrency, self.labels),
                   GasModule()),
            _guard("approvals", addr, lambda: build_approvals(addr, self.explorer, self.rpc), ApprovalsModule()),
        )

        history = await _guard("stats_history", addr, lambda: self.stats.load_history(addr), [])
        previous = float(history[0]["total_value"]) if history else None
        value_change, value_change_pct = value_delta(assets.total_value, previous)

        try:
            risk = compute_risk(assets, activity)
            summary = build_summary(identity, assets, activity, risk, now=now, locale=self.summary_locale)
            share = build_share(addr, assets, risk, value_change, value_change_pct, timestamp=now)
            points = [HistoryPoint(timestamp=now, total_value=assets.total_value)] + [
                HistoryPoint(timestamp=int(h["timestamp"]), total_value=float(h["total_value"]))
                for h in history
            ]
            report = Report(
                version=REPORT_VERSION,
                address=addr,
                identity=identity,
                summary=summary,
                assets=assets,
                activity=activity,
                gas=gas,
                approvals=approvals,
                risk=risk,
                share=share,
                meta=ReportMeta(
                    version=REPORT_VERSION,
                    generated_at=now,
                    from_cache=False,
                    history=points[:HISTORY_LIMIT],
                    previous_value=previous,
                    value_change=value_change,
                    value_change_pct=value_change_pct,
                ),
            )
        except Exception as e:
            logger.exception("report_build_failed", wallet=shorten_address(addr), error=str(e))
            raise ReportBuildError(f"could not assemble report for {addr}") from e

        await _guard("stats_record", addr, lambda: self.stats.record_report(addr, assets.total_value, now), None)
        self.cache.set(cache_key, report, self.cache_ttl_sec)

        logger.info(
            "report_built",
            wallet=shorten_address(addr),
            score=risk.score,
            risk_level=risk.level,
            persona=risk.persona_type,
            total_value=round(assets.total_value, 2),
        )
        return report


async def open_stats_store(settings: Settings) -> ReportStatsStore:
    """SQL store when stats are enabled and the database initializes; NullStatsStore otherwise."""
    if not settings.stats_enabled:
        logger.debug("report_stats_disabled")
        return NullStatsStore()
    try:
        await asyncio.to_thread(init_db)
    except Exception as e:
        logger.warning("report_stats_unavailable", error=str(e))
        return NullStatsStore()
    return ReportStatsStore()


async def build_report(address: str, settings: Settings | None = None) -> Report:
    """One-shot report build with its own HTTP client (CLI and scripts)."""
    settings = settings or get_settings()
    stats = await open_stats_store(settings)
    async with httpx.AsyncClient(timeout=settings.http_timeout_sec) as client:
        builder = ReportBuilder.from_settings(client, settings=settings, stats=stats)
        return await builder.build_report(address)
