"""
USD price quotes.

ETH: ordered list of named sources (Binance ticker, then CoinGecko simple
price); the first positive finite quote wins, otherwise FALLBACK_ETH_PRICE.
Tokens: CoinGecko token_price by contract, queried in sequential chunks.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from walletaudit.audit_logging import get_logger
from walletaudit.cache import TTLCache, get_default_cache
from walletaudit.config.env import DEFAULT_BINANCE_API_URL, DEFAULT_COINGECKO_API_URL
from walletaudit.upstream.http import HttpFetcher
from walletaudit.upstream.models import BinanceTicker, CoinGeckoQuote, decode
from walletaudit.utils.numbers import chunked, safe_float

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------
FALLBACK_ETH_PRICE = 3000.0
ETH_PRICE_TTL_SEC = 60
TOKEN_PRICE_TTL_SEC = 5 * 60
TOKEN_PRICE_CHUNK = 100
BINANCE_TIMEOUT_SEC = 2.5
COINGECKO_TIMEOUT_SEC = 3.0
TOKEN_PRICE_TIMEOUT_SEC = 4.0


def _positive(value: object) -> float | None:
    p = safe_float(value, 0.0)
    return p if p > 0 else None


def _token_price_ttl(prices: dict[str, float]) -> float:
    # Empty chunks are not cached.
    return TOKEN_PRICE_TTL_SEC if prices else 0


class PriceService:
    def __init__(
        self,
        fetcher: HttpFetcher,
        coingecko_api_url: str = DEFAULT_COINGECKO_API_URL,
        binance_api_url: str = DEFAULT_BINANCE_API_URL,
        cache: TTLCache | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.coingecko_api_url = coingecko_api_url.rstrip("/")
        self.binance_api_url = binance_api_url.rstrip("/")
        self.cache = cache if cache is not None else get_default_cache()

    def eth_price_sources(self) -> list[tuple[str, Callable[[], Awaitable[float | None]]]]:
        """Named ETH quote sources, in priority order."""
        return [
            ("binance", self._eth_from_binance),
            ("coingecko", self._eth_from_coingecko),
        ]

    async def _eth_from_binance(self) -> float | None:
        payload = await self.fetcher.get_json(
            f"{self.binance_api_url}/ticker/price",
            params={"symbol": "ETHUSDT"},
            timeout=BINANCE_TIMEOUT_SEC,
        )
        ticker = decode(BinanceTicker, payload)
        return _positive(ticker.price) if ticker else None

    async def _eth_from_coingecko(self) -> float | None:
        payload = await self.fetcher.get_json(
            f"{self.coingecko_api_url}/simple/price",
            params={"ids": "ethereum", "vs_currencies": "usd"},
            timeout=COINGECKO_TIMEOUT_SEC,
        )
        if not isinstance(payload, dict):
            return None
        quote = decode(CoinGeckoQuote, payload.get("ethereum"))
        return _positive(quote.usd) if quote else None

    async def get_eth_price(self) -> float:
        async def compute() -> float:
            for name, source in self.eth_price_sources():
                price = await source()
                if price:
                    logger.debug("eth_price_resolved", source=name, price=price)
                    return price
                logger.debug("eth_price_source_failed", source=name)
            logger.warning("eth_price_fallback", price=FALLBACK_ETH_PRICE)
            return FALLBACK_ETH_PRICE

        return await self.cache.get_or_compute("eth-price-usd", ETH_PRICE_TTL_SEC, compute)

    async def get_token_prices(self, addresses: list[str]) -> dict[str, float]:
        """
        {lower-case contract address: usd price} for every token with a
        positive quote. Unpriced tokens are absent. Chunks run sequentially;
        a failed chunk contributes nothing.
        """
        addrs = list(dict.fromkeys(a.lower() for a in addresses if a))
        prices: dict[str, float] = {}
        for group in chunked(addrs, TOKEN_PRICE_CHUNK):
            prices.update(await self._token_price_chunk(group))
        return prices

    async def _token_price_chunk(self, group: list[str]) -> dict[str, float]:
        key = "token-prices:" + ",".join(group)

        async def compute() -> dict[str, float]:
            payload = await self.fetcher.get_json(
                f"{self.coingecko_api_url}/simple/token_price/ethereum",
                params={"contract_addresses": ",".join(group), "vs_currencies": "usd"},
                timeout=TOKEN_PRICE_TIMEOUT_SEC,
            )
            if not isinstance(payload, dict):
                logger.warning("token_price_chunk_failed", size=len(group))
                return {}
            out: dict[str, float] = {}
            lowered = {str(k).lower(): v for k, v in payload.items()}
            for addr in group:
                quote = decode(CoinGeckoQuote, lowered.get(addr))
                price = _positive(quote.usd) if quote else None
                if price:
                    out[addr] = price
            return out

        return await self.cache.get_or_compute(key, _token_price_ttl, compute)
