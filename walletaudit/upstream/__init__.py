"""Clients for the JSON-RPC provider, block explorer and price APIs."""

from walletaudit.upstream.explorer import EtherscanClient
from walletaudit.upstream.http import HttpFetcher
from walletaudit.upstream.labels import KNOWN_LABELS, SAFE_SPENDERS, LabelResolver
from walletaudit.upstream.prices import FALLBACK_ETH_PRICE, PriceService
from walletaudit.upstream.rpc import AlchemyRpcClient, TokenMetadata

__all__ = [
    "AlchemyRpcClient",
    "EtherscanClient",
    "FALLBACK_ETH_PRICE",
    "HttpFetcher",
    "KNOWN_LABELS",
    "LabelResolver",
    "PriceService",
    "SAFE_SPENDERS",
    "TokenMetadata",
]
