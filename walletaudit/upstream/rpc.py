"""
Alchemy-compatible JSON-RPC client.

All methods resolve to a documented fallback (0, "0x", [], None, UNKNOWN/18)
when the endpoint is not configured or a call fails, so aggregators can treat
the results as plain data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from walletaudit.audit_logging import get_logger
from walletaudit.cache import TTLCache, get_default_cache
from walletaudit.upstream.http import HttpFetcher
from walletaudit.upstream.models import (
    AssetTransfer,
    AssetTransfersResult,
    RpcEnvelope,
    TokenBalancesResult,
    TokenMetadataResult,
    TransactionReceipt,
    decode,
)
from walletaudit.utils.numbers import hex_to_int

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------
IS_CONTRACT_TTL_SEC = 10 * 60
TOKEN_METADATA_TTL_SEC = 7 * 24 * 60 * 60
TRANSFERS_TTL_SEC = 60
MAX_TRANSFERS = 500
TRANSFER_CATEGORIES = ("external", "erc20", "internal", "erc721", "erc1155")
UNKNOWN_SYMBOL = "UNKNOWN"
DEFAULT_TOKEN_DECIMALS = 18


def _parse_block_timestamp(raw: str | None) -> int | None:
    """ISO 8601 block timestamp ("2024-01-01T00:00:00.000Z") -> Unix seconds."""
    if not raw:
        return None
    try:
        return int(datetime.fromisoformat(raw.replace("Z", "+00:00")).timestamp())
    except ValueError:
        return None


@dataclass(frozen=True)
class TokenMetadata:
    """Symbol and decimals for one ERC-20 contract."""

    symbol: str = UNKNOWN_SYMBOL
    decimals: int = DEFAULT_TOKEN_DECIMALS


class AlchemyRpcClient:
    def __init__(
        self,
        fetcher: HttpFetcher,
        rpc_url: str,
        cache: TTLCache | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.rpc_url = (rpc_url or "").strip()
        self.cache = cache if cache is not None else get_default_cache()
        if not self.rpc_url:
            logger.debug("rpc_not_configured")

    @property
    def configured(self) -> bool:
        return bool(self.rpc_url)

    async def call(self, method: str, params: list[Any]) -> Any:
        """One JSON-RPC call. Returns result, or None on failure or RPC error."""
        if not self.configured:
            return None
        body = {"id": 1, "jsonrpc": "2.0", "method": method, "params": params}
        payload = await self.fetcher.post_json(self.rpc_url, body)
        envelope = decode(RpcEnvelope, payload)
        if envelope is None:
            return None
        if envelope.error is not None:
            logger.warning("rpc_error", method=method, code=envelope.error.code, error=envelope.error.message)
            return None
        return envelope.result

    # -------------------------------------------------------------------------
    # Native
    # -------------------------------------------------------------------------

    async def get_eth_balance(self, address: str) -> int:
        """Native balance in wei; 0 on failure."""
        return hex_to_int(await self.call("eth_getBalance", [address, "latest"]))

    async def get_code(self, address: str) -> str:
        result = await self.call("eth_getCode", [address, "latest"])
        return result if isinstance(result, str) and result else "0x"

    async def is_contract(self, address: str) -> bool:
        key = f"is-contract:{address.lower()}"

        async def compute() -> bool:
            code = await self.get_code(address)
            return code not in ("0x", "0x0")

        return await self.cache.get_or_compute(key, IS_CONTRACT_TTL_SEC, compute)

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        return decode(TransactionReceipt, await self.call("eth_getTransactionReceipt", [tx_hash]))

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    async def get_token_balances(self, address: str) -> list[tuple[str, int]]:
        """(contract_address, raw_balance) for every non-zero ERC-20 balance."""
        result = decode(TokenBalancesResult, await self.call("alchemy_getTokenBalances", [address]))
        if result is None:
            return []
        out: list[tuple[str, int]] = []
        for item in result.token_balances:
            if item.error:
                continue
            raw = hex_to_int(item.token_balance)
            if raw > 0:
                out.append((item.contract_address, raw))
        return out

    async def get_token_metadata(self, contract_address: str) -> TokenMetadata:
        key = f"token-meta:{contract_address.lower()}"

        async def compute() -> TokenMetadata:
            meta = decode(TokenMetadataResult, await self.call("alchemy_getTokenMetadata", [contract_address]))
            if meta is None:
                return TokenMetadata()
            symbol = (meta.symbol or "").strip() or UNKNOWN_SYMBOL
            decimals = meta.decimals if meta.decimals is not None and meta.decimals >= 0 else DEFAULT_TOKEN_DECIMALS
            return TokenMetadata(symbol, decimals)

        return await self.cache.get_or_compute(key, TOKEN_METADATA_TTL_SEC, compute)

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    async def get_outbound_transfers(self, address: str) -> list[AssetTransfer]:
        """
        Up to MAX_TRANSFERS transfers initiated by address, newest first.

        Cached for a minute so the activity and gas aggregators share one call.
        """
        key = f"transfers-out:{address.lower()}"

        async def compute() -> list[AssetTransfer]:
            params = [{
                "fromBlock": "0x0",
                "toBlock": "latest",
                "fromAddress": address,
                "category": list(TRANSFER_CATEGORIES),
                "withMetadata": True,
                "excludeZeroValue": False,
                "maxCount": hex(MAX_TRANSFERS),
                "order": "desc",
            }]
            result = decode(AssetTransfersResult, await self.call("alchemy_getAssetTransfers", params))
            if result is None:
                return []
            return result.transfers[:MAX_TRANSFERS]

        return await self.cache.get_or_compute(key, TRANSFERS_TTL_SEC, compute)

    async def get_first_transfer_timestamp(self, address: str, direction: str = "from") -> int | None:
        """
        Timestamp (Unix seconds) of the oldest transfer sent ("from") or
        received ("to") by address; None when there is none.
        """
        field = "fromAddress" if direction == "from" else "toAddress"
        params = [{
            "fromBlock": "0x0",
            "toBlock": "latest",
            field: address,
            "category": list(TRANSFER_CATEGORIES),
            "withMetadata": True,
            "excludeZeroValue": False,
            "maxCount": "0x1",
            "order": "asc",
        }]
        result = decode(AssetTransfersResult, await self.call("alchemy_getAssetTransfers", params))
        if result is None or not result.transfers:
            return None
        first = result.transfers[0]
        return _parse_block_timestamp(first.metadata.block_timestamp if first.metadata else None)
