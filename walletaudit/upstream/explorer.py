"""
Etherscan-compatible explorer client (API v2, chain id 1).

Used for verified contract names (counterparty labels) and the plain
transaction list scanned for approvals. Without an API key every method
returns its fallback without I/O.
"""

from __future__ import annotations

from walletaudit.audit_logging import get_logger
from walletaudit.cache import TTLCache, get_default_cache
from walletaudit.config.env import DEFAULT_ETHERSCAN_API_URL
from walletaudit.upstream.http import HttpFetcher
from walletaudit.upstream.models import ExplorerEnvelope, ExplorerSourceEntry, ExplorerTransaction, decode
from walletaudit.utils.wallet_utils import is_valid_wallet

logger = get_logger(__name__)

CHAIN_ID = 1
CONTRACT_NAME_HIT_TTL_SEC = 24 * 60 * 60
CONTRACT_NAME_MISS_TTL_SEC = 60 * 60
DEFAULT_TX_LIST_LIMIT = 100


def _contract_name_ttl(name: str | None) -> float:
    return CONTRACT_NAME_HIT_TTL_SEC if name else CONTRACT_NAME_MISS_TTL_SEC


class EtherscanClient:
    def __init__(
        self,
        fetcher: HttpFetcher,
        api_key: str,
        api_url: str = DEFAULT_ETHERSCAN_API_URL,
        cache: TTLCache | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.api_key = (api_key or "").strip()
        self.api_url = api_url or DEFAULT_ETHERSCAN_API_URL
        self.cache = cache if cache is not None else get_default_cache()
        if not self.api_key:
            logger.debug("explorer_not_configured")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _query(self, params: dict[str, str | int]) -> ExplorerEnvelope | None:
        query = {"chainid": CHAIN_ID, **params, "apikey": self.api_key}
        return decode(ExplorerEnvelope, await self.fetcher.get_json(self.api_url, params=query))

    async def get_contract_name(self, address: str) -> str | None:
        """Verified ContractName for address, or None (unverified, EOA, failure)."""
        if not self.configured or not is_valid_wallet(address):
            return None
        addr = address.lower()

        async def compute() -> str | None:
            envelope = await self._query({"module": "contract", "action": "getsourcecode", "address": addr})
            if envelope is None or not isinstance(envelope.result, list) or not envelope.result:
                return None
            entry = decode(ExplorerSourceEntry, envelope.result[0])
            name = (entry.contract_name or "").strip() if entry else ""
            return name or None

        return await self.cache.get_or_compute(f"contract-name:{addr}", _contract_name_ttl, compute)

    async def get_tx_list(self, address: str, limit: int = DEFAULT_TX_LIST_LIMIT) -> list[ExplorerTransaction]:
        """Most recent normal transactions touching address, newest first."""
        if not self.configured:
            return []
        envelope = await self._query({
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "page": 1,
            "offset": max(1, int(limit)),
            "sort": "desc",
        })
        if envelope is None or not envelope.ok or not isinstance(envelope.result, list):
            if envelope is not None and not envelope.ok:
                logger.debug("explorer_txlist_empty", message=envelope.message)
            return []
        txs: list[ExplorerTransaction] = []
        for raw in envelope.result:
            tx = decode(ExplorerTransaction, raw)
            if tx is not None:
                txs.append(tx)
        return txs
