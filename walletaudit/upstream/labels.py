"""
Counterparty labels for display.

Resolution order: KNOWN_LABELS (local), explorer verified contract name, raw
address. format_with_label never raises.
"""

from __future__ import annotations

from walletaudit.audit_logging import get_logger
from walletaudit.upstream.explorer import EtherscanClient
from walletaudit.utils.wallet_utils import is_valid_wallet

logger = get_logger(__name__)

# Well-known spenders treated as low risk by the approval scanner.
SAFE_SPENDERS: dict[str, str] = {
    "0x7a250d5630b4cf539739df2c5dacb4c659f2488d": "Uniswap V2 Router",
    "0xe592427a0aece92de3edee1f18e0157c05861564": "Uniswap V3 Router",
    "0x68b3465833fb72a70ecdf485e0e4c7bd8665fc45": "Uniswap V3 Router 2",
    "0x1111111254fb6c44bac0bed2854e76f90643097d": "1inch v5 Router",
    "0xdef1c0ded9bec7f1a1670819833240f027b25eff": "0x Protocol",
    "0x000000000022d473030f116ddee9f6b43ac78ba3": "Permit2",
    "0x881d40237659c251811cec9c35e92faf6fb46a60": "Metamask Swap",
    "0x1b02da8cb0d097eb8d57a175b88c7d8b47997506": "SushiSwap Router",
    "0x00000000006c3852cbef3e08e8df289169ede581": "OpenSea Seaport",
}

KNOWN_LABELS: dict[str, str] = {
    **SAFE_SPENDERS,
    "0xdac17f958d2ee523a2206206994597c13d831ec7": "Tether USD",
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": "USD Coin",
    "0x6b175474e89094c44da98b954eedeac495271d0f": "Dai Stablecoin",
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": "Wrapped Ether",
}


class LabelResolver:
    def __init__(self, explorer: EtherscanClient | None = None) -> None:
        self.explorer = explorer

    async def get_label(self, address: str) -> str | None:
        addr = address.lower()
        known = KNOWN_LABELS.get(addr)
        if known:
            return known
        if self.explorer is None:
            return None
        try:
            return await self.explorer.get_contract_name(addr)
        except Exception as e:
            logger.debug("label_lookup_failed", address=addr, error=str(e))
            return None

    async def format_with_label(self, address: str) -> str:
        """Return "Label (0x...)" when a label is known, else the address itself."""
        if not is_valid_wallet(address):
            return str(address or "")
        label = await self.get_label(address)
        return f"{label} ({address})" if label else address
