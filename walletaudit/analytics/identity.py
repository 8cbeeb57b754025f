"""
Identity resolver: contract vs externally-owned account, and an estimated
creation time taken from the earliest transfer sent or received.
"""

from __future__ import annotations

import asyncio

from walletaudit.analytics.models import IdentityModule
from walletaudit.audit_logging import get_logger
from walletaudit.upstream.rpc import AlchemyRpcClient
from walletaudit.utils.wallet_utils import checksum_address, shorten_address

logger = get_logger(__name__)


def earliest_timestamp(*candidates: int | None) -> int | None:
    seen = [c for c in candidates if c]
    return min(seen) if seen else None


async def build_identity(address: str, rpc: AlchemyRpcClient) -> IdentityModule:
    addr = address.lower()
    is_contract, first_out, first_in = await asyncio.gather(
        rpc.is_contract(addr),
        rpc.get_first_transfer_timestamp(addr, "from"),
        rpc.get_first_transfer_timestamp(addr, "to"),
    )
    created_at = earliest_timestamp(first_out, first_in)
    logger.debug(
        "identity_resolved",
        wallet=shorten_address(addr),
        is_contract=bool(is_contract),
        created_at=created_at,
    )
    return IdentityModule(
        address=addr,
        checksum_address=checksum_address(addr),
        is_contract=bool(is_contract),
        created_at=created_at,
    )
