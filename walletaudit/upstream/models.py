"""
Typed response shapes for the upstream APIs.

Every payload goes through decode(), which returns the model or None, so
callers never index into unchecked JSON. Unknown fields are ignored; missing
optional fields default to None/empty.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from walletaudit.audit_logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class _Upstream(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def decode(model: type[M], payload: Any) -> M | None:
    """Validate payload into model; None (and a debug log) when the shape is wrong."""
    if payload is None:
        return None
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.debug("upstream_decode_failed", model=model.__name__, errors=e.error_count())
        return None


# -----------------------------------------------------------------------------
# JSON-RPC (Alchemy-compatible)
# -----------------------------------------------------------------------------


class RpcError(_Upstream):
    code: int | None = None
    message: str = ""


class RpcEnvelope(_Upstream):
    """{"jsonrpc": "2.0", "id": 1, "result": ..., "error": {...}}"""

    jsonrpc: str | None = None
    id: int | str | None = None
    result: Any = None
    error: RpcError | None = None


class RawTokenBalance(_Upstream):
    contract_address: str = Field(..., alias="contractAddress")
    token_balance: str | None = Field(None, alias="tokenBalance")
    error: Any = None


class TokenBalancesResult(_Upstream):
    address: str | None = None
    token_balances: list[RawTokenBalance] = Field(default_factory=list, alias="tokenBalances")


class TokenMetadataResult(_Upstream):
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None

    @field_validator("decimals", mode="before")
    @classmethod
    def _decimals_int(cls, v: Any) -> Any:
        # Some tokens report decimals as a numeric string; anything else is unknown.
        if isinstance(v, str):
            v = v.strip()
            return int(v) if v.isdigit() else None
        if isinstance(v, bool) or not isinstance(v, (int, type(None))):
            return None
        return v


class TransferMetadata(_Upstream):
    block_timestamp: str | None = Field(None, alias="blockTimestamp")


class AssetTransfer(_Upstream):
    hash: str | None = None
    from_address: str | None = Field(None, alias="from")
    to_address: str | None = Field(None, alias="to")
    category: str | None = None
    asset: str | None = None
    value: float | None = None
    block_num: str | None = Field(None, alias="blockNum")
    metadata: TransferMetadata | None = None


class AssetTransfersResult(_Upstream):
    transfers: list[AssetTransfer] = Field(default_factory=list)
    page_key: str | None = Field(None, alias="pageKey")


class TransactionReceipt(_Upstream):
    transaction_hash: str | None = Field(None, alias="transactionHash")
    from_address: str | None = Field(None, alias="from")
    to_address: str | None = Field(None, alias="to")
    gas_used: str | None = Field(None, alias="gasUsed")
    effective_gas_price: str | None = Field(None, alias="effectiveGasPrice")
    gas_price: str | None = Field(None, alias="gasPrice")
    status: str | None = None


# -----------------------------------------------------------------------------
# Explorer (Etherscan-compatible)
# -----------------------------------------------------------------------------


class ExplorerEnvelope(_Upstream):
    """{"status": "1", "message": "OK", "result": [...]}; status "0" carries an error string."""

    status: str | None = None
    message: str | None = None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "1"


class ExplorerTransaction(_Upstream):
    hash: str = ""
    from_address: str = Field("", alias="from")
    to_address: str = Field("", alias="to")
    input: str = ""
    method_id: str | None = Field(None, alias="methodId")
    function_name: str | None = Field(None, alias="functionName")
    time_stamp: int = Field(0, alias="timeStamp")
    is_error: str | None = Field(None, alias="isError")

    @field_validator("time_stamp", mode="before")
    @classmethod
    def _ts_int(cls, v: Any) -> Any:
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0


class ExplorerSourceEntry(_Upstream):
    contract_name: str | None = Field(None, alias="ContractName")


# -----------------------------------------------------------------------------
# Prices
# -----------------------------------------------------------------------------


class BinanceTicker(_Upstream):
    symbol: str | None = None
    price: float | None = None


class CoinGeckoQuote(_Upstream):
    usd: float | None = None
