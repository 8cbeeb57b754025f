"""
Report data model.

Frozen dataclasses, one per report module, each with to_dict() producing the
JSON shape served by the API. Amounts are floats; timestamps are Unix seconds.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any

REPORT_VERSION = "1.2"

CATEGORY_ETH = "ETH"
CATEGORY_STABLECOINS = "Stablecoins"
CATEGORY_MAJORS = "Majors"
CATEGORY_MEME = "Meme"
CATEGORY_OTHERS = "Others"

RISK_LOW = "Low"
RISK_MEDIUM = "Medium"
RISK_HIGH = "High"

AMOUNT_UNLIMITED = "Unlimited"
AMOUNT_LIMITED = "Limited"


class _Serializable:
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass(frozen=True)
class IdentityModule(_Serializable):
    address: str
    checksum_address: str
    is_contract: bool = False
    created_at: int | None = None


@dataclass(frozen=True)
class TokenHolding(_Serializable):
    contract_address: str
    symbol: str
    decimals: int
    amount: float
    usd_value: float = 0.0
    has_price: bool = False


@dataclass(frozen=True)
class EthPosition(_Serializable):
    amount: float = 0.0
    price: float = 0.0
    usd_value: float = 0.0


@dataclass(frozen=True)
class AllocationBucket(_Serializable):
    category: str
    value: float
    ratio: float


@dataclass(frozen=True)
class AssetModule(_Serializable):
    eth: EthPosition = field(default_factory=EthPosition)
    tokens: list[TokenHolding] = field(default_factory=list)
    total_value: float = 0.0
    allocation: list[AllocationBucket] = field(default_factory=list)
    other_tokens: list[TokenHolding] = field(default_factory=list)
    price_warning: str | None = None


@dataclass(frozen=True)
class WeeklyCount(_Serializable):
    week_start: int
    count: int


@dataclass(frozen=True)
class ActivityModule(_Serializable):
    tx_count: int = 0
    active_days: int = 0
    contracts_interacted: int = 0
    top_contracts: list[str] = field(default_factory=list)
    weekly_histogram: list[WeeklyCount] = field(default_factory=list)


@dataclass(frozen=True)
class GasTx(_Serializable):
    hash: str
    gas_eth: float
    to_display: str = ""


@dataclass(frozen=True)
class GasModule(_Serializable):
    tx_count: int = 0
    total_gas_eth: float = 0.0
    total_gas_usd: float = 0.0
    top_txs: list[GasTx] = field(default_factory=list)


@dataclass(frozen=True)
class ApprovalItem(_Serializable):
    token: str
    token_symbol: str
    spender: str
    spender_name: str
    amount: str
    risk_level: str
    last_updated: int
    tx_hash: str


@dataclass(frozen=True)
class ApprovalsModule(_Serializable):
    risk_count: int = 0
    items: list[ApprovalItem] = field(default_factory=list)


@dataclass(frozen=True)
class RiskAssessment(_Serializable):
    score: int
    level: str
    comment: str
    stable_ratio: float = 0.0
    meme_ratio: float = 0.0
    other_ratio: float = 0.0
    tx_count: int = 0
    persona_type: str = ""
    persona_tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SummaryModule(_Serializable):
    text: str = ""


@dataclass(frozen=True)
class ShareModule(_Serializable):
    short_addr: str
    eth_amount: float
    eth_price: float
    total_value: float
    risk_score: int
    risk_level: str
    persona_type: str
    value_change: float | None = None
    value_change_pct: float | None = None
    timestamp: int = 0


@dataclass(frozen=True)
class HistoryPoint(_Serializable):
    timestamp: int
    total_value: float


@dataclass(frozen=True)
class ReportMeta(_Serializable):
    version: str = REPORT_VERSION
    generated_at: int = 0
    from_cache: bool = False
    history: list[HistoryPoint] = field(default_factory=list)
    previous_value: float | None = None
    value_change: float | None = None
    value_change_pct: float | None = None


@dataclass(frozen=True)
class Report(_Serializable):
    version: str
    address: str
    identity: IdentityModule
    summary: SummaryModule
    assets: AssetModule
    activity: ActivityModule
    gas: GasModule
    approvals: ApprovalsModule
    risk: RiskAssessment
    share: ShareModule
    meta: ReportMeta

    def as_cached(self) -> Report:
        """Copy of this report flagged as served from cache."""
        return replace(self, meta=replace(self.meta, from_cache=True))
