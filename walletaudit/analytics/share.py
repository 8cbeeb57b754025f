"""Share-card snapshot: the handful of report fields a shareable card shows."""

from __future__ import annotations

from walletaudit.analytics.models import AssetModule, RiskAssessment, ShareModule
from walletaudit.utils.wallet_utils import shorten_address


def build_share(
    address: str,
    assets: AssetModule,
    risk: RiskAssessment,
    value_change: float | None = None,
    value_change_pct: float | None = None,
    timestamp: int = 0,
) -> ShareModule:
    return ShareModule(
        short_addr=shorten_address(address),
        eth_amount=assets.eth.amount,
        eth_price=assets.eth.price,
        total_value=assets.total_value,
        risk_score=risk.score,
        risk_level=risk.level,
        persona_type=risk.persona_type,
        value_change=value_change,
        value_change_pct=value_change_pct,
        timestamp=timestamp,
    )
