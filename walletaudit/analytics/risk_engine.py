"""
Risk engine: heuristic score, tier and comment from asset allocation and activity.

Score starts at BASE_SCORE and receives additive adjustments from independent
rule groups (stablecoin share, meme share, portfolio size, tx count). Within a
group the first matching rule applies; groups are summed, so their order does
not change the result. The score is clamped to [0, 100] and mapped to a tier:
>= 70 Low, >= 40 Medium, else High.

compute_risk is pure and total: every AssetModule/ActivityModule the
aggregators can produce, including all-zero ones, maps to a valid result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from walletaudit.analytics.models import (
    CATEGORY_MEME,
    CATEGORY_STABLECOINS,
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    ActivityModule,
    AssetModule,
    RiskAssessment,
)
from walletaudit.analytics.wallet_persona import PersonaInputs, build_persona
from walletaudit.audit_logging import get_logger

logger = get_logger(__name__)

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100
LOW_RISK_MIN_SCORE = 70
MEDIUM_RISK_MIN_SCORE = 40

COMMENT_ZERO_VALUE = (
    "No priced assets were found on mainnet; the score reflects on-chain activity only."
)
COMMENTS = {
    RISK_LOW: "Conservative allocation: stablecoins dominate and speculative exposure is limited.",
    RISK_MEDIUM: "Balanced profile with some volatile exposure and no extreme concentration.",
    RISK_HIGH: "Aggressive profile: a large share sits in volatile or speculative assets.",
}


@dataclass(frozen=True)
class RiskInputs:
    stable_ratio: float
    meme_ratio: float
    total_value: float
    tx_count: int


Adjustment = tuple[str, Callable[[RiskInputs], bool], int]

ADJUSTMENT_GROUPS: list[list[Adjustment]] = [
    [
        ("stable_heavy", lambda r: r.stable_ratio >= 0.5, 20),
        ("stable_moderate", lambda r: r.stable_ratio >= 0.3, 10),
        ("stable_scarce", lambda r: r.stable_ratio <= 0.05 and r.total_value > 0, -10),
    ],
    [
        ("meme_heavy", lambda r: r.meme_ratio >= 0.3, -20),
        ("meme_moderate", lambda r: r.meme_ratio >= 0.15, -10),
    ],
    [
        ("large_portfolio", lambda r: r.total_value >= 100_000, -5),
        ("small_portfolio", lambda r: 0 < r.total_value <= 1_000, 5),
    ],
    [
        ("no_outbound_tx", lambda r: r.tx_count == 0, 5),
        ("high_frequency", lambda r: r.tx_count > 200, -5),
    ],
]


def _clamp_ratio(x: float) -> float:
    return min(1.0, max(0.0, float(x or 0.0)))


def category_ratio(assets: AssetModule, category: str) -> float:
    """Sum of ratios over every bucket of category (any number of buckets)."""
    return _clamp_ratio(sum(b.ratio for b in assets.allocation if b.category == category))


def score_adjustments(inputs: RiskInputs) -> list[tuple[str, int]]:
    """(rule name, delta) for every group whose rules match."""
    applied: list[tuple[str, int]] = []
    for group in ADJUSTMENT_GROUPS:
        for name, predicate, delta in group:
            if predicate(inputs):
                applied.append((name, delta))
                break
    return applied


def clamp_score(raw: float) -> int:
    return int(min(MAX_SCORE, max(MIN_SCORE, raw)))


def risk_level(score: int) -> str:
    """Lower bound of each tier is inclusive: 70 -> Low, 69 -> Medium, 39 -> High."""
    if score >= LOW_RISK_MIN_SCORE:
        return RISK_LOW
    if score >= MEDIUM_RISK_MIN_SCORE:
        return RISK_MEDIUM
    return RISK_HIGH


def risk_comment(level: str, total_value: float) -> str:
    if total_value <= 0:
        return COMMENT_ZERO_VALUE
    return COMMENTS[level]


def compute_risk(assets: AssetModule, activity: ActivityModule) -> RiskAssessment:
    """
    Score a wallet from its allocation and outbound activity.

    Returns RiskAssessment with score in [0, 100], tier, comment, the three
    ratios (other_ratio = 1 - stable - meme, never negative), tx_count and
    the persona type and tags.
    """
    stable_ratio = category_ratio(assets, CATEGORY_STABLECOINS)
    meme_ratio = category_ratio(assets, CATEGORY_MEME)
    other_ratio = max(0.0, 1.0 - stable_ratio - meme_ratio)
    total_value = max(0.0, float(assets.total_value or 0.0))
    tx_count = max(0, int(activity.tx_count or 0))

    inputs = RiskInputs(stable_ratio, meme_ratio, total_value, tx_count)
    applied = score_adjustments(inputs)
    score = clamp_score(BASE_SCORE + sum(delta for _, delta in applied))
    level = risk_level(score)

    persona = build_persona(PersonaInputs(
        total_value=total_value,
        stable_ratio=stable_ratio,
        meme_ratio=meme_ratio,
        tx_count=tx_count,
        level=level,
        score=score,
    ))

    logger.debug(
        "risk_engine_result",
        score=score,
        risk_level=level,
        adjustments=[name for name, _ in applied],
        persona=persona.persona_type,
    )
    return RiskAssessment(
        score=score,
        level=level,
        comment=risk_comment(level, total_value),
        stable_ratio=stable_ratio,
        meme_ratio=meme_ratio,
        other_ratio=other_ratio,
        tx_count=tx_count,
        persona_type=persona.persona_type,
        persona_tags=persona.tags,
    )
