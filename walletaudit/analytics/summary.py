"""
Summary text generator.

build_summary joins four independent sentence fragments (identity and age,
asset structure, activity, risk). Every threshold-to-phrase mapping is a
table below so it can be tested on its own.
"""

from __future__ import annotations

import math
import time

from walletaudit.analytics.models import (
    ActivityModule,
    AssetModule,
    IdentityModule,
    RiskAssessment,
    SummaryModule,
)

SECONDS_PER_DAY = 24 * 60 * 60

# (minimum value, divisor, suffix), largest first.
USD_UNITS: dict[str, list[tuple[float, float, str]]] = {
    "en": [
        (1_000_000_000, 1_000_000_000, "B"),
        (1_000_000, 1_000_000, "M"),
        (1_000, 1_000, "K"),
    ],
    "zh": [
        (100_000_000, 100_000_000, "亿"),
        (10_000, 10_000, "万"),
    ],
}

# (minimum ratio, phrase), largest first.
RATIO_PHRASES: list[tuple[float, str]] = [
    (0.6, "dominant"),
    (0.3, "large"),
    (0.1, "moderate"),
    (0.0, "small"),
]

# (minimum age in days, divisor in days, unit), largest first.
AGE_UNITS: list[tuple[int, int, str]] = [
    (365, 365, "years"),
    (30, 30, "months"),
    (0, 1, "days"),
]


def format_usd(value: float, locale: str = "en") -> str:
    """Unit-scaled dollar amount: 1234567 -> "$1.23M" (en) or "$123.46万" (zh)."""
    if value is None or not math.isfinite(value):
        return "$0.00"
    sign = "-" if value < 0 else ""
    n = abs(value)
    for minimum, divisor, suffix in USD_UNITS.get(locale, USD_UNITS["en"]):
        if n >= minimum:
            return f"{sign}${n / divisor:.2f}{suffix}"
    return f"{sign}${n:,.2f}"


def ratio_phrase(ratio: float) -> str:
    for minimum, phrase in RATIO_PHRASES:
        if ratio >= minimum:
            return phrase
    return RATIO_PHRASES[-1][1]


def age_phrase(created_at: int | None, now: float | None = None) -> str | None:
    """Age since created_at as "N days", "N months" or "N.N years"; None when unknown."""
    if not created_at:
        return None
    now = time.time() if now is None else now
    days = max(0, int((now - created_at) // SECONDS_PER_DAY))
    for minimum, divisor, unit in AGE_UNITS:
        if days >= minimum:
            if unit == "years":
                return f"{days / divisor:.1f} {unit}"
            return f"{days // divisor} {unit}"
    return f"{days} days"


def identity_fragment(identity: IdentityModule, now: float | None = None) -> str:
    kind = "a contract" if identity.is_contract else "a regular (externally owned)"
    age = age_phrase(identity.created_at, now)
    when = f"first seen on-chain about {age} ago" if age else "its creation time could not be determined"
    return f"This is {kind} address; {when}."


def assets_fragment(assets: AssetModule, locale: str = "en") -> str:
    if assets.total_value <= 0 or not assets.allocation:
        return "No priced mainnet assets were found."
    parts = [
        f"{b.category} {b.ratio * 100:.1f}% ({ratio_phrase(b.ratio)} share)"
        for b in assets.allocation
        if b.value > 0
    ]
    return f"Holds about {format_usd(assets.total_value, locale)} on mainnet: " + ", ".join(parts) + "."


def activity_fragment(activity: ActivityModule) -> str:
    if activity.tx_count <= 0:
        return "No outbound transactions were found in recent history."
    return (
        f"Initiated {activity.tx_count} recent transfers on {activity.active_days} active days, "
        f"interacting with {activity.contracts_interacted} counterparties."
    )


def risk_fragment(risk: RiskAssessment) -> str:
    return f"Risk score {risk.score}/100 ({risk.level}); profile: {risk.persona_type}."


def build_summary(
    identity: IdentityModule,
    assets: AssetModule,
    activity: ActivityModule,
    risk: RiskAssessment,
    now: float | None = None,
    locale: str = "en",
) -> SummaryModule:
    text = " ".join([
        identity_fragment(identity, now),
        assets_fragment(assets, locale),
        activity_fragment(activity),
        risk_fragment(risk),
    ])
    return SummaryModule(text=text)
