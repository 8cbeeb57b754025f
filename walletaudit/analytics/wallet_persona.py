"""
Wallet persona and descriptive tags.

Both are ordered rule tables evaluated top to bottom, first match wins:

- PERSONA_RULES: (predicate, label) pairs; exactly one label per wallet,
  NEUTRAL_HOLDER when nothing matches.
- TAG_RULES: four independent categories (asset structure, position size,
  activity frequency, risk tier); each contributes at most one tag.

Pure functions; no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from walletaudit.analytics.models import RISK_HIGH, RISK_LOW

PERSONA_DORMANT_HOLDER = "Dormant Holder"
PERSONA_CONSERVATIVE_HOLDER = "Conservative Holder"
PERSONA_MEME_HOLDER = "High-Volatility Meme Holder"
PERSONA_AGGRESSIVE_HOLDER = "Aggressive Holder"
PERSONA_HIGH_FREQUENCY_TRADER = "High-Frequency Trader"
PERSONA_NEUTRAL_HOLDER = "Neutral Holder"

TAG_HIGH_STABLE = "High Stablecoin Share"
TAG_HIGH_MEME = "High Meme Exposure"
TAG_LOW_STABLE = "Low Stablecoin Share"
TAG_WHALE = "Whale"
TAG_LARGE_HOLDER = "Large Holder"
TAG_MID_HOLDER = "Mid-size Holder"
TAG_SMALL_HOLDER = "Small Holder"
TAG_DORMANT = "Dormant"
TAG_HIGH_FREQUENCY = "High-Frequency"
TAG_ACTIVE = "Active"
TAG_OCCASIONAL = "Occasional"
TAG_LOW_RISK = "Low Risk"
TAG_HIGH_RISK = "High Risk"

# Thresholds
HIGH_STABLE_RATIO = 0.5
HIGH_MEME_RATIO = 0.3
LOW_STABLE_RATIO = 0.05
WHALE_USD = 1_000_000
LARGE_HOLDER_USD = 100_000
MID_HOLDER_USD = 1_000
HIGH_FREQUENCY_TX = 200
ACTIVE_TX = 50
CONSERVATIVE_MIN_SCORE = 75
CONSERVATIVE_MIN_STABLE = 0.3
MEME_HOLDER_MAX_SCORE = 35
MEME_HOLDER_MIN_MEME = 0.2
AGGRESSIVE_MAX_SCORE = 40


@dataclass(frozen=True)
class PersonaInputs:
    total_value: float
    stable_ratio: float
    meme_ratio: float
    tx_count: int
    level: str
    score: int


@dataclass(frozen=True)
class Persona:
    persona_type: str
    tags: list[str] = field(default_factory=list)


Rule = Callable[[PersonaInputs], bool]

PERSONA_RULES: list[tuple[Rule, str]] = [
    (lambda p: p.tx_count == 0 and p.total_value > 0, PERSONA_DORMANT_HOLDER),
    (
        lambda p: p.score >= CONSERVATIVE_MIN_SCORE and p.stable_ratio >= CONSERVATIVE_MIN_STABLE,
        PERSONA_CONSERVATIVE_HOLDER,
    ),
    (
        lambda p: p.score <= MEME_HOLDER_MAX_SCORE and p.meme_ratio >= MEME_HOLDER_MIN_MEME,
        PERSONA_MEME_HOLDER,
    ),
    (lambda p: p.score <= AGGRESSIVE_MAX_SCORE, PERSONA_AGGRESSIVE_HOLDER),
    (lambda p: p.tx_count > HIGH_FREQUENCY_TX, PERSONA_HIGH_FREQUENCY_TRADER),
]

TAG_RULES: dict[str, list[tuple[Rule, str]]] = {
    "asset_structure": [
        (lambda p: p.stable_ratio >= HIGH_STABLE_RATIO, TAG_HIGH_STABLE),
        (lambda p: p.meme_ratio >= HIGH_MEME_RATIO, TAG_HIGH_MEME),
        # An empty wallet is not "low stablecoin".
        (lambda p: p.total_value > 0 and p.stable_ratio <= LOW_STABLE_RATIO, TAG_LOW_STABLE),
    ],
    "position_size": [
        (lambda p: p.total_value >= WHALE_USD, TAG_WHALE),
        (lambda p: p.total_value >= LARGE_HOLDER_USD, TAG_LARGE_HOLDER),
        (lambda p: p.total_value >= MID_HOLDER_USD, TAG_MID_HOLDER),
        (lambda p: p.total_value > 0, TAG_SMALL_HOLDER),
    ],
    "activity": [
        (lambda p: p.tx_count == 0, TAG_DORMANT),
        (lambda p: p.tx_count > HIGH_FREQUENCY_TX, TAG_HIGH_FREQUENCY),
        (lambda p: p.tx_count >= ACTIVE_TX, TAG_ACTIVE),
        (lambda p: True, TAG_OCCASIONAL),
    ],
    "risk_tier": [
        (lambda p: p.level == RISK_LOW, TAG_LOW_RISK),
        (lambda p: p.level == RISK_HIGH, TAG_HIGH_RISK),
    ],
}


def first_match(rules: list[tuple[Rule, str]], inputs: PersonaInputs) -> str | None:
    for predicate, label in rules:
        if predicate(inputs):
            return label
    return None


def classify_persona(inputs: PersonaInputs) -> str:
    """Persona label; earlier rules win even when later ones also hold."""
    return first_match(PERSONA_RULES, inputs) or PERSONA_NEUTRAL_HOLDER


def build_tags(inputs: PersonaInputs) -> list[str]:
    tags: list[str] = []
    for rules in TAG_RULES.values():
        tag = first_match(rules, inputs)
        if tag:
            tags.append(tag)
    return tags


def build_persona(inputs: PersonaInputs) -> Persona:
    return Persona(persona_type=classify_persona(inputs), tags=build_tags(inputs))
