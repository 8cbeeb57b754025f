"""
Numeric coercion for upstream payloads.

On-chain amounts arrive as 0x-hex or decimal strings of integer base units;
prices arrive as strings or floats. Everything here is total: bad input maps
to a fallback instead of raising.
"""

from __future__ import annotations

import math
from typing import Any

ETH_DECIMALS = 18


def safe_float(value: Any, fallback: float = 0.0) -> float:
    """float(value) when finite, otherwise fallback (NaN, inf, None, junk)."""
    try:
        x = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(x):
        return fallback
    return x


def hex_to_int(value: Any) -> int:
    """
    Parse an integer quantity: "0x1a", "26", 26. Returns 0 on failure.
    Negative values are treated as invalid.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value >= 0 else 0
    if not isinstance(value, str):
        return 0
    raw = value.strip().lower()
    if not raw:
        return 0
    try:
        n = int(raw, 16) if raw.startswith("0x") else int(raw, 10)
    except ValueError:
        return 0
    return n if n >= 0 else 0


def format_units(value: int, decimals: int = ETH_DECIMALS) -> float:
    """
    Integer base units -> decimal float (like ethers formatUnits).

    Splits into whole and fractional parts so large balances keep their
    integer precision as far as float64 allows.
    """
    if value <= 0:
        return 0.0
    decimals = max(0, int(decimals))
    divisor = 10 ** decimals
    whole, frac = divmod(value, divisor)
    try:
        result = float(whole) + (frac / divisor if divisor > 1 else 0.0)
    except OverflowError:
        return 0.0
    return result if math.isfinite(result) else 0.0


def ratio(part: float, total: float) -> float:
    """part / total clamped to [0, 1]; 0 when total is not positive."""
    if total <= 0:
        return 0.0
    return min(1.0, max(0.0, part / total))


def chunked(items: list, size: int) -> list[list]:
    """Split items into consecutive lists of at most size elements."""
    size = max(1, int(size))
    return [items[i:i + size] for i in range(0, len(items), size)]
