"""Normalization helpers: addresses, hex quantities, safe numeric coercion."""

from walletaudit.utils.numbers import chunked, format_units, hex_to_int, ratio, safe_float
from walletaudit.utils.wallet_utils import (
    checksum_address,
    is_valid_wallet,
    normalize_address,
    shorten_address,
)

__all__ = [
    "checksum_address",
    "chunked",
    "format_units",
    "hex_to_int",
    "is_valid_wallet",
    "normalize_address",
    "ratio",
    "safe_float",
    "shorten_address",
]
