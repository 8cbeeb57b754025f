"""Wallet address validation and display helpers (EVM, 20-byte hex)."""

from __future__ import annotations

import re

from eth_utils import to_checksum_address

from walletaudit.core.exceptions import InvalidAddressError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
ZERO_ADDRESS = "0x" + "0" * 40


def is_valid_wallet(w: str | None) -> bool:
    """Return True if w is a 0x-prefixed 40 hex-digit address (any casing)."""
    if not isinstance(w, str):
        return False
    return bool(_ADDRESS_RE.match(w.strip()))


def normalize_address(w: str | None) -> str:
    """Return the canonical lower-case form. Raises InvalidAddressError."""
    raw = (w or "").strip() if isinstance(w, str) else ""
    if not is_valid_wallet(raw):
        raise InvalidAddressError(str(w))
    return raw.lower()


def checksum_address(w: str) -> str:
    """EIP-55 display casing; returns the input unchanged if it is not an address."""
    if not is_valid_wallet(w):
        return w
    return to_checksum_address(w.strip().lower())


def shorten_address(w: str, head: int = 6, tail: int = 4) -> str:
    """0x1234...abcd for display and logs; short or non-0x values pass through."""
    if not isinstance(w, str):
        return ""
    if not w.startswith("0x") or len(w) <= head + tail:
        return w
    return f"{w[:head]}...{w[-tail:]}"
