"""
Environment variable loading for WalletAudit.

- ALCHEMY_RPC_URL: JSON-RPC endpoint (balances, transfers, receipts, metadata)
- ETHERSCAN_API_KEY: explorer key (contract names, tx history for approvals)
- ADMIN_STATS_TOKEN: shared secret for the admin stats route
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is walletaudit/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"
DEFAULT_COINGECKO_API_URL = "https://api.coingecko.com/api/v3"
DEFAULT_BINANCE_API_URL = "https://api.binance.com/api/v3"
DEFAULT_SQLITE_PATH = "walletaudit.db"

_TRUTHY = ("1", "true", "yes", "on")


def load_walletaudit_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    """Return stripped env value or default when unset/blank."""
    load_walletaudit_env()
    return (os.getenv(name) or "").strip() or default


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    raw = env_str(name).lower()
    if not raw:
        return default
    return raw in _TRUTHY


def get_database_url() -> str:
    """
    Resolve the stats store URL.
    Order: WALLETAUDIT_DB_URL > DATABASE_URL > sqlite:///WALLETAUDIT_DB_PATH (default walletaudit.db).
    """
    url = env_str("WALLETAUDIT_DB_URL") or env_str("DATABASE_URL")
    if url:
        return url
    path = env_str("WALLETAUDIT_DB_PATH", DEFAULT_SQLITE_PATH)
    return f"sqlite:///{path}"


def mask_url(url: str) -> str:
    """Hide API keys embedded in provider URLs before logging them."""
    if not url:
        return ""
    if "/v2/" in url:
        return url.split("/v2/")[0] + "/v2/***"
    if "api-key=" in url or "apikey=" in url:
        return url.split("?")[0] + "?***"
    return url
