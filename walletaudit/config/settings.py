"""
Application settings.

Typed, read-only view over the environment (see config/env.py) shared by the
upstream clients, report pipeline, stats store and API server.
"""

from __future__ import annotations

from dataclasses import dataclass

from walletaudit.config.env import (
    DEFAULT_BINANCE_API_URL,
    DEFAULT_COINGECKO_API_URL,
    DEFAULT_ETHERSCAN_API_URL,
    env_bool,
    env_float,
    env_int,
    env_str,
    get_database_url,
)
from walletaudit.core.exceptions import ConfigurationError

DEFAULT_HTTP_TIMEOUT_SEC = 8.0
DEFAULT_GAS_CONCURRENCY = 5
DEFAULT_REPORT_CACHE_TTL_SEC = 60.0
DEFAULT_API_PORT = 8000
SUMMARY_LOCALES = ("en", "zh")


@dataclass(frozen=True)
class Settings:
    """Service configuration. Blank provider credentials disable the matching client."""

    alchemy_rpc_url: str = ""
    etherscan_api_key: str = ""
    etherscan_api_url: str = DEFAULT_ETHERSCAN_API_URL
    coingecko_api_url: str = DEFAULT_COINGECKO_API_URL
    binance_api_url: str = DEFAULT_BINANCE_API_URL
    http_timeout_sec: float = DEFAULT_HTTP_TIMEOUT_SEC
    gas_concurrency: int = DEFAULT_GAS_CONCURRENCY
    report_cache_ttl_sec: float = DEFAULT_REPORT_CACHE_TTL_SEC
    stats_enabled: bool = True
    database_url: str = "sqlite:///walletaudit.db"
    admin_stats_token: str = ""
    api_host: str = "0.0.0.0"
    api_port: int = DEFAULT_API_PORT
    summary_locale: str = "en"

    @property
    def rpc_configured(self) -> bool:
        return bool(self.alchemy_rpc_url)

    @property
    def explorer_configured(self) -> bool:
        return bool(self.etherscan_api_key)


def get_settings() -> Settings:
    """
    Return the current application settings, read from env (and .env).

    Values are re-read on every call so tests can monkeypatch the environment.
    Raises ConfigurationError for an unsupported WALLETAUDIT_SUMMARY_LOCALE.
    """
    summary_locale = env_str("WALLETAUDIT_SUMMARY_LOCALE", "en").lower()
    if summary_locale not in SUMMARY_LOCALES:
        supported = ", ".join(SUMMARY_LOCALES)
        raise ConfigurationError(f"WALLETAUDIT_SUMMARY_LOCALE must be one of {supported}, got {summary_locale!r}")
    return Settings(
        alchemy_rpc_url=env_str("ALCHEMY_RPC_URL"),
        etherscan_api_key=env_str("ETHERSCAN_API_KEY"),
        etherscan_api_url=env_str("ETHERSCAN_API_URL", DEFAULT_ETHERSCAN_API_URL),
        coingecko_api_url=env_str("COINGECKO_API_URL", DEFAULT_COINGECKO_API_URL),
        binance_api_url=env_str("BINANCE_API_URL", DEFAULT_BINANCE_API_URL),
        http_timeout_sec=max(0.1, env_float("WALLETAUDIT_HTTP_TIMEOUT_SEC", DEFAULT_HTTP_TIMEOUT_SEC)),
        gas_concurrency=max(1, env_int("WALLETAUDIT_GAS_CONCURRENCY", DEFAULT_GAS_CONCURRENCY)),
        report_cache_ttl_sec=max(0.0, env_float("WALLETAUDIT_REPORT_CACHE_TTL_SEC", DEFAULT_REPORT_CACHE_TTL_SEC)),
        stats_enabled=env_bool("WALLETAUDIT_STATS_ENABLED", True),
        database_url=get_database_url(),
        admin_stats_token=env_str("ADMIN_STATS_TOKEN"),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", DEFAULT_API_PORT),
        summary_locale=summary_locale,
    )
