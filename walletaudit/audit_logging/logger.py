"""
Structured logging for WalletAudit (structlog).

Every record carries event_type (the snake_case event name), level, logger,
an ISO-8601 UTC timestamp and the caller's keyword fields. Output goes to
stderr so the CLI can print report JSON on stdout.

Two processors run before rendering:

- wallet fields holding a full address are shortened to 0x1234...abcd;
- fields that can carry provider credentials (apikey, token, rpc_url, ...)
  are masked.

LOG_LEVEL (default INFO) and LOG_FORMAT (json | console, default json) are
read once at import. This module must not import other walletaudit modules.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import Any, TextIO

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

SECRET_FIELDS = frozenset({"apikey", "api_key", "token", "admin_token", "rpc_url", "authorization"})
MASK = "***"

_FULL_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_KEYED_PATH_RE = re.compile(r"(/v2/)[^/?#\s]+")
_KEY_PARAM_RE = re.compile(r"((?:api-?key|token)=)[^&\s]+", re.IGNORECASE)


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    return event_dict


def _shorten_wallet(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    wallet = event_dict.get("wallet")
    if isinstance(wallet, str) and _FULL_ADDRESS_RE.match(wallet):
        event_dict["wallet"] = f"{wallet[:6]}...{wallet[-4:]}"
    return event_dict


def _redact(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_FIELDS and value:
            event_dict[key] = MASK
        elif isinstance(value, str) and ("/v2/" in value or "=" in value):
            event_dict[key] = _KEY_PARAM_RE.sub(r"\1" + MASK, _KEYED_PATH_RE.sub(r"\1" + MASK, value))
    return event_dict


def configure_structlog(
    level: str = LOG_LEVEL,
    fmt: str = LOG_FORMAT,
    stream: TextIO | None = None,
) -> None:
    """(Re)configure structlog. Called once at import with the env defaults."""
    renderer: Any
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=(stream or sys.stderr).isatty())
    else:
        renderer = structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _event_type,
            _shorten_wallet,
            _redact,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger bound to the module name.

        logger = get_logger(__name__)
        logger.info("report_built", wallet=addr, score=55, risk_level="Medium")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet: str) -> structlog.BoundLogger:
    """Logger with wallet bound to every subsequent call (shortened on output)."""
    return get_logger("walletaudit").bind(wallet=wallet)
