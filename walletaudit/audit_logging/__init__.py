"""
Structured logging for WalletAudit.

JSON logs with timestamp, wallet, event_type. Use get_logger() in every module.
"""

from walletaudit.audit_logging.logger import bind_wallet, get_logger

__all__ = ["get_logger", "bind_wallet"]
