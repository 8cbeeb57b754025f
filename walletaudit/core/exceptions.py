"""
Application-level exceptions.

Upstream failures never surface as exceptions (clients return fallbacks);
these cover caller errors and orchestration failures mapped to API status codes.
"""

from __future__ import annotations


class WalletAuditError(Exception):
    """Base class for WalletAudit errors."""


class InvalidAddressError(WalletAuditError, ValueError):
    """Input is not a 0x-prefixed 20-byte hex address. Mapped to HTTP 400."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Invalid Ethereum address: {address!r}")


class ConfigurationError(WalletAuditError):
    """A setting holds an unsupported value (raised by get_settings)."""


class ReportBuildError(WalletAuditError):
    """The report pipeline could not assemble a report. Mapped to HTTP 500."""
