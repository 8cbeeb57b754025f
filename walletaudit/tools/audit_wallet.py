"""
Build one wallet report from the command line and print it as JSON.

How to run:
    From project root (with .env configured):
        python -m walletaudit.tools.audit_wallet 0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045 --pretty
    Or, after pip install:
        walletaudit-audit 0x... --no-stats

Env vars:
    ALCHEMY_RPC_URL     JSON-RPC endpoint (balances, transfers, receipts)
    ETHERSCAN_API_KEY   optional; contract labels and approvals
    WALLETAUDIT_STATS_ENABLED=0 to skip the local stats database
    WALLETAUDIT_SUMMARY_LOCALE  en (default) or zh; unit style of the summary amounts

Exit codes: 0 ok, 2 invalid address or configuration, 1 any other failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace

from walletaudit.analytics.report_pipeline import build_report
from walletaudit.audit_logging import get_logger
from walletaudit.config.settings import get_settings
from walletaudit.core.exceptions import ConfigurationError, InvalidAddressError

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the WalletAudit report for one Ethereum address as JSON.",
    )
    parser.add_argument("address", help="Wallet address (0x + 40 hex characters)")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    parser.add_argument("--no-stats", action="store_true", help="Do not read or write the stats database")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = get_settings()
    except ConfigurationError as e:
        print("ERROR:", e, file=sys.stderr)
        return 2
    if args.no_stats:
        settings = replace(settings, stats_enabled=False)
    if not settings.rpc_configured:
        logger.warning("audit_wallet_rpc_not_configured", hint="set ALCHEMY_RPC_URL for on-chain data")
    try:
        report = asyncio.run(build_report(args.address, settings=settings))
    except InvalidAddressError as e:
        print("ERROR:", e, file=sys.stderr)
        return 2
    except Exception as e:
        logger.exception("audit_wallet_failed", error=str(e))
        print("ERROR:", e, file=sys.stderr)
        return 1
    print(json.dumps(report.to_dict(), indent=2 if args.pretty else None, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
