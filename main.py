"""
Main entrypoint: WalletAudit FastAPI server.

Env: ALCHEMY_RPC_URL, ETHERSCAN_API_KEY, ADMIN_STATS_TOKEN, API_HOST, API_PORT, etc.
(see walletaudit/config/env.py). Loads .env from the project root.

Equivalent: uvicorn walletaudit.api_server.server:app --host 0.0.0.0 --port 8000
"""

import uvicorn

# Configure structured JSON logging before other imports that may log
from walletaudit.audit_logging import get_logger
from walletaudit.config.settings import get_settings

logger = get_logger("main")


def main() -> None:
    settings = get_settings()
    logger.info(
        "main_starting",
        host=settings.api_host,
        port=settings.api_port,
        rpc_configured=settings.rpc_configured,
        explorer_configured=settings.explorer_configured,
    )
    uvicorn.run(
        "walletaudit.api_server.server:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
