"""
WalletAudit: on-chain wallet report backend for Ethereum addresses.

Aggregates balances, token holdings, outbound activity, gas spend and token
approvals from third-party RPC, explorer and price APIs, then derives a risk
score, a wallet persona and a short narrative summary. Modular layout: upstream
clients, analytics aggregators, risk engine, report pipeline and API server.
"""

__version__ = "1.2.0"
