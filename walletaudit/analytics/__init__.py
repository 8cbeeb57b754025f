"""
WalletAudit analytics.

Aggregators (identity, assets, activity, gas, approvals) turn upstream data
into report modules; risk_engine and wallet_persona score and label the
wallet; report_pipeline assembles the full report.
"""

from walletaudit.analytics.report_pipeline import ReportBuilder, build_report
from walletaudit.analytics.risk_engine import compute_risk
from walletaudit.analytics.wallet_persona import PersonaInputs, build_persona

__all__ = [
    "ReportBuilder",
    "build_report",
    "compute_risk",
    "PersonaInputs",
    "build_persona",
]
