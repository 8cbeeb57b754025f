"""
Tests for the audit_wallet command-line tool.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

from walletaudit.tools import audit_wallet

WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


def test_invalid_address_exit_code(capsys):
    assert audit_wallet.main(["0x123", "--no-stats"]) == 2
    assert "Invalid Ethereum address" in capsys.readouterr().err


def test_prints_report_json(monkeypatch, capsys):
    seen = {}

    async def fake_build_report(address, settings=None):
        seen["address"] = address
        seen["stats_enabled"] = settings.stats_enabled
        report = MagicMock()
        report.to_dict.return_value = {"address": address, "risk": {"score": 55}}
        return report

    monkeypatch.setattr(audit_wallet, "build_report", fake_build_report)
    assert audit_wallet.main([WALLET, "--no-stats", "--pretty"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"address": WALLET, "risk": {"score": 55}}
    assert seen == {"address": WALLET, "stats_enabled": False}


def test_unexpected_failure_exit_code(monkeypatch, capsys):
    async def broken(address, settings=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(audit_wallet, "build_report", broken)
    assert audit_wallet.main([WALLET]) == 1
    assert "boom" in capsys.readouterr().err


def test_bad_configuration_exit_code(monkeypatch, capsys):
    monkeypatch.setenv("WALLETAUDIT_SUMMARY_LOCALE", "klingon")
    assert audit_wallet.main([WALLET, "--no-stats"]) == 2
    assert "WALLETAUDIT_SUMMARY_LOCALE" in capsys.readouterr().err
