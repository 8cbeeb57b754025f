"""
Tests for the FastAPI routes (TestClient, dependencies overridden).
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from walletaudit import __version__
from walletaudit.analytics.report_pipeline import ReportBuilder
from walletaudit.api_server.db_report_stats import NullStatsStore, ReportStatsStore
from walletaudit.api_server.server import app, get_builder, get_stats_store
from walletaudit.cache.ttl_cache import TTLCache
from walletaudit.core.exceptions import ReportBuildError

WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_builder(make_rpc, make_prices, make_explorer):
    return ReportBuilder(
        rpc=make_rpc(eth_wei=3 * 10**18),
        explorer=make_explorer(),
        prices=make_prices(eth_price=2_000.0),
        cache=TTLCache(),
    )


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "version": __version__}


def test_report_returns_full_json(client, fake_builder):
    app.dependency_overrides[get_builder] = lambda: fake_builder
    r = client.get("/api/report", params={"address": WALLET})
    assert r.status_code == 200
    data = r.json()
    assert data["address"] == WALLET
    assert data["assets"]["eth"]["amount"] == 3.0
    assert data["assets"]["total_value"] == 6_000.0
    assert data["risk"]["level"] in ("Low", "Medium", "High")
    assert data["meta"]["from_cache"] is False

    again = client.get("/api/report", params={"address": WALLET}).json()
    assert again["meta"]["from_cache"] is True


@pytest.mark.parametrize("address", ["", "0x123", "vitalik.eth", WALLET + "00"])
def test_report_invalid_address_is_400(client, fake_builder, address):
    app.dependency_overrides[get_builder] = lambda: fake_builder
    r = client.get("/api/report", params={"address": address})
    assert r.status_code == 400
    assert r.json() == {"detail": "Enter a valid Ethereum address (0x followed by 40 hex characters)"}


def test_report_build_failure_is_500(client):
    builder = MagicMock()
    builder.build_report = AsyncMock(side_effect=ReportBuildError("nothing"))
    app.dependency_overrides[get_builder] = lambda: builder
    r = client.get("/api/report", params={"address": WALLET})
    assert r.status_code == 500
    assert r.json() == {"detail": "could not retrieve any data"}


def test_public_stats(client, stats_db):
    stats_db.record_report_view(WALLET)
    app.dependency_overrides[get_stats_store] = lambda: ReportStatsStore()
    r = client.get("/api/report/stats")
    assert r.status_code == 200
    data = r.json()
    assert data["pv"] == 1
    assert data["unique_wallets"] == 1
    assert data["today_active_wallets"] == 1
    assert data["top_wallets"][0]["address"] == WALLET
    assert len(data["daily"]) == 1


def test_admin_stats_unconfigured_is_503(client):
    app.dependency_overrides[get_stats_store] = lambda: NullStatsStore()
    r = client.get("/api/stats", params={"token": "anything"})
    assert r.status_code == 503


def test_admin_stats_token_check(client, monkeypatch):
    monkeypatch.setenv("ADMIN_STATS_TOKEN", "s3cret")
    app.dependency_overrides[get_stats_store] = lambda: NullStatsStore()

    assert client.get("/api/stats").status_code == 401
    assert client.get("/api/stats", params={"token": "wrong"}).status_code == 401

    r = client.get("/api/stats", params={"token": "s3cret"})
    assert r.status_code == 200
    assert r.json()["total_requests"] == 0


def test_lifespan_wires_builder_and_stats(stats_db):
    with TestClient(app) as c:
        assert isinstance(app.state.builder, ReportBuilder)
        assert app.state.stats.enabled is True
        assert c.get("/api/report", params={"address": "nope"}).status_code == 400
        assert c.get("/api/report/stats").json()["pv"] == 0
