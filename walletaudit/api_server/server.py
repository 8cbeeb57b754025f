"""
FastAPI server: wallet report API.

GET /api/report?address=0x...   full report JSON (cached per address)
GET /api/report/stats           public usage totals and trending wallets
GET /api/stats?token=...        admin counters (ADMIN_STATS_TOKEN)
GET /health                     liveness

The lifespan opens one shared httpx.AsyncClient and the stats store and
keeps a ReportBuilder on app.state; routes reach it through dependencies so
tests can override them.
"""

from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from walletaudit import __version__
from walletaudit.analytics.report_pipeline import ReportBuilder, open_stats_store
from walletaudit.api_server.db_report_stats import ReportStatsStore
from walletaudit.audit_logging import get_logger
from walletaudit.config.settings import Settings, get_settings
from walletaudit.core.exceptions import InvalidAddressError
from walletaudit.utils.wallet_utils import shorten_address

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class TrendingWallet(BaseModel):
    address: str
    visits: int = Field(..., ge=0)
    first_seen: int
    last_timestamp: int


class DailyCount(BaseModel):
    date: str = Field(..., description="UTC day, YYYY-MM-DD")
    count: int = Field(..., ge=0)


class PublicStatsResponse(BaseModel):
    """GET /api/report/stats response."""

    pv: int = Field(..., ge=0, description="Total report requests")
    unique_wallets: int = Field(..., ge=0)
    today_active_wallets: int = Field(..., ge=0)
    daily: list[DailyCount] = Field(default_factory=list)
    top_wallets: list[TrendingWallet] = Field(default_factory=list)


class AdminStatsResponse(BaseModel):
    """GET /api/stats response."""

    day: str
    total_requests: int = Field(..., ge=0)
    total_unique_addresses: int = Field(..., ge=0)
    today_requests: int = Field(..., ge=0)
    today_unique_addresses: int = Field(..., ge=0)


# -----------------------------------------------------------------------------
# Lifespan and dependencies
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared HTTP client, stats store and report builder; close the client on shutdown."""
    settings = get_settings()
    stats = await open_stats_store(settings)
    client = httpx.AsyncClient(timeout=settings.http_timeout_sec)
    app.state.stats = stats
    app.state.builder = ReportBuilder.from_settings(client, settings=settings, stats=stats)
    logger.info(
        "api_started",
        rpc_configured=settings.rpc_configured,
        explorer_configured=settings.explorer_configured,
        stats_enabled=stats.enabled,
    )
    try:
        yield
    finally:
        await client.aclose()
        logger.info("api_stopped")


def get_builder(request: Request) -> ReportBuilder:
    return request.app.state.builder


def get_stats_store(request: Request) -> ReportStatsStore:
    return request.app.state.stats


def get_app_settings() -> Settings:
    return get_settings()


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="WalletAudit API",
    description="On-chain Ethereum wallet reports: assets, activity, gas, approvals, risk and persona.",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/api/report")
async def get_report(
    address: str = Query("", description="Wallet address, 0x + 40 hex"),
    builder: ReportBuilder = Depends(get_builder),
) -> JSONResponse:
    """Build the wallet report. 400 for a malformed address, 500 when nothing could be retrieved."""
    try:
        report = await builder.build_report(address)
    except InvalidAddressError as e:
        raise HTTPException(
            status_code=400,
            detail="Enter a valid Ethereum address (0x followed by 40 hex characters)",
        ) from e
    except Exception as e:
        logger.exception("report_route_failed", wallet=shorten_address(address.strip()), error=str(e))
        raise HTTPException(status_code=500, detail="could not retrieve any data") from e
    return JSONResponse(content=report.to_dict())


@app.get("/api/report/stats", response_model=PublicStatsResponse)
async def get_public_stats(stats: ReportStatsStore = Depends(get_stats_store)) -> dict[str, Any]:
    try:
        return await stats.public_stats()
    except Exception as e:
        logger.exception("public_stats_failed", error=str(e))
        raise HTTPException(status_code=500, detail="stats_failed") from e


@app.get("/api/stats", response_model=AdminStatsResponse)
async def get_admin_stats(
    token: str = Query(""),
    settings: Settings = Depends(get_app_settings),
    stats: ReportStatsStore = Depends(get_stats_store),
) -> dict[str, Any]:
    """Admin counters. 503 when ADMIN_STATS_TOKEN is unset; 401 on a wrong token."""
    if not settings.admin_stats_token:
        raise HTTPException(status_code=503, detail="Admin stats are not configured")
    if not token or not hmac.compare_digest(token, settings.admin_stats_token):
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return await stats.admin_stats()
    except Exception as e:
        logger.exception("admin_stats_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Stats fetch failed") from e


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness probe: API is up."""
    return {"status": "ok", "version": __version__}


@app.exception_handler(HTTPException)
def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
    """Consistent JSON error response for HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
