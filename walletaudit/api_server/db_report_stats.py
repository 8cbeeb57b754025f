"""
Report usage stats and per-wallet value history, SQLAlchemy-backed.

Uses WALLETAUDIT_DB_URL / DATABASE_URL when set; otherwise SQLite at
WALLETAUDIT_DB_PATH (default walletaudit.db). Tables:

- report_counters: key -> integer (requests:total, requests:day:YYYY-MM-DD)
- wallet_visits: one row per (scope, wallet); scope "all" or "day:YYYY-MM-DD"
- wallet_value_history: (wallet, timestamp, total_value), newest 30 kept per wallet

Module functions are synchronous. ReportStatsStore wraps them for the async
report pipeline (asyncio.to_thread); NullStatsStore is used when stats are
disabled.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

from sqlalchemy import Column, Float, Integer, String, UniqueConstraint, create_engine, event, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from walletaudit.audit_logging import get_logger
from walletaudit.config.env import get_database_url
from walletaudit.utils.wallet_utils import shorten_address

logger = get_logger(__name__)

Base = declarative_base()

HISTORY_LIMIT = 30
TRENDING_LIMIT = 20
DAILY_WINDOW_DAYS = 30
SCOPE_ALL = "all"

COUNTER_REQUESTS_TOTAL = "requests:total"
WRITE_ATTEMPTS = 3

# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class ReportCounter(Base):
    __tablename__ = "report_counters"

    key = Column(String(64), primary_key=True)
    value = Column(Integer, nullable=False, default=0)


class WalletVisit(Base):
    """
    One row per wallet per scope. The "all" scope doubles as the trending
    ranking (visits desc, last_seen desc).
    """

    __tablename__ = "wallet_visits"
    __table_args__ = (UniqueConstraint("scope", "wallet", name="uq_wallet_visits_scope_wallet"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope = Column(String(32), nullable=False, index=True)
    wallet = Column(String(64), nullable=False, index=True)
    visits = Column(Integer, nullable=False, default=0)
    first_seen = Column(Integer, nullable=False)  # Unix
    last_seen = Column(Integer, nullable=False, index=True)  # Unix

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.wallet,
            "visits": self.visits,
            "first_seen": self.first_seen,
            "last_timestamp": self.last_seen,
        }


class WalletValueHistory(Base):
    __tablename__ = "wallet_value_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet = Column(String(64), nullable=False, index=True)
    timestamp = Column(Integer, nullable=False, index=True)  # Unix
    total_value = Column(Float, nullable=False, default=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "total_value": self.total_value}


# -----------------------------------------------------------------------------
# Engine and session
# -----------------------------------------------------------------------------

_engine = None
_SessionLocal: sessionmaker | None = None


def _display_url(url: str) -> str:
    return url.split("?")[0].split("@")[-1].split("//")[-1]


def _use_immediate_transactions(engine) -> None:
    """
    SQLite: open every transaction with BEGIN IMMEDIATE so concurrent writers
    queue on the busy timeout instead of failing a SHARED -> RESERVED upgrade.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _get_engine():
    global _engine
    if _engine is None:
        url = get_database_url()
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        if url.startswith("sqlite"):
            _use_immediate_transactions(_engine)
        logger.info("report_stats_engine", url=_display_url(url))
    return _engine


def _get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
    return _SessionLocal


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Commits on success, rolls back on error."""
    session = _get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create stats tables if missing. Safe to call on every startup."""
    try:
        Base.metadata.create_all(bind=_get_engine())
        logger.info("report_stats_init_db", url=_display_url(get_database_url()))
    except Exception as e:
        logger.exception("report_stats_init_db_failed", error=str(e))
        raise


def reset_engine_for_test() -> None:
    """Drop the cached engine and session factory; use with a fresh WALLETAUDIT_DB_PATH."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _day(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def _day_counter(day: str) -> str:
    return f"requests:day:{day}"


def _day_scope(day: str) -> str:
    return f"day:{day}"


def _incr(session: Session, key: str, by: int = 1) -> None:
    # UPDATE in the database; insert only when no row matched.
    updated = (
        session.query(ReportCounter)
        .filter(ReportCounter.key == key)
        .update({ReportCounter.value: ReportCounter.value + by}, synchronize_session=False)
    )
    if not updated:
        session.add(ReportCounter(key=key, value=by))
        session.flush()


def _touch_visit(session: Session, scope: str, wallet: str, ts: int) -> None:
    updated = (
        session.query(WalletVisit)
        .filter(WalletVisit.scope == scope, WalletVisit.wallet == wallet)
        .update(
            {WalletVisit.visits: WalletVisit.visits + 1, WalletVisit.last_seen: ts},
            synchronize_session=False,
        )
    )
    if not updated:
        session.add(WalletVisit(scope=scope, wallet=wallet, visits=1, first_seen=ts, last_seen=ts))
        session.flush()


def _counter(session: Session, key: str) -> int:
    row = session.get(ReportCounter, key)
    return int(row.value or 0) if row else 0


def _unique(session: Session, scope: str) -> int:
    return int(session.query(func.count(WalletVisit.id)).filter(WalletVisit.scope == scope).scalar() or 0)


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


def record_report_view(wallet: str, ts: int | None = None) -> None:
    """Count one report request: total and daily counters, unique wallet (global and per day), trending."""
    ts = int(ts if ts is not None else time.time())
    wallet = wallet.lower()
    day = _day(ts)
    # A concurrent writer may insert the same counter or visit row first; the
    # rolled-back attempt then finds it and takes the UPDATE path.
    for attempt in range(1, WRITE_ATTEMPTS + 1):
        try:
            with _session_scope() as session:
                _incr(session, COUNTER_REQUESTS_TOTAL)
                _incr(session, _day_counter(day))
                _touch_visit(session, SCOPE_ALL, wallet, ts)
                _touch_visit(session, _day_scope(day), wallet, ts)
            break
        except IntegrityError:
            if attempt == WRITE_ATTEMPTS:
                raise
            logger.warning("report_view_retry", wallet=shorten_address(wallet), attempt=attempt)
    logger.debug("report_view_recorded", wallet=shorten_address(wallet), day=day)


def get_value_history(wallet: str, limit: int = HISTORY_LIMIT) -> list[dict[str, Any]]:
    """Value samples for wallet, newest first."""
    with _session_scope() as session:
        rows = (
            session.query(WalletValueHistory)
            .filter(WalletValueHistory.wallet == wallet.lower())
            .order_by(WalletValueHistory.timestamp.desc(), WalletValueHistory.id.desc())
            .limit(limit)
            .all()
        )
        return [r.to_dict() for r in rows]


def append_value_sample(wallet: str, total_value: float, ts: int | None = None, limit: int = HISTORY_LIMIT) -> None:
    """Append one sample and drop everything beyond the newest `limit` for wallet."""
    ts = int(ts if ts is not None else time.time())
    wallet = wallet.lower()
    with _session_scope() as session:
        session.add(WalletValueHistory(wallet=wallet, timestamp=ts, total_value=float(total_value or 0.0)))
        session.flush()
        stale = (
            session.query(WalletValueHistory.id)
            .filter(WalletValueHistory.wallet == wallet)
            .order_by(WalletValueHistory.timestamp.desc(), WalletValueHistory.id.desc())
            .offset(limit)
            .all()
        )
        if stale:
            session.query(WalletValueHistory).filter(
                WalletValueHistory.id.in_([r.id for r in stale])
            ).delete(synchronize_session=False)


def get_public_stats(now: int | None = None, trending_limit: int = TRENDING_LIMIT) -> dict[str, Any]:
    """
    Totals for the public stats route: pv, unique_wallets, today_active_wallets,
    daily request counts (last 30 days, newest first) and trending wallets.
    """
    now = int(now if now is not None else time.time())
    today = _day(now)
    today_dt = datetime.fromtimestamp(now, tz=timezone.utc)
    with _session_scope() as session:
        daily = []
        for offset in range(DAILY_WINDOW_DAYS):
            day = (today_dt - timedelta(days=offset)).strftime("%Y-%m-%d")
            count = _counter(session, _day_counter(day))
            if count:
                daily.append({"date": day, "count": count})
        trending = (
            session.query(WalletVisit)
            .filter(WalletVisit.scope == SCOPE_ALL)
            .order_by(WalletVisit.visits.desc(), WalletVisit.last_seen.desc(), WalletVisit.id.asc())
            .limit(trending_limit)
            .all()
        )
        return {
            "pv": _counter(session, COUNTER_REQUESTS_TOTAL),
            "unique_wallets": _unique(session, SCOPE_ALL),
            "today_active_wallets": _unique(session, _day_scope(today)),
            "daily": daily,
            "top_wallets": [w.to_dict() for w in trending],
        }


def get_admin_stats(now: int | None = None) -> dict[str, Any]:
    now = int(now if now is not None else time.time())
    day = _day(now)
    with _session_scope() as session:
        return {
            "day": day,
            "total_requests": _counter(session, COUNTER_REQUESTS_TOTAL),
            "total_unique_addresses": _unique(session, SCOPE_ALL),
            "today_requests": _counter(session, _day_counter(day)),
            "today_unique_addresses": _unique(session, _day_scope(day)),
        }


# -----------------------------------------------------------------------------
# Async adapters for the report pipeline
# -----------------------------------------------------------------------------


class ReportStatsStore:
    """Runs the synchronous store functions off the event loop."""

    enabled = True

    async def load_history(self, wallet: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(get_value_history, wallet)

    async def record_report(self, wallet: str, total_value: float, ts: int) -> None:
        await asyncio.to_thread(append_value_sample, wallet, total_value, ts)
        await asyncio.to_thread(record_report_view, wallet, ts)

    async def record_view(self, wallet: str, ts: int) -> None:
        await asyncio.to_thread(record_report_view, wallet, ts)

    async def public_stats(self) -> dict[str, Any]:
        return await asyncio.to_thread(get_public_stats)

    async def admin_stats(self) -> dict[str, Any]:
        return await asyncio.to_thread(get_admin_stats)


class NullStatsStore(ReportStatsStore):
    """Stats disabled: nothing is recorded, history is always empty."""

    enabled = False

    async def load_history(self, wallet: str) -> list[dict[str, Any]]:
        return []

    async def record_report(self, wallet: str, total_value: float, ts: int) -> None:
        return None

    async def record_view(self, wallet: str, ts: int) -> None:
        return None

    async def public_stats(self) -> dict[str, Any]:
        return {"pv": 0, "unique_wallets": 0, "today_active_wallets": 0, "daily": [], "top_wallets": []}

    async def admin_stats(self) -> dict[str, Any]:
        return {
            "day": _day(int(time.time())),
            "total_requests": 0,
            "total_unique_addresses": 0,
            "today_requests": 0,
            "today_unique_addresses": 0,
        }
