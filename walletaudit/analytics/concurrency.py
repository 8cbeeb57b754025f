"""
Bounded-concurrency fan-out for upstream lookups.

map_with_concurrency runs one coroutine per item with at most `limit` in flight
(asyncio.Semaphore), a per-call timeout, and a default value for any call that
times out or raises. Result order matches input order.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from walletaudit.audit_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 5
DEFAULT_CALL_TIMEOUT_SEC = 8.0


async def map_with_concurrency(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    limit: int = DEFAULT_CONCURRENCY,
    timeout: float | None = DEFAULT_CALL_TIMEOUT_SEC,
    default: Any = None,
) -> list[R | Any]:
    """
    Apply fn to every item with bounded concurrency.

    A call that raises or exceeds `timeout` seconds yields `default` in its
    slot; the batch itself never fails.
    """
    if not items:
        return []
    sem = asyncio.Semaphore(max(1, int(limit)))

    async def run_one(item: T) -> R | Any:
        async with sem:
            try:
                if timeout is None:
                    return await fn(item)
                return await asyncio.wait_for(fn(item), timeout=timeout)
            except asyncio.TimeoutError:
                logger.debug("concurrency_call_timeout", timeout_sec=timeout)
                return default
            except Exception as e:
                logger.debug("concurrency_call_failed", error=str(e))
                return default

    return list(await asyncio.gather(*(run_one(item) for item in items)))
