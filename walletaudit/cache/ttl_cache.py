"""
In-process TTL cache in front of expensive upstream lookups.

One TTLCache is created per process (see get_default_cache) and injected into
the upstream clients and the report pipeline. Entries expire on read. Concurrent
get_or_compute calls for the same key may both compute; every cached
computation is an idempotent read, so no single-flight locking is done.
Tests inject a fake clock or NullCache (always miss).
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Union

from walletaudit.audit_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SEC = 30.0
DEFAULT_MAX_ENTRIES = 10_000

TtlSpec = Union[float, Callable[[Any], float]]


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class TTLCache:
    """
    Key -> (value, expire_at) map with lazy expiry.

    get(key) returns MISSING when absent or expired so that None can be cached
    (negative lookups such as "no contract label").
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self._clock = clock
        self._max_entries = max(1, int(max_entries))
        self._entries: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return MISSING
        value, expire_at = entry
        if self._clock() >= expire_at:
            self._entries.pop(key, None)
            return MISSING
        return value

    def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SEC) -> None:
        if ttl <= 0:
            self._entries.pop(key, None)
            return
        if key not in self._entries and len(self._entries) >= self._max_entries:
            self._evict()
        self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_compute(
        self,
        key: str,
        ttl: TtlSpec,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Return the cached value for key, or await compute() and cache it.

        ttl may be a number of seconds or a function of the computed value
        (e.g. cache hits for a day, misses for an hour).
        """
        hit = self.get(key)
        if hit is not MISSING:
            return hit
        value = await compute()
        seconds = ttl(value) if callable(ttl) else ttl
        self.set(key, value, seconds)
        return value

    def _evict(self) -> None:
        """Drop expired entries; if still full, drop the oldest inserted entry."""
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
        if len(self._entries) >= self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("ttl_cache_evicted", key=oldest)


class NullCache(TTLCache):
    """Always-miss cache: every get_or_compute call computes."""

    def get(self, key: str) -> Any:
        return MISSING

    def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SEC) -> None:
        return None


_default_cache: TTLCache | None = None


def get_default_cache() -> TTLCache:
    """Process-wide cache, created on first use. Entries self-expire; no teardown."""
    global _default_cache
    if _default_cache is None:
        _default_cache = TTLCache()
    return _default_cache


def reset_default_cache_for_test() -> None:
    global _default_cache
    _default_cache = None
