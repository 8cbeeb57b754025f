"""TTL cache façade used by upstream clients and the report pipeline."""

from walletaudit.cache.ttl_cache import MISSING, NullCache, TTLCache, get_default_cache

__all__ = ["MISSING", "NullCache", "TTLCache", "get_default_cache"]
