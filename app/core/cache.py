"""
In-memory caching module for dashboard data.

Uses TTLCache for automatic expiration. Cache is invalidated when user data changes
(receipt added) through the invalidate_user() function.

Note: This is an in-memory cache that doesn't persist across server restarts
and doesn't sync across multiple instances.
"""

import logging
from typing import Any, Optional

from cachetools import TTLCache

from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_cache: TTLCache = TTLCache(maxsize=10000, ttl=settings.CACHE_TTL_SECONDS)

# Track cache statistics for monitoring
_cache_stats = {"hits": 0, "misses": 0}


def build_cache_key(func_name: str, owner: str, **params: Any) -> str:
    """Build a cache key from function name, owner and parameters.

    Args:
        func_name: Name of the cached computation
        owner: User or guest key for cache isolation
        **params: Additional parameters to include in the key
    """
    # Sort params for consistent key generation
    param_str = ":".join(f"{k}={v}" for k, v in sorted(params.items()) if v is not None)
    return f"{func_name}:{owner}:{param_str}"


def get_cached(key: str) -> Optional[Any]:
    if key in _cache:
        _cache_stats["hits"] += 1
        logger.debug(f"Cache HIT: {key}")
        return _cache[key]

    _cache_stats["misses"] += 1
    logger.debug(f"Cache MISS: {key}")
    return None


def set_cached(key: str, value: Any) -> None:
    _cache[key] = value


def invalidate_user(owner: str) -> int:
    """Invalidate all cached data for a user or guest.

    Call this when the owner's receipts change.

    Returns:
        Number of cache entries invalidated
    """
    keys_to_delete = [k for k in list(_cache.keys()) if f":{owner}:" in k]

    for key in keys_to_delete:
        del _cache[key]

    if keys_to_delete:
        logger.info(f"Cache invalidated for {owner}: {len(keys_to_delete)} entries cleared")

    return len(keys_to_delete)


def get_cache_stats() -> dict:
    """Get cache statistics for monitoring.

    Returns:
        Dict with hits, misses, hit_rate, and current_size
    """
    total = _cache_stats["hits"] + _cache_stats["misses"]
    hit_rate = (_cache_stats["hits"] / total * 100) if total > 0 else 0

    return {
        "hits": _cache_stats["hits"],
        "misses": _cache_stats["misses"],
        "hit_rate": round(hit_rate, 1),
        "current_size": len(_cache),
        "max_size": _cache.maxsize,
        "ttl_seconds": _cache.ttl,
    }


def clear_all() -> int:
    """Clear the entire cache. Use sparingly (e.g., for testing).

    Returns:
        Number of entries cleared
    """
    count = len(_cache)
    _cache.clear()
    _cache_stats["hits"] = 0
    _cache_stats["misses"] = 0
    logger.info(f"Cache cleared: {count} entries removed")
    return count
