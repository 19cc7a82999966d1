import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from dealmatch.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


# ── Connection pool ───────────────────────────────────────────────────────────

async def get_redis_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        logger.info("Redis connection pool created: %s", settings.redis_url)
    return _pool


async def get_redis() -> Redis:
    pool = await get_redis_pool()
    return Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None
        logger.info("Redis connection pool closed")


# ── Compatibility cache ───────────────────────────────────────────────────────

def compatibility_cache_key(
    user_a_id,
    user_b_id,
    user_a_version: int,
    user_b_version: int,
) -> str:
    """
    Build an order-independent key for a compatibility verdict.

    The verdict is symmetric, so (A, B) and (B, A) share a key. Each user's
    preferences_version is part of the key: editing match settings makes old
    verdicts unreachable instead of requiring explicit invalidation.
    """
    first, second = sorted(
        [(str(user_a_id), user_a_version or 0), (str(user_b_id), user_b_version or 0)]
    )
    return f"compat:{first[0]}:{second[0]}:v{first[1]}:v{second[1]}"


async def get_cached_compatibility(key: str) -> Optional[bool]:
    """Return a cached verdict, or None on miss/error."""
    try:
        r = await get_redis()
        raw = await r.get(key)
        if raw is not None:
            return raw == "1"
    except Exception:
        logger.warning("Compatibility cache read failed for %s", key, exc_info=True)
    return None


async def set_cached_compatibility(key: str, compatible: bool) -> None:
    """Store a verdict for settings.compatibility_cache_ttl seconds."""
    try:
        r = await get_redis()
        await r.setex(key, settings.compatibility_cache_ttl, "1" if compatible else "0")
    except Exception:
        logger.warning("Compatibility cache write failed for %s", key, exc_info=True)
