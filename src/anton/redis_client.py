"""Optional Redis connection, used for level-up broadcasts and rate limiting.

Submissions never depend on Redis. When it is unconfigured or unreachable
the pool stays unset and callers see None from get_redis_or_none().
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> bool:
    """Connect to Redis. Returns False (and leaves Redis disabled) if it does not answer."""
    global _pool  # noqa: PLW0603
    client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )
    try:
        await client.ping()
    except (RedisError, OSError):
        logger.warning("Redis unreachable at %s, continuing without it", url, exc_info=True)
        await client.aclose()
        return False
    _pool = client
    return True


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis_or_none() -> redis.Redis | None:
    return _pool


async def redis_status() -> str:
    """'ok', 'disabled', or 'error: ...' for the readiness check."""
    if _pool is None:
        return "disabled"
    try:
        await _pool.ping()
    except (RedisError, OSError) as exc:
        return f"error: {exc}"
    return "ok"
