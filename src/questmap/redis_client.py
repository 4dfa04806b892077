"""Optional Redis client backing the request rate limiter.

With an empty ``QM_REDIS_URL``, or a server that does not answer at startup,
no client is kept and the limiter lets every request through.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str) -> bool:
    """Connect and ping. Returns True only when a usable client is installed."""
    global _client  # noqa: PLW0603
    if not url:
        return False
    client = redis.from_url(url, encoding="utf-8", decode_responses=True, max_connections=20)  # type: ignore[no-untyped-call]
    try:
        await client.ping()
    except RedisError:
        logger.warning("Redis at %s unreachable, rate limiting disabled", url.rsplit("@", 1)[-1], exc_info=True)
        await client.aclose()
        return False
    _client = client
    return True


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """The shared client. Raises RuntimeError when Redis is disabled."""
    if _client is None:
        msg = "Redis is not configured"
        raise RuntimeError(msg)
    return _client
