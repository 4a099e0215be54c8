# ruff: noqa: PLW0603
"""Redis connection management.

Redis backs the shared auth rate-limit counters when several API workers run
side by side. The application keeps working without it: the limiter falls back
to in-process counters.
"""

import redis.asyncio as redis

from learnhub.config.settings import Settings
from learnhub.core.logging import get_logger


logger = get_logger(__name__)

# Global Redis client
_redis_client: redis.Redis | None = None


async def init_redis(settings: Settings) -> redis.Redis:
    """Initialize the Redis connection pool and check connectivity."""
    global _redis_client

    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        decode_responses=True,
    )

    try:
        await client.ping()
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance."""
    return _redis_client


def rate_limit_key(scope: str, client_ip: str) -> str:
    """Get the counter key for a client in a rate-limit scope."""
    return f"ratelimit:{scope}:{client_ip}"
