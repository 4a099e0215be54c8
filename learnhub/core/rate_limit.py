"""Fixed-window rate limiting for the auth endpoints.

Counts live in Redis (``INCR`` + ``EXPIRE``) when it is connected so every
worker shares them; otherwise an in-process ``TTLRegistry`` holds them.
A Redis error fails open: the request is allowed and the error logged.
"""

from fastapi import HTTPException, Request, status

from learnhub.config.settings import Settings
from learnhub.core.logging import get_logger
from learnhub.core.middleware import get_client_ip
from learnhub.core.redis import get_redis, rate_limit_key
from learnhub.core.registry import TTLRegistry


logger = get_logger(__name__)


class RateLimiter:
    """Fixed-window request counter keyed by scope and client IP."""

    def __init__(self, limit: int, window_seconds: int, scope: str = "auth") -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.scope = scope
        self.counters = TTLRegistry()

    @classmethod
    def for_auth(cls, settings: Settings) -> "RateLimiter":
        return cls(
            limit=settings.rate_limit_auth_requests,
            window_seconds=settings.rate_limit_auth_window_seconds,
        )

    async def hit(self, client_ip: str) -> tuple[bool, int]:
        """Record one request.

        Returns:
            Tuple of (is_allowed, remaining).
        """
        key = rate_limit_key(self.scope, client_ip)
        redis_client = get_redis()

        if redis_client is None:
            current = self.counters.increment(key, self.window_seconds)
        else:
            try:
                current = await redis_client.incr(key)
                if current == 1:
                    await redis_client.expire(key, self.window_seconds)
            except Exception as e:
                logger.error(
                    "rate_limit_redis_error",
                    key=key,
                    error=str(e),
                    action="allowing_request",
                )
                return True, self.limit

        return current <= self.limit, max(0, self.limit - current)


async def enforce_auth_rate_limit(request: Request) -> None:
    """Reject the request with 429 once the client IP exceeds the auth limit."""
    limiter: RateLimiter | None = getattr(request.app.state, "auth_rate_limiter", None)
    if limiter is None:
        return

    client_ip = get_client_ip(request) or "unknown"
    is_allowed, remaining = await limiter.hit(client_ip)

    if not is_allowed:
        logger.warning(
            "rate_limit_auth_blocked",
            client_ip=client_ip,
            path=request.url.path,
            limit=limiter.limit,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={
                "Retry-After": str(limiter.window_seconds),
                "X-RateLimit-Limit": str(limiter.limit),
                "X-RateLimit-Remaining": str(remaining),
            },
        )

