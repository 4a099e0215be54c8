"""Tests for the auth rate limiter without Redis."""

from unittest.mock import AsyncMock, patch

import pytest

from learnhub.core.rate_limit import RateLimiter


class TestRateLimiter:
    """Tests for RateLimiter.hit."""

    @pytest.mark.asyncio
    async def test_in_process_counters(self) -> None:
        limiter = RateLimiter(limit=2, window_seconds=60)

        assert await limiter.hit("10.0.0.1") == (True, 1)
        assert await limiter.hit("10.0.0.1") == (True, 0)
        assert await limiter.hit("10.0.0.1") == (False, 0)

        # Separate counter per client
        assert await limiter.hit("10.0.0.2") == (True, 1)

    @pytest.mark.asyncio
    async def test_redis_counters(self) -> None:
        redis_mock = AsyncMock()
        redis_mock.incr = AsyncMock(return_value=1)
        limiter = RateLimiter(limit=5, window_seconds=60)

        with patch("learnhub.core.rate_limit.get_redis", return_value=redis_mock):
            assert await limiter.hit("10.0.0.1") == (True, 4)

        redis_mock.incr.assert_awaited_once_with("ratelimit:auth:10.0.0.1")
        redis_mock.expire.assert_awaited_once_with("ratelimit:auth:10.0.0.1", 60)
        assert len(limiter.counters) == 0

    @pytest.mark.asyncio
    async def test_redis_error_fails_open(self) -> None:
        redis_mock = AsyncMock()
        redis_mock.incr = AsyncMock(side_effect=ConnectionError("down"))
        limiter = RateLimiter(limit=5, window_seconds=60)

        with patch("learnhub.core.rate_limit.get_redis", return_value=redis_mock):
            assert await limiter.hit("10.0.0.1") == (True, 5)
