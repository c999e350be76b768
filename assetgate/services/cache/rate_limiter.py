import hashlib
import time

from loguru import logger
from redis.exceptions import RedisError

from assetgate.core.config import settings
from assetgate.core.exceptions.rate_limiter import RateLimitConfigurationError
from assetgate.core.types import RateLimitInfoDict
from assetgate.services.cache.base import BaseRedisClient


def _open_info(limit: int, window: int) -> RateLimitInfoDict:
    return RateLimitInfoDict(
        limit=limit, remaining=limit, reset_time=int(time.time()) + window, window=window
    )


class RateLimiter(BaseRedisClient):
    """
    Redis-based rate limiter using a sliding window.

    Request timestamps are kept in a sorted set per key; entries older than the window are
    dropped before counting. Any Redis problem lets the request through.

    Example:
        ```python
        is_allowed, info = await rate_limiter.check_rate_limit(
            key="ratelimit:license:203.0.113.7", limit=10, window=60
        )
        ```
    """

    async def check_rate_limit(
        self, key: str, limit: int, window: int = 60
    ) -> tuple[bool, RateLimitInfoDict]:
        """
        Count one request against ``key`` and report whether it is within the limit.

        Args:
            key: Redis key for rate limiting (e.g., "ratelimit:auth:192.168.1.1")
            limit: Maximum number of requests allowed in the time window
            window: Time window in seconds (default: 60)

        Returns:
            tuple[bool, RateLimitInfoDict]: (is_allowed, rate_limit_info)

        Raises:
            RateLimitConfigurationError: If limit or window is invalid
        """
        if limit <= 0:
            raise RateLimitConfigurationError(f"Rate limit must be positive, got {limit}")
        if window <= 0:
            raise RateLimitConfigurationError(f"Rate limit window must be positive, got {window}")

        if not settings.rate_limit_enabled or self.redis_client is None:
            return True, _open_info(limit, window)

        try:
            now = int(time.time() * 1_000_000)
            window_start = now - window * 1_000_000

            pipe = self.redis_client.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            member = (
                f"{now}:{hashlib.md5(str(now).encode(), usedforsecurity=False).hexdigest()[:8]}"
            )
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.expire(key, window)
            results = await pipe.execute()
            request_count = results[2]

            rate_limit_info = RateLimitInfoDict(
                limit=limit,
                remaining=max(0, limit - request_count),
                reset_time=now // 1_000_000 + window,
                window=window,
            )

            return request_count <= limit, rate_limit_info

        except (RedisError, OSError) as e:
            logger.warning(f"Rate limit check failed for key {key}: {e}. Allowing request.")
            return True, _open_info(limit, window)

    async def reset_limit(self, key: str) -> bool:
        """
        Reset rate limit for a specific key.

        Args:
            key: Redis key to reset

        Returns:
            bool: True if key was deleted, False otherwise
        """
        if self.redis_client is None:
            return True

        try:
            deleted = await self.redis_client.delete(key)
            if deleted:
                logger.info(f"Rate limit reset for key {key}")
            return deleted > 0
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to reset rate limit for key {key}: {e}")
            return False


rate_limiter = RateLimiter()
