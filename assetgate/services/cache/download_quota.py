from dataclasses import dataclass

from loguru import logger
from redis.exceptions import RedisError

from assetgate.core.config import settings
from assetgate.core.constants import RedisKeyPrefix
from assetgate.services.cache.base import BaseRedisClient


@dataclass(frozen=True)
class QuotaResult:
    allowed: bool
    used: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


class DownloadQuota(BaseRedisClient):
    """
    Fixed-window counter of free downloads and copies.

    The window starts with the first hit (INCR, then EXPIRE when the counter is new).
    Redis problems let the caller through.
    """

    @staticmethod
    def key_for(user_id: int | None, ip: str) -> str:
        if user_id is not None:
            return f"{RedisKeyPrefix.DOWNLOAD_LIMIT_USER}{user_id}"

        return f"{RedisKeyPrefix.DOWNLOAD_LIMIT_IP}{ip}"

    async def consume(
        self, key: str, limit: int | None = None, window: int | None = None
    ) -> QuotaResult:
        """
        Count one action against ``key``.

        Args:
            key: Counter key, see :meth:`key_for`
            limit: Allowed actions per window, defaults to ``settings.free_download_limit``
            window: Window length in seconds, defaults to ``settings.free_download_window_seconds``

        Returns:
            QuotaResult: ``allowed`` is False once the counter passes the limit
        """
        limit = limit or settings.free_download_limit
        window = window or settings.free_download_window_seconds

        if self.redis_client is None:
            return QuotaResult(allowed=True, used=0, limit=limit)

        try:
            used = await self.redis_client.incr(key)
            if used == 1:
                await self.redis_client.expire(key, window)
        except (RedisError, OSError) as e:
            logger.warning(f"Download quota check failed for {key}: {e}. Allowing request.")
            return QuotaResult(allowed=True, used=0, limit=limit)

        return QuotaResult(allowed=used <= limit, used=used, limit=limit)


download_quota = DownloadQuota()
