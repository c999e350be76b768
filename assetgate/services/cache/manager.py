import json
from typing import Any, Optional

from loguru import logger
from redis.exceptions import RedisError

from assetgate.core.config import settings
from assetgate.services.cache.base import BaseRedisClient


class CacheManager(BaseRedisClient):
    """
    General-purpose cache for JSON-serializable data.

    Every operation degrades to a cache miss when Redis is disabled or failing.
    """

    async def get(self, key: str) -> Optional[Any]:
        """
        Get cached data

        Args:
            key (str): Cache key

        Returns:
            Optional[Any]: Cached value or None if not found
        """
        if not settings.cache_enabled or not self.redis_client:
            return None

        try:
            data = await self.redis_client.get(key)
            return json.loads(data) if data else None
        except (RedisError, ValueError) as e:
            logger.error(f"Cache get failed for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, expire: int | None = None) -> bool:
        """
        Set cached data with expiration

        Args:
            key (str): Cache key
            value (Any): JSON-serializable value to cache
            expire (int | None): Expiration time in seconds. If None, uses default TTL.

        Returns:
            bool: True if set successfully, False otherwise
        """
        if not settings.cache_enabled or not self.redis_client:
            return False

        try:
            serialized = json.dumps(value, default=str)
            ttl = expire or settings.cache_ttl_default
            return bool(await self.redis_client.set(key, serialized, ex=ttl))
        except (RedisError, TypeError) as e:
            logger.error(f"Cache set failed for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """
        Delete cached data

        Args:
            key (str): Cache key

        Returns:
            bool: True if deleted successfully, False otherwise
        """
        if not self.redis_client:
            return False

        try:
            return await self.redis_client.delete(key) > 0
        except RedisError as e:
            logger.error(f"Cache delete failed for key {key}: {e}")
            return False


cache_manager = CacheManager()
