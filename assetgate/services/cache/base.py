from abc import ABC

from loguru import logger
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from assetgate.core.config import settings

# Shared by every Redis-backed service in the process
_redis_pool: ConnectionPool | None = None


def get_redis_pool() -> ConnectionPool:
    """
    Get or create the shared Redis connection pool.

    Returns:
        ConnectionPool: Shared Redis connection pool instance
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            settings.redis_url.human_repr(),
            encoding="utf-8",
            decode_responses=False,
            max_connections=settings.redis_max_pool_connections,
            retry_on_timeout=True,
            socket_connect_timeout=settings.redis_socket_connect_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
        logger.info(
            "Redis connection pool created with "
            f"max_connections={settings.redis_max_pool_connections}"
        )

    return _redis_pool


class BaseRedisClient(ABC):
    """
    Base class for Redis-backed services (cache, rate limits, OTP codes, cooldowns).

    Each subclass decides whether a missing or failing Redis means "allow" or "refuse".
    """

    _redis_client: Redis | None = None

    def __init__(self):
        if settings.redis_enabled:
            self._initialize_redis()

    @property
    def redis_client(self) -> Redis | None:
        """
        Get the Redis client instance

        Returns:
            Redis | None: Redis client, or None when Redis is disabled for this environment

        Raises:
            ValueError: If Redis is enabled but the client was never initialized
        """
        if self._redis_client is not None:
            return self._redis_client

        if not settings.redis_enabled:
            return None

        raise ValueError("Redis client is not initialized.")

    @redis_client.setter
    def redis_client(self, client: Redis | None) -> None:
        self._redis_client = client

    def _initialize_redis(self):
        """Bind a client to the shared pool; no connection is opened yet"""
        self._redis_client = Redis(connection_pool=get_redis_pool())
        logger.debug(f"Redis client initialized for {self.__class__.__name__} using shared pool")

    async def health_check(self) -> bool:
        """
        Check Redis connection health by pinging the server.

        Returns:
            bool: True if Redis is healthy and responsive, False otherwise
        """
        if self.redis_client is None:
            return False

        try:
            await self.redis_client.ping()
            return True
        except (RedisError, OSError) as e:
            logger.error(f"Redis health check failed for {self.__class__.__name__}: {e}")
            return False

    async def close(self):
        """Close Redis connection gracefully"""
        if self._redis_client is None:
            return

        try:
            await self._redis_client.aclose()
            logger.info(f"Redis connection closed for {self.__class__.__name__}")
        except (RedisError, OSError) as e:
            logger.error(f"Error closing Redis connection for {self.__class__.__name__}: {e}")
