from enum import StrEnum

from loguru import logger
from redis.exceptions import RedisError

from assetgate.core.config import settings
from assetgate.core.exceptions.verification import OtpStoreUnavailableError
from assetgate.services.cache.base import BaseRedisClient

# Deletes the stored code only when it equals the submitted one.
# Returns 1 on match, 0 on mismatch, -1 when no code is stored.
COMPARE_AND_DELETE_SCRIPT = """
local stored = redis.call('GET', KEYS[1])
if not stored then
    return -1
end
if stored == ARGV[1] then
    redis.call('DEL', KEYS[1])
    return 1
end
return 0
"""


class OtpCheck(StrEnum):
    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING = "missing"


_SCRIPT_RESULTS = {1: OtpCheck.MATCH, 0: OtpCheck.MISMATCH, -1: OtpCheck.MISSING}


class OtpStore(BaseRedisClient):
    """
    One live code per key, stored with a TTL.

    Unlike the other Redis-backed services this one fails closed: without Redis no code
    can be issued or verified.
    """

    def _client(self):
        client = self.redis_client
        if client is None:
            raise OtpStoreUnavailableError()

        return client

    async def save(self, key: str, code: str, ttl_seconds: int | None = None) -> None:
        """
        Store ``code`` under ``key``, replacing any previous code.

        Raises:
            OtpStoreUnavailableError: If Redis is disabled or failing
        """
        client = self._client()

        try:
            await client.set(key, code, ex=ttl_seconds or settings.otp_ttl_seconds)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to store one-time code under {key.split(':')[0]}: {e}")
            raise OtpStoreUnavailableError(exception=e) from e

    async def check_and_consume(self, key: str, code: str) -> OtpCheck:
        """
        Compare ``code`` with the stored one and delete it on match, atomically.

        A mismatch keeps the stored code so the holder can retry until it expires.

        Raises:
            OtpStoreUnavailableError: If Redis is disabled or failing
        """
        client = self._client()

        try:
            result = await client.eval(COMPARE_AND_DELETE_SCRIPT, 1, key, code.strip())
        except (RedisError, OSError) as e:
            logger.error(f"Failed to verify one-time code under {key.split(':')[0]}: {e}")
            raise OtpStoreUnavailableError(exception=e) from e

        return _SCRIPT_RESULTS.get(int(result), OtpCheck.MISSING)

    async def discard(self, key: str) -> None:
        """Drop the stored code, if any; failures are only logged."""
        if self.redis_client is None:
            return

        try:
            await self.redis_client.delete(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to discard one-time code under {key.split(':')[0]}: {e}")


otp_store = OtpStore()
