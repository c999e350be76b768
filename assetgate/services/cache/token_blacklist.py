import time

from loguru import logger
from redis.exceptions import RedisError

from assetgate.services.cache.base import BaseRedisClient


class TokenBlacklist(BaseRedisClient):
    """
    Redis-based revocation for session JWTs.

    Single tokens are revoked by JTI (logout); all tokens of a user are revoked by a
    timestamp marker compared against the token's ``iat`` (password reset). Lookups fail
    open when Redis is unavailable.
    """

    KEY_PREFIX = "token:blacklist:"
    USER_KEY_PREFIX = "token:revoke_all:"

    async def revoke_token(self, jti: str, ttl_seconds: int) -> bool:
        """
        Revoke a token by adding its JTI to the blacklist.

        Args:
            jti: The JWT ID (jti claim) of the token to revoke
            ttl_seconds: Remaining token lifetime

        Returns:
            bool: True if successfully blacklisted, False otherwise
        """
        if not self.redis_client:
            logger.debug(f"Token blacklist disabled, not revoking {jti[:8]}...")
            return False

        try:
            await self.redis_client.setex(f"{self.KEY_PREFIX}{jti}", max(ttl_seconds, 1), "revoked")
            logger.info(f"Token revoked: {jti[:8]}... (TTL: {ttl_seconds}s)")
            return True
        except RedisError:
            logger.exception(f"Failed to revoke token {jti[:8]}...")
            return False

    async def is_revoked(self, jti: str) -> bool:
        if not self.redis_client:
            return False

        try:
            return await self.redis_client.exists(f"{self.KEY_PREFIX}{jti}") > 0
        except RedisError:
            logger.exception(f"Failed to check token revocation {jti[:8]}...")
            return False

    async def revoke_all_user_tokens(self, user_id: int, ttl_seconds: int) -> bool:
        """
        Revoke every token of a user issued before now.

        Args:
            user_id: Owner of the tokens
            ttl_seconds: How long the marker is kept; use the longest token lifetime

        Returns:
            bool: True if the marker was stored
        """
        if not self.redis_client:
            return False

        try:
            await self.redis_client.setex(
                f"{self.USER_KEY_PREFIX}{user_id}", ttl_seconds, str(int(time.time()))
            )
            logger.info(f"All tokens revoked for user: {user_id}")
            return True
        except RedisError:
            logger.exception(f"Failed to revoke all tokens for user {user_id}")
            return False

    async def get_user_revocation_time(self, user_id: int) -> int | None:
        """
        Returns:
            int | None: Unix timestamp of the last revoke-all, or None
        """
        if not self.redis_client:
            return None

        try:
            value = await self.redis_client.get(f"{self.USER_KEY_PREFIX}{user_id}")
            return int(value) if value else None
        except (RedisError, ValueError):
            logger.exception(f"Failed to get revocation time for user {user_id}")
            return None

    async def is_token_usable(self, jti: str | None, user_id: int, issued_at: int | None) -> bool:
        """Combined check used by the auth dependencies and the page middleware."""
        if jti and await self.is_revoked(jti):
            return False

        revoked_at = await self.get_user_revocation_time(user_id)
        if revoked_at is not None and issued_at is not None and issued_at < revoked_at:
            return False

        return True


token_blacklist = TokenBlacklist()
