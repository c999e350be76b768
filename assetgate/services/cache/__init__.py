from .base import BaseRedisClient
from .cooldown_store import cooldown_store
from .download_quota import download_quota
from .manager import cache_manager
from .otp_store import otp_store
from .rate_limiter import rate_limiter
from .token_blacklist import token_blacklist

__all__ = [
    "BaseRedisClient",
    "cache_manager",
    "cooldown_store",
    "download_quota",
    "otp_store",
    "rate_limiter",
    "token_blacklist",
]
