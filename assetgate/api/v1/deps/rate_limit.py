from fastapi import Request
from loguru import logger

from assetgate.api.v1.deps.auth import OptionalClaims
from assetgate.core.config import settings
from assetgate.core.constants import RateLimitPrefix
from assetgate.core.exceptions.http_exceptions import TooManyRequestsException
from assetgate.core.utils import get_client_ip
from assetgate.services.cache.rate_limiter import rate_limiter

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please slow down your requests."


async def _enforce(
    request: Request, key: str, limit: int, window: int, detail: str = RATE_LIMIT_MESSAGE
) -> None:
    is_allowed, info = await rate_limiter.check_rate_limit(key=key, limit=limit, window=window)

    # Store rate limit info in request state for middleware
    request.state.rate_limit_info = info

    if not is_allowed:
        logger.warning(f"Rate limit exceeded for {request.url.path}. Key: {key}")
        raise TooManyRequestsException(
            detail=detail,
            headers={
                "Retry-After": str(info["window"]),
                "X-RateLimit-Limit": str(info["limit"]),
                "X-RateLimit-Remaining": str(info["remaining"]),
                "X-RateLimit-Reset": str(info["reset_time"]),
            },
        )


async def rate_limit_auth(request: Request) -> None:
    """
    Strict rate limiting for authentication endpoints (IP-based).

    Limit: ``settings.rate_limit_strict`` requests per window per IP
    Use case: Login, signup, password reset, forgot password

    Raises:
        TooManyRequestsException: When rate limit is exceeded (HTTP 429)
    """
    await _enforce(
        request,
        f"{RateLimitPrefix.AUTH}{get_client_ip(request)}",
        settings.rate_limit_strict,
        settings.rate_limit_window,
        detail="Too many authentication attempts. Please try again later.",
    )


async def rate_limit_license(request: Request) -> None:
    """
    Strict rate limiting for the license verification steps (IP-based).

    Every call may reach the license vendor, so it shares the strict limit.
    """
    await _enforce(
        request,
        f"{RateLimitPrefix.LICENSE}{get_client_ip(request)}",
        settings.rate_limit_strict,
        settings.rate_limit_window,
        detail="Too many license verification attempts. Please try again later.",
    )


async def rate_limit_api(request: Request) -> None:
    """
    Moderate rate limiting for general API endpoints (IP-based).

    Limit: ``settings.rate_limit_default`` requests per window per IP
    """
    await _enforce(
        request,
        f"{RateLimitPrefix.API}{get_client_ip(request)}",
        settings.rate_limit_default,
        settings.rate_limit_window,
    )


async def rate_limit_search(request: Request) -> None:
    await _enforce(
        request,
        f"{RateLimitPrefix.SEARCH}{get_client_ip(request)}",
        settings.rate_limit_default,
        settings.rate_limit_window,
    )


async def rate_limit_public(request: Request) -> None:
    """
    Lenient rate limiting for public read-only endpoints (IP-based).

    Limit: ``settings.rate_limit_lenient`` requests per window per IP
    """
    await _enforce(
        request,
        f"{RateLimitPrefix.PUBLIC}{get_client_ip(request)}",
        settings.rate_limit_lenient,
        settings.rate_limit_window,
    )


async def rate_limit_user(request: Request, claims: OptionalClaims) -> None:
    """
    User-based rate limiting; anonymous callers are keyed by IP.

    Limit: ``settings.rate_limit_user`` requests per window per user
    """
    identity = claims.user_id if claims else get_client_ip(request)

    await _enforce(
        request,
        f"{RateLimitPrefix.USER}{identity}",
        settings.rate_limit_user,
        settings.rate_limit_window,
    )


def create_rate_limit(limit: int, window: int = 60, prefix: str = "custom"):
    """
    Factory function to create IP-based rate limiters with specific limits.

    Args:
        limit: Maximum number of requests allowed in the time window
        window: Time window in seconds (default: 60)
        prefix: Custom prefix for the rate limit key (without "ratelimit:" and ":")

    Returns:
        Async dependency function that can be used with Depends()

    Raises:
        ValueError: If prefix conflicts with existing prefixes

    Example:
        ```python
        resend_limit = create_rate_limit(limit=3, window=300, prefix="resend")

        @router.post("/resend", dependencies=[Depends(resend_limit)])
        async def resend(...):
            pass
        ```
    """
    full_prefix = f"ratelimit:{prefix}:"
    RateLimitPrefix.validate_prefix(full_prefix)

    async def custom_ip_limiter(request: Request) -> None:
        await _enforce(request, f"{full_prefix}{get_client_ip(request)}", limit, window)

    return custom_ip_limiter
