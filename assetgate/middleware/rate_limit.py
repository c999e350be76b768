from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


class RateLimitHeaderMiddleware(BaseHTTPMiddleware):
    """
    Adds ``X-RateLimit-*`` headers to responses of rate-limited endpoints.

    Rate limit dependencies store their outcome in ``request.state.rate_limit_info``;
    requests that never passed one are left untouched, and headers already set by an
    error response are kept.
    """

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        info = getattr(request.state, "rate_limit_info", None)
        if info is not None and "X-RateLimit-Limit" not in response.headers:
            response.headers["X-RateLimit-Limit"] = str(info["limit"])
            response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
            response.headers["X-RateLimit-Reset"] = str(info["reset_time"])

        return response
