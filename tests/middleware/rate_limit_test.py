from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi import Request, Response

from assetgate.middleware.rate_limit import RateLimitHeaderMiddleware


def make_request(**state) -> MagicMock:
    request = MagicMock(spec=Request)
    request.state = SimpleNamespace(**state)
    return request


@pytest.mark.anyio
class TestRateLimitHeaderMiddleware:
    """Test X-RateLimit-* headers on successful responses."""

    async def test_adds_headers_from_request_state(self):
        middleware = RateLimitHeaderMiddleware(MagicMock())
        request = make_request(
            rate_limit_info={"limit": 10, "remaining": 7, "reset_time": 1700000060, "window": 60}
        )

        async def call_next(req):
            return Response(status_code=200)

        response = await middleware.dispatch(request, call_next)

        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "7"
        assert response.headers["X-RateLimit-Reset"] == "1700000060"

    async def test_unlimited_route_is_untouched(self):
        middleware = RateLimitHeaderMiddleware(MagicMock())

        async def call_next(req):
            return Response(status_code=200)

        response = await middleware.dispatch(make_request(), call_next)

        assert "X-RateLimit-Limit" not in response.headers

    async def test_error_headers_are_kept(self):
        middleware = RateLimitHeaderMiddleware(MagicMock())
        request = make_request(
            rate_limit_info={"limit": 100, "remaining": 99, "reset_time": 1700000060, "window": 60}
        )

        async def call_next(req):
            return Response(
                status_code=429, headers={"X-RateLimit-Limit": "5", "X-RateLimit-Remaining": "0"}
            )

        response = await middleware.dispatch(request, call_next)

        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "X-RateLimit-Reset" not in response.headers
