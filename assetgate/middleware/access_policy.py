from fastapi import Request
from fastapi.responses import RedirectResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import HTTP_307_TEMPORARY_REDIRECT

from assetgate.core.auth import read_session_claims
from assetgate.core.config import settings
from assetgate.schemas import SessionClaims
from assetgate.services.access_policy import evaluate
from assetgate.services.cache.token_blacklist import token_blacklist

# Paths served by the API itself, never page routes
EXEMPT_PREFIXES = ("/api", "/health", "/docs", "/redoc", "/openapi.json")


def session_token(request: Request) -> str | None:
    """Access token from the session cookie, or from a Bearer header."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token

    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()

    return None


async def request_session(request: Request) -> SessionClaims | None:
    """Claims of the request's session, or None for a missing, invalid or revoked token."""
    session = read_session_claims(session_token(request))
    if session is None:
        return None

    claims, payload = session
    if not await token_blacklist.is_token_usable(
        payload.get("jti"), claims.user_id, payload.get("iat")
    ):
        return None

    return claims


def is_page_path(path: str) -> bool:
    return not any(path == prefix or path.startswith(prefix + "/") for prefix in EXEMPT_PREFIXES)


class AccessPolicyMiddleware(BaseHTTPMiddleware):
    """
    Guards page routes with the role, tier and signed-link rules.

    A denied request is answered with a 307 redirect; everything else passes through.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not is_page_path(path):
            return await call_next(request)

        claims = await request_session(request)
        decision = evaluate(
            claims,
            path,
            query_params=request.query_params,
            query=request.url.query,
        )
        if decision.allowed:
            return await call_next(request)

        logger.debug(f"Access to {path} redirected to {decision.redirect_url}")

        return RedirectResponse(decision.redirect_url, status_code=HTTP_307_TEMPORARY_REDIRECT)
