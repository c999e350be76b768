import hmac
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from assetgate.api.v1.deps.services import get_auth_service
from assetgate.core.config import settings
from assetgate.core.constants import Role
from assetgate.core.exceptions import http_exceptions
from assetgate.core.exceptions.domain import AuthenticationError, PermissionDeniedError
from assetgate.middleware.access_policy import request_session, session_token
from assetgate.schemas import SessionClaims
from assetgate.services.auth_service import AuthService

# OAuth2 password bearer scheme; the session cookie is accepted as well
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_session(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> tuple[SessionClaims, dict[str, Any]]:
    """
    Claims and raw payload of the caller's access token.

    Raises:
        AuthenticationError: If no usable token was presented
    """
    token = token or session_token(request)
    if not token:
        raise AuthenticationError("Not authenticated")

    return await auth_service.validate_access_token(token)


async def get_current_claims(
    session: Annotated[tuple[SessionClaims, dict[str, Any]], Depends(get_current_session)],
) -> SessionClaims:
    return session[0]


async def get_optional_claims(request: Request) -> SessionClaims | None:
    """Claims of the caller when signed in, None otherwise; never raises."""
    return await request_session(request)


async def require_superadmin(
    claims: Annotated[SessionClaims, Depends(get_current_claims)],
) -> SessionClaims:
    if claims.role != Role.SUPERADMIN:
        raise PermissionDeniedError("Access restricted to Super Admin.")

    return claims


async def verify_cron_secret(request: Request) -> None:
    """
    Guard for scheduler-triggered endpoints: ``Authorization: Bearer <cron_secret>``.

    Raises:
        UnauthorizedException: If the secret is missing, unset or wrong
    """
    expected = f"Bearer {settings.cron_secret}"
    provided = request.headers.get("Authorization", "")

    if not settings.cron_secret or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise http_exceptions.UnauthorizedException(detail="Unauthorized")


CurrentClaims = Annotated[SessionClaims, Depends(get_current_claims)]
OptionalClaims = Annotated[SessionClaims | None, Depends(get_optional_claims)]
SuperAdmin = Annotated[SessionClaims, Depends(require_superadmin)]
