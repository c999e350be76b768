import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from jose import jwt
from jose.exceptions import JWTError
from pwdlib import PasswordHash
from pydantic import ValidationError as PydanticValidationError

from assetgate.core.config import settings
from assetgate.core.types import TokenWithJtiDict
from assetgate.schemas.token import SessionClaims

password_hash = PasswordHash.recommended()

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _encode_token(
    claims: SessionClaims,
    token_type: str,
    expires_delta: timedelta,
) -> TokenWithJtiDict:
    now = datetime.now(UTC)
    jti = str(uuid.uuid4())
    to_encode = {
        "sub": str(claims.user_id),
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
        "jti": jti,
        "role": claims.role.value,
        "tier": claims.tier.value,
        "email_verified": claims.email_verified,
        "license_status": claims.license_status.value,
    }
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)

    return TokenWithJtiDict(token=encoded_jwt, jti=jti)


def create_access_token(
    claims: SessionClaims,
    expires_delta: Optional[timedelta] = None,
) -> TokenWithJtiDict:
    """
    Create JWT access token carrying the session claims
    Args:
        claims: Resolved session claims (user id, role, tier, ...)
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token and its JTI
    """
    return _encode_token(
        claims,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(seconds=settings.access_token_expire_seconds),
    )


def create_refresh_token(claims: SessionClaims) -> TokenWithJtiDict:
    """
    Create JWT refresh token; its lifetime is the session max age
    Args:
        claims: Resolved session claims, kept as fallback for the next refresh

    Returns:
        Encoded JWT refresh token and its JTI
    """
    return _encode_token(
        claims,
        REFRESH_TOKEN_TYPE,
        timedelta(seconds=settings.refresh_token_expire_seconds),
    )


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT signed with the application secret

    Raises:
        JWTError: If the signature, expiry or claims are invalid
    """
    return jwt.decode(token=token, key=settings.secret_key, algorithms=settings.jwt_algorithm)


def claims_from_payload(payload: dict[str, Any]) -> SessionClaims | None:
    """Build session claims from a decoded JWT payload, or None if they are incomplete."""
    try:
        return SessionClaims(
            user_id=int(payload["sub"]),
            role=payload.get("role", "user"),
            tier=payload.get("tier", "free"),
            email_verified=bool(payload.get("email_verified", False)),
            license_status=payload.get("license_status", "none"),
        )
    except (KeyError, TypeError, ValueError, PydanticValidationError):
        return None


def read_session_claims(token: str | None) -> tuple[SessionClaims, dict[str, Any]] | None:
    """
    Read the claims of a valid, unexpired access token without touching the database

    Returns:
        (claims, raw payload) or None for a missing, invalid, expired or non-access token
    """
    if not token:
        return None

    try:
        payload = decode_token(token)
    except JWTError:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None

    claims = claims_from_payload(payload)
    if claims is None:
        return None

    return claims, payload


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify password against hashed password
    Args:
        plain_password: Plain password
        hashed_password: Hashed password

    Returns:
        Whether password matches hash
    """
    return password_hash.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash password
    Args:
        password: Plain password

    Returns:
        Hashed password
    """
    return password_hash.hash(password)
