from datetime import datetime
from typing import Any, Callable

from jose.exceptions import ExpiredSignatureError, JWTError
from loguru import logger

from assetgate.core.auth import (
    REFRESH_TOKEN_TYPE,
    claims_from_payload,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    read_session_claims,
    verify_password,
)
from assetgate.core.constants import Role
from assetgate.core.exceptions.domain import (
    AuthenticationError,
    DuplicateResourceError,
    ProcessingError,
    ValidationError,
)
from assetgate.core.exceptions.license_vendor import LicenseVendorException
from assetgate.core.logger import mask_email
from assetgate.core.signature import utc_now
from assetgate.core.types import TokenPairDict
from assetgate.core.utils import normalize_email
from assetgate.repos import UserRepo
from assetgate.schemas import SessionClaims, UserCreate, UserRegister
from assetgate.schemas.signature import SignatureStage
from assetgate.services.cache.token_blacklist import token_blacklist
from assetgate.services.license_service import LicenseGateway
from assetgate.services.otp_service import LICENSE_OTP, OtpIssuer
from assetgate.services.tier_resolver import TierResolver

# Pre-computed dummy hash for timing attack prevention
# Reference: https://cheatsheetseries.owasp.org/cheatsheets/Authentication_Cheat_Sheet.html
_DUMMY_HASH = get_password_hash("dummy_password_for_timing_attack_prevention")

ACTIVATION_FAILED_MESSAGE = "Failed to activate your license. Please contact support."


def issue_token_pair(claims: SessionClaims) -> TokenPairDict:
    return TokenPairDict(
        access_token=create_access_token(claims)["token"],
        refresh_token=create_refresh_token(claims)["token"],
    )


class AuthService:
    """
    Sign-up with a verified license, sign-in, session refresh and logout.
    Receives repositories and collaborators via constructor, never sees database sessions.

    Raises domain exceptions which are translated to HTTP exceptions by the deps layer.
    """

    def __init__(
        self,
        user_repo: UserRepo,
        resolver: TierResolver,
        gateway: LicenseGateway,
        license_issuer: OtpIssuer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.user_repo = user_repo
        self.resolver = resolver
        self.gateway = gateway
        self.license_issuer = license_issuer or OtpIssuer(LICENSE_OTP, clock=clock)
        self.clock = clock

    async def register_user(self, data: UserRegister) -> TokenPairDict:
        """
        Create an account for the owner of a verified license and activate the license.

        The account is kept when activation fails afterwards; the caller gets an error
        asking to contact support.

        Args:
            data: Signup form with the ``verified`` license token.

        Returns:
            TokenPairDict with access and refresh tokens.

        Raises:
            SignatureInvalidError / SignatureExpiredError: For a bad or stale license token.
            ValidationError: If the form email differs from the verified purchase email.
            DuplicateResourceError: If the email is already registered.
            ProcessingError: If the license could not be activated.
        """
        payload = self.license_issuer.read_token(data.signature, stage=SignatureStage.VERIFIED)
        email = normalize_email(data.email)

        if normalize_email(payload.email) != email:
            logger.warning(f"Signup email {mask_email(email)} differs from license email")
            raise ValidationError("Email does not match the verified license email.")

        if await self.user_repo.get_by_email(email=email):
            raise DuplicateResourceError("This email is already registered.")

        user = await self.user_repo.create_one(
            schema=UserCreate(
                name=data.name,
                email=email,
                hashed_password=get_password_hash(data.password.get_secret_value()),
                role_user=Role.USER,
                email_verified_at=self.clock(),
            ),
        )
        logger.info(f"User {user.id} registered with a verified license")

        try:
            await self.gateway.activate(payload.license_key, user.id)
        except (LicenseVendorException, ProcessingError) as e:
            logger.error(f"License activation failed after signup of user {user.id}: {e}")
            raise ProcessingError(ACTIVATION_FAILED_MESSAGE, e) from e

        claims = await self.resolver.resolve(user.id)

        return issue_token_pair(claims or SessionClaims(user_id=user.id))

    async def authenticate_user(self, email: str, password: str) -> TokenPairDict:
        """
        Authenticate by email and password, return a token pair.

        The password hash is always verified, against a dummy hash when the user is
        unknown or has no password yet, so response time does not reveal accounts.

        Raises:
            AuthenticationError: If the email or password is incorrect.
        """
        user = await self.user_repo.get_by_email(email=normalize_email(email))

        hash_to_verify = user.hashed_password if user and user.hashed_password else _DUMMY_HASH
        password_valid = verify_password(password, hash_to_verify)

        if not user or not user.hashed_password or not password_valid:
            raise AuthenticationError("Incorrect email or password")

        claims = await self.resolver.resolve(user.id)
        if claims is None:
            raise AuthenticationError("Incorrect email or password")

        logger.info(f"User {user.id} signed in ({claims.role}, {claims.tier})")

        return issue_token_pair(claims)

    async def validate_access_token(self, token: str) -> tuple[SessionClaims, dict[str, Any]]:
        """
        Validate an access token and return its claims and raw payload.

        Raises:
            AuthenticationError: If the token is invalid, expired or revoked.
        """
        session = read_session_claims(token)
        if session is None:
            raise AuthenticationError("Could not validate credentials")

        claims, payload = session
        if not await token_blacklist.is_token_usable(
            payload.get("jti"), claims.user_id, payload.get("iat")
        ):
            raise AuthenticationError("Token has been revoked")

        return claims, payload

    async def refresh_tokens(self, refresh_token: str) -> TokenPairDict:
        """
        Issue a new token pair from a refresh token, re-deriving role and tier.

        Raises:
            AuthenticationError: If the refresh token is invalid, expired or revoked,
                or its user no longer exists.
        """
        try:
            payload = decode_token(refresh_token)
        except ExpiredSignatureError:
            raise AuthenticationError("Refresh token has expired")
        except JWTError:
            raise AuthenticationError("Invalid refresh token")

        if payload.get("type") != REFRESH_TOKEN_TYPE:
            raise AuthenticationError("Invalid token type. Expected refresh token.")

        previous = claims_from_payload(payload)
        if previous is None:
            raise AuthenticationError("Invalid refresh token")

        if not await token_blacklist.is_token_usable(
            payload.get("jti"), previous.user_id, payload.get("iat")
        ):
            raise AuthenticationError("Refresh token has been revoked")

        claims = await self.resolver.resolve(previous.user_id, previous)
        if claims is None:
            raise AuthenticationError("Invalid user")

        return issue_token_pair(claims)

    async def logout(self, payload: dict[str, Any]) -> bool:
        """Revoke the access token described by ``payload`` until it would expire anyway."""
        jti = payload.get("jti")
        if not jti:
            return False

        expires_at = int(payload.get("exp", 0))
        ttl = max(1, expires_at - int(self.clock().timestamp()))

        return await token_blacklist.revoke_token(jti, ttl)
