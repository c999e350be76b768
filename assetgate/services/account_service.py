from datetime import datetime
from typing import Callable

from loguru import logger

from assetgate.core.auth import get_password_hash
from assetgate.core.config import settings
from assetgate.core.exceptions.domain import DuplicateResourceError, ResourceNotFoundError
from assetgate.core.logger import mask_email
from assetgate.core.signature import utc_now
from assetgate.core.utils import build_app_url, normalize_email
from assetgate.repos import UserRepo
from assetgate.schemas import ActionResponse, ResetPasswordPayload
from assetgate.schemas.signature import SignatureStage
from assetgate.services.cache.token_blacklist import token_blacklist
from assetgate.services.email import EmailService
from assetgate.services.otp_service import EMAIL_VERIFY_OTP, PASSWORD_RESET_OTP, OtpIssuer


class AccountService:
    """Password reset and email verification for existing accounts."""

    def __init__(
        self,
        user_repo: UserRepo,
        email_service: EmailService,
        reset_issuer: OtpIssuer | None = None,
        verify_issuer: OtpIssuer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.user_repo = user_repo
        self.email_service = email_service
        self.reset_issuer = reset_issuer or OtpIssuer(PASSWORD_RESET_OTP, clock=clock)
        self.verify_issuer = verify_issuer or OtpIssuer(EMAIL_VERIFY_OTP, clock=clock)
        self.clock = clock

    def _reset_otp_page(self, token: str) -> str:
        return build_app_url("/forgot-password/otp", absolute=False, signature=token)

    async def _send_reset_code(self, email: str, code: str, token: str) -> None:
        await self.email_service.send(self.email_service.password_reset_otp(email, code, token))

    async def forgot_password(self, email: str) -> ActionResponse:
        """
        Email a reset code to a registered address.

        Raises:
            ResourceNotFoundError: If no account uses ``email``
        """
        email = normalize_email(email)
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise ResourceNotFoundError("No account found with this email.")

        issued = await self.reset_issuer.issue(ResetPasswordPayload(email=email))
        await self._send_reset_code(email, issued.code, issued.token)
        logger.info(f"Password reset code sent to {mask_email(email)}")

        return ActionResponse(
            success="A reset code has been sent to your email.",
            redirect_url=self._reset_otp_page(issued.token),
            signature=issued.token,
        )

    async def verify_reset_otp(self, token: str, otp: str) -> ActionResponse:
        payload = await self.reset_issuer.verify(token, otp)
        verified = self.reset_issuer.issue_verified(payload, settings.signature_ttl_seconds)

        return ActionResponse(
            success="Code verified. Choose a new password.",
            redirect_url=build_app_url("/reset-password", absolute=False, signature=verified),
            signature=verified,
        )

    async def resend_reset_otp(self, token: str) -> ActionResponse:
        issued = await self.reset_issuer.resend(token)
        payload = self.reset_issuer.read_token(issued.token)
        await self._send_reset_code(payload.email, issued.code, issued.token)

        return ActionResponse(
            success="A new reset code has been sent to your email.",
            redirect_url=self._reset_otp_page(issued.token),
            signature=issued.token,
        )

    async def reset_password(self, token: str, password: str) -> ActionResponse:
        """
        Set a new password with a verified reset pass and sign out every session.

        Raises:
            SignatureInvalidError / SignatureExpiredError: For a bad or stale reset pass
            ResourceNotFoundError: If the account was removed meanwhile
        """
        payload = self.reset_issuer.read_token(token, stage=SignatureStage.VERIFIED)
        user = await self.user_repo.get_by_email(normalize_email(payload.email))
        if user is None:
            raise ResourceNotFoundError("No account found with this email.")

        await self.user_repo.set_password(user.id, get_password_hash(password))
        await token_blacklist.revoke_all_user_tokens(
            user.id, settings.refresh_token_expire_seconds
        )
        logger.info(f"Password reset for user {user.id}")

        return ActionResponse(
            success="Password updated. Please sign in with your new password.",
            redirect_url="/signin",
        )

    async def send_email_verification(self, user_id: int) -> ActionResponse:
        """
        Email a verification code to the signed-in user.

        Raises:
            ResourceNotFoundError: If the user does not exist
            DuplicateResourceError: If the email is already verified
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundError("User not found")
        if user.email_verified_at is not None:
            raise DuplicateResourceError("Email is already verified.")

        code = await self.verify_issuer.issue_code(user.email)
        await self.email_service.send(self.email_service.email_verification_otp(user.email, code))

        return ActionResponse(success="A verification code has been sent to your email.")

    async def confirm_email_verification(self, user_id: int, otp: str) -> ActionResponse:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundError("User not found")
        if user.email_verified_at is not None:
            raise DuplicateResourceError("Email is already verified.")

        await self.verify_issuer.consume_code(user.email, otp)
        await self.user_repo.mark_email_verified(user.id, self.clock())
        logger.info(f"Email verified for user {user.id}")

        return ActionResponse(success="Email verified.")
