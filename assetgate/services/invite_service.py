import hmac
import secrets
from datetime import datetime, timedelta
from typing import Callable, Sequence

from loguru import logger

from assetgate.core import signature
from assetgate.core.auth import get_password_hash
from assetgate.core.config import settings
from assetgate.core.constants import InviteStatus
from assetgate.core.exceptions.domain import (
    DuplicateResourceError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from assetgate.core.exceptions.verification import SignatureExpiredError, SignatureInvalidError
from assetgate.core.logger import mask_email
from assetgate.core.signature import utc_now
from assetgate.core.utils import normalize_email
from assetgate.models import Invite
from assetgate.repos import InviteRepo, UserRepo
from assetgate.schemas import (
    ActionResponse,
    InviteCreate,
    InvitePayload,
    InviteUpdate,
    InviteUpsert,
    UserCreate,
    UserUpdate,
)
from assetgate.services.email import EmailService
from assetgate.services.otp_service import INVITE_OTP, OtpIssuer


class InviteService:
    """
    Super-admin invitations for staff and users.

    The invited account is created up front without a password; accepting the invite
    sets the password after the invitee proves control of the email.
    """

    def __init__(
        self,
        user_repo: UserRepo,
        invite_repo: InviteRepo,
        email_service: EmailService,
        issuer: OtpIssuer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.user_repo = user_repo
        self.invite_repo = invite_repo
        self.email_service = email_service
        self.issuer = issuer or OtpIssuer(INVITE_OTP, clock=clock)
        self.clock = clock

    async def create_invite(self, data: InviteCreate, inviter_id: int) -> Invite:
        """
        Provision the invitee and email a signed invitation link.

        Raises:
            DuplicateResourceError: If a verified account already uses the email
        """
        email = normalize_email(data.email)
        user = await self.user_repo.get_by_email(email)

        if user is not None and user.email_verified_at is not None:
            raise DuplicateResourceError("A verified account already uses this email.")

        if user is None:
            await self.user_repo.create_one(
                UserCreate(name=email.split("@")[0], email=email, role_user=data.role)
            )
        else:
            await self.user_repo.update_by_id(user.id, UserUpdate(role_user=data.role))

        invite_token = secrets.token_urlsafe(32)
        invite = await self.invite_repo.upsert(
            InviteUpsert(
                email=email,
                role=data.role,
                token=invite_token,
                inviter_id=inviter_id,
                status=InviteStatus.PENDING,
                expires_at=self.clock() + timedelta(seconds=settings.invite_ttl_seconds),
            )
        )

        link_token = signature.issue(
            InvitePayload(email=email, role=data.role, invite_token=invite_token),
            settings.invite_ttl_seconds,
            clock=self.clock,
        )
        await self.email_service.send(
            self.email_service.invite_link(email, link_token, data.role.value)
        )
        logger.info(f"Invite sent to {mask_email(email)} as {data.role} by user {inviter_id}")

        return invite

    async def list_invites(self, limit: int = 100, offset: int = 0) -> Sequence[Invite]:
        return await self.invite_repo.list_recent(limit=limit, offset=offset)

    async def cancel_invite(self, invite_id: int, caller_id: int) -> Invite:
        """
        Cancel an invite; for an accepted one the invited account is removed too.

        Raises:
            ResourceNotFoundError: If the invite does not exist
            PermissionDeniedError: If the accepted invite belongs to the caller
        """
        invite = await self.invite_repo.get_by_id(invite_id)
        if invite is None:
            raise ResourceNotFoundError("Invite not found")

        if invite.status == InviteStatus.ACCEPTED:
            user = await self.user_repo.get_by_email(invite.email)
            if user is not None:
                if user.id == caller_id:
                    raise PermissionDeniedError("You cannot remove your own account.")
                await self.user_repo.delete_by_id(user.id)
                logger.info(f"User {user.id} removed with cancelled invite {invite.id}")

        cancelled = await self.invite_repo.update_by_id(
            invite.id, InviteUpdate(status=InviteStatus.CANCELLED)
        )

        return cancelled or invite

    async def _live_invite(self, payload: InvitePayload) -> Invite:
        invite = await self.invite_repo.get_by_email(normalize_email(payload.email))

        if (
            invite is None
            or invite.status != InviteStatus.PENDING
            or not hmac.compare_digest(invite.token, payload.invite_token)
        ):
            logger.warning(f"Stale invite link used for {mask_email(payload.email)}")
            raise SignatureInvalidError(INVITE_OTP.invalid_message)

        if invite.expires_at <= self.clock():
            raise SignatureExpiredError(INVITE_OTP.expired_message)

        return invite

    async def send_otp(self, token: str) -> ActionResponse:
        """Email a code to the invitee of a live invitation link."""
        payload = self.issuer.read_token(token)
        invite = await self._live_invite(payload)

        code = await self.issuer.issue_code(invite.email)
        await self.email_service.send(self.email_service.invite_otp(invite.email, code))

        return ActionResponse(success="A verification code has been sent to your email.")

    async def accept(self, token: str, email: str, otp: str, password: str) -> ActionResponse:
        """
        Set the invitee's password once the code is confirmed.

        Raises:
            ValidationError: If ``email`` is not the invited address
            OtpMismatchError / OtpNotFoundError: For a wrong or missing code
        """
        payload = self.issuer.read_token(token)
        if normalize_email(email) != normalize_email(payload.email):
            raise ValidationError("Email does not match the invitation.")

        invite = await self._live_invite(payload)
        await self.issuer.consume_code(invite.email, otp)

        user = await self.user_repo.get_by_email(invite.email)
        if user is None:
            raise ResourceNotFoundError("Invited account no longer exists.")

        await self.user_repo.set_password(
            user.id, get_password_hash(password), verified_at=self.clock()
        )
        await self.invite_repo.update_by_id(invite.id, InviteUpdate(status=InviteStatus.ACCEPTED))
        logger.info(f"Invite {invite.id} accepted by user {user.id}")

        return ActionResponse(
            success="Invitation accepted. You can now sign in.", redirect_url="/signin"
        )
