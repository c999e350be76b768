from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from assetgate.core import signature
from assetgate.core.auth import verify_password
from assetgate.core.constants import InviteStatus, Role
from assetgate.core.exceptions.domain import (
    DuplicateResourceError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from assetgate.core.exceptions.verification import (
    OtpNotFoundError,
    SignatureExpiredError,
    SignatureInvalidError,
)
from assetgate.repos import InviteRepo, UserRepo
from assetgate.schemas import InviteCreate, InvitePayload
from assetgate.services.email import EmailService
from assetgate.services.invite_service import InviteService
from assetgate.services.otp_service import INVITE_OTP, OtpIssuer
from tests.utils import FIXED_NOW

EMAIL = "ops@example.com"


@pytest.fixture
def invite() -> SimpleNamespace:
    return SimpleNamespace(
        id=3,
        email=EMAIL,
        role=Role.ADMIN,
        token="invite-token",
        status=InviteStatus.PENDING,
        expires_at=FIXED_NOW + timedelta(hours=24),
    )


@pytest.fixture
def user_repo() -> AsyncMock:
    repo = AsyncMock(spec=UserRepo)
    repo.get_by_email = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def invite_repo(invite) -> AsyncMock:
    repo = AsyncMock(spec=InviteRepo)
    repo.upsert = AsyncMock(return_value=invite)
    repo.get_by_email = AsyncMock(return_value=invite)
    repo.get_by_id = AsyncMock(return_value=invite)
    repo.update_by_id = AsyncMock(return_value=invite)
    return repo


@pytest.fixture
def email_service() -> MagicMock:
    service = MagicMock(spec=EmailService)
    service.invite_link = EmailService.invite_link
    service.invite_otp = EmailService.invite_otp
    service.send = AsyncMock(return_value=True)
    return service


@pytest.fixture
def invite_service(user_repo, invite_repo, email_service, otp_codes, cooldowns, clock):
    return InviteService(
        user_repo,
        invite_repo,
        email_service,
        issuer=OtpIssuer(INVITE_OTP, otp_codes, cooldowns, clock),
        clock=clock,
    )


@pytest.fixture
def link_token(clock) -> str:
    payload = InvitePayload(email=EMAIL, role=Role.ADMIN, invite_token="invite-token")
    return signature.issue(payload, 86400, clock=clock)


@pytest.mark.anyio
class TestCreateInvite:
    """Test provisioning of invited accounts."""

    async def test_new_email_creates_passwordless_account(
        self, invite_service, user_repo, invite_repo, email_service
    ):
        await invite_service.create_invite(InviteCreate(email="Ops@Example.com"), inviter_id=1)

        created = user_repo.create_one.call_args.args[0]
        assert created.email == EMAIL
        assert created.role_user == Role.ADMIN
        assert created.hashed_password is None

        upserted = invite_repo.upsert.call_args.args[0]
        assert upserted.status == InviteStatus.PENDING
        assert upserted.inviter_id == 1

        message = email_service.send.call_args.args[0]
        assert message.to == EMAIL
        assert "/invite?signature=" in message.html

    async def test_unverified_account_is_updated(self, invite_service, user_repo):
        user_repo.get_by_email.return_value = SimpleNamespace(id=5, email_verified_at=None)

        await invite_service.create_invite(InviteCreate(email=EMAIL, role=Role.USER), 1)

        user_repo.create_one.assert_not_called()
        user_id, update = user_repo.update_by_id.call_args.args
        assert user_id == 5
        assert update.role_user == Role.USER

    async def test_verified_account_conflicts(self, invite_service, user_repo, invite_repo):
        user_repo.get_by_email.return_value = SimpleNamespace(id=5, email_verified_at=FIXED_NOW)

        with pytest.raises(DuplicateResourceError):
            await invite_service.create_invite(InviteCreate(email=EMAIL), 1)

        invite_repo.upsert.assert_not_called()


@pytest.mark.anyio
class TestCancelInvite:
    async def test_pending_invite_is_cancelled(self, invite_service, invite_repo, user_repo):
        await invite_service.cancel_invite(3, caller_id=1)

        _, update = invite_repo.update_by_id.call_args.args
        assert update.status == InviteStatus.CANCELLED
        user_repo.delete_by_id.assert_not_called()

    async def test_accepted_invite_removes_account(self, invite_service, invite, user_repo):
        invite.status = InviteStatus.ACCEPTED
        user_repo.get_by_email.return_value = SimpleNamespace(id=5)

        await invite_service.cancel_invite(3, caller_id=1)

        user_repo.delete_by_id.assert_awaited_once_with(5)

    async def test_cannot_remove_own_account(self, invite_service, invite, user_repo, invite_repo):
        invite.status = InviteStatus.ACCEPTED
        user_repo.get_by_email.return_value = SimpleNamespace(id=1)

        with pytest.raises(PermissionDeniedError):
            await invite_service.cancel_invite(3, caller_id=1)

        user_repo.delete_by_id.assert_not_called()
        invite_repo.update_by_id.assert_not_called()

    async def test_unknown_invite(self, invite_service, invite_repo):
        invite_repo.get_by_id.return_value = None

        with pytest.raises(ResourceNotFoundError):
            await invite_service.cancel_invite(99, caller_id=1)


@pytest.mark.anyio
class TestAcceptInvite:
    """Test the invitee's code confirmation and password setup."""

    async def test_send_otp_then_accept(
        self, invite_service, link_token, otp_codes, user_repo, invite_repo, clock
    ):
        user_repo.get_by_email.return_value = SimpleNamespace(id=5)

        await invite_service.send_otp(link_token)
        code = otp_codes.codes[INVITE_OTP.store_key(EMAIL)]
        response = await invite_service.accept(link_token, EMAIL, code, "N3w@Password")

        user_id, hashed = user_repo.set_password.call_args.args
        assert user_id == 5
        assert verify_password("N3w@Password", hashed)
        assert user_repo.set_password.call_args.kwargs["verified_at"] == clock()
        _, update = invite_repo.update_by_id.call_args.args
        assert update.status == InviteStatus.ACCEPTED
        assert response.redirect_url == "/signin"

    async def test_accept_without_code(self, invite_service, link_token):
        with pytest.raises(OtpNotFoundError):
            await invite_service.accept(link_token, EMAIL, "123456", "N3w@Password")

    async def test_email_must_match_invitation(self, invite_service, link_token):
        with pytest.raises(ValidationError):
            await invite_service.accept(link_token, "other@example.com", "123456", "pw")

    async def test_rotated_token_invalidates_link(self, invite_service, invite, link_token):
        invite.token = "rotated"

        with pytest.raises(SignatureInvalidError):
            await invite_service.send_otp(link_token)

    async def test_cancelled_invite_invalidates_link(self, invite_service, invite, link_token):
        invite.status = InviteStatus.CANCELLED

        with pytest.raises(SignatureInvalidError):
            await invite_service.send_otp(link_token)

    async def test_expired_invite_row(self, invite_service, invite, link_token):
        invite.expires_at = FIXED_NOW - timedelta(seconds=1)

        with pytest.raises(SignatureExpiredError):
            await invite_service.send_otp(link_token)

    async def test_forged_link(self, invite_service, link_token):
        with pytest.raises(SignatureInvalidError):
            await invite_service.send_otp(link_token[:-2] + "xx")
