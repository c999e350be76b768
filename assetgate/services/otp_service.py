from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from loguru import logger

from assetgate.core import signature
from assetgate.core.config import settings
from assetgate.core.constants import RedisKeyPrefix
from assetgate.core.cooldown import CooldownReason
from assetgate.core.exceptions.rate_limiter import OtpCooldownActiveError, OtpDailyLimitError
from assetgate.core.exceptions.verification import (
    OtpMismatchError,
    OtpNotFoundError,
    SignatureExpiredError,
    SignatureInvalidError,
)
from assetgate.core.logger import mask_email
from assetgate.core.signature import utc_now
from assetgate.core.utils import generate_otp
from assetgate.schemas.signature import SignatureKind, SignatureStage, SignedPayload
from assetgate.services.cache.cooldown_store import CooldownStore, cooldown_store
from assetgate.services.cache.otp_store import OtpCheck, OtpStore, otp_store

SEND_CLAIM_ATTEMPTS = 3


@dataclass(frozen=True)
class OtpFlow:
    """
    One verification flow built on emailed codes.

    ``identity_field`` names the payload attribute that keys the stored code, and the
    messages are shown when the flow's link is tampered with or has expired.
    """

    name: str
    key_prefix: str
    kind: SignatureKind | None
    identity_field: str = "email"
    invalid_message: str = "Invalid signature."
    expired_message: str = "Link expired."

    def store_key(self, identity: str) -> str:
        return f"{self.key_prefix}{identity}"

    def identity_of(self, payload: SignedPayload) -> str:
        return str(getattr(payload, self.identity_field))


LICENSE_OTP = OtpFlow(
    name="license",
    key_prefix=RedisKeyPrefix.LICENSE_OTP,
    kind=SignatureKind.LICENSE_VERIFY,
    identity_field="license_key",
    invalid_message="Invalid OTP verification session. Please enter your license key again.",
    expired_message=(
        "OTP verification session has expired (more than 10 minutes). "
        "Please start verification again."
    ),
)
PASSWORD_RESET_OTP = OtpFlow(
    name="password_reset",
    key_prefix=RedisKeyPrefix.PASSWORD_RESET_OTP,
    kind=SignatureKind.RESET_PASSWORD,
)
EMAIL_VERIFY_OTP = OtpFlow(
    name="email_verify",
    key_prefix=RedisKeyPrefix.EMAIL_VERIFY_OTP,
    kind=None,
)
INVITE_OTP = OtpFlow(
    name="invite",
    key_prefix=RedisKeyPrefix.INVITE_OTP,
    kind=SignatureKind.INVITE,
    invalid_message=(
        "Invalid invitation signature. Please contact admin to get a new invitation link."
    ),
    expired_message=(
        "Invitation link has expired. Please contact admin to get a new invitation link."
    ),
)


@dataclass(frozen=True)
class IssuedOtp:
    code: str
    token: str


class OtpIssuer:
    """
    Issues and checks one-time codes for a flow.

    Every send goes through the server-side cooldown and daily quota. Codes are compared
    and consumed atomically, a wrong code leaves the stored one in place.
    """

    def __init__(
        self,
        flow: OtpFlow,
        store: OtpStore = otp_store,
        cooldowns: CooldownStore = cooldown_store,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.flow = flow
        self.store = store
        self.cooldowns = cooldowns
        self.clock = clock

    @property
    def _tz(self) -> ZoneInfo:
        return ZoneInfo(settings.otp_quota_timezone)

    async def _claim_send(self, identity: str) -> None:
        """
        Check the throttle and record the send in one compare-and-set step.

        A lost race re-reads the state, so it is refused by the winner's cooldown.
        """
        for _ in range(SEND_CLAIM_ATTEMPTS):
            now = self.clock()
            state, raw = await self.cooldowns.load_entry(self.flow.name, identity)
            check = state.check(now, settings.otp_daily_limit, self._tz)

            if not check.allowed:
                logger.warning(f"Code send refused for flow {self.flow.name}: {check.reason}")
                if check.reason == CooldownReason.DAILY_LIMIT:
                    raise OtpDailyLimitError()
                raise OtpCooldownActiveError(retry_after=check.retry_after)

            updated = state.register_send(
                now,
                base_seconds=settings.otp_cooldown_base_seconds,
                cap_exponent=settings.otp_cooldown_cap_exponent,
                tz=self._tz,
            )
            if await self.cooldowns.compare_and_set(self.flow.name, identity, raw, updated):
                return

        logger.warning(f"Code send refused for flow {self.flow.name}: concurrent sends")
        raise OtpCooldownActiveError(retry_after=settings.otp_cooldown_base_seconds)

    async def issue_code(self, identity: str) -> str:
        """
        Generate and store a fresh code for ``identity``, replacing the previous one.

        Raises:
            OtpCooldownActiveError: If the previous send is still cooling down
            OtpDailyLimitError: If the daily number of sends is used up
            OtpStoreUnavailableError: If the code cannot be stored
        """
        await self._claim_send(identity)

        code = generate_otp()
        await self.store.save(self.flow.store_key(identity), code, settings.otp_ttl_seconds)
        logger.info(f"One-time code issued for flow {self.flow.name}")

        return code

    async def consume_code(self, identity: str, code: str) -> None:
        """
        Check ``code`` against the stored one and consume it on match.

        Raises:
            OtpMismatchError: If the code differs; the stored code is kept
            OtpNotFoundError: If no code is stored (never sent, used or expired)
            OtpStoreUnavailableError: If the store cannot be reached
        """
        result = await self.store.check_and_consume(self.flow.store_key(identity), code)

        if result == OtpCheck.MISMATCH:
            logger.warning(f"Wrong one-time code submitted for flow {self.flow.name}")
            raise OtpMismatchError()
        if result == OtpCheck.MISSING:
            logger.warning(f"No live one-time code for flow {self.flow.name}")
            raise OtpNotFoundError()

        state, raw = await self.cooldowns.load_entry(self.flow.name, identity)
        await self.cooldowns.compare_and_set(self.flow.name, identity, raw, state.clear_session())

    def _require_kind(self) -> SignatureKind:
        if self.flow.kind is None:
            raise ValueError(f"Flow {self.flow.name} does not use signed links")

        return self.flow.kind

    async def issue(self, payload: SignedPayload) -> IssuedOtp:
        """
        Send a code for the payload's identity and sign a link carrying the payload.

        Returns:
            IssuedOtp: The code (to be emailed, never returned to the client) and the token
        """
        self._require_kind()
        pending = payload.model_copy(update={"stage": SignatureStage.OTP_PENDING})
        code = await self.issue_code(self.flow.identity_of(pending))
        token = signature.issue(pending, settings.signature_ttl_seconds, clock=self.clock)

        return IssuedOtp(code=code, token=token)

    def read_token(
        self,
        token: str | None,
        stage: SignatureStage = SignatureStage.OTP_PENDING,
        allow_expired: bool = False,
    ) -> SignedPayload:
        """
        Verify a link token of this flow and return its payload.

        Raises:
            SignatureInvalidError: If the token is forged, malformed or of another flow/stage
            SignatureExpiredError: If the token expired and ``allow_expired`` is False
        """
        result = signature.verify(token, self._require_kind(), stage, clock=self.clock)

        if not result.valid or result.payload is None:
            logger.warning(f"Invalid {self.flow.name} link presented")
            raise SignatureInvalidError(self.flow.invalid_message)
        if result.expired and not allow_expired:
            logger.warning(
                f"Expired {self.flow.name} link presented for {mask_email(result.payload.email)}"
            )
            raise SignatureExpiredError(self.flow.expired_message)

        return result.payload

    async def verify(self, token: str | None, code: str) -> SignedPayload:
        """
        Verify the link token, then consume the submitted code for its identity.

        Returns:
            SignedPayload: The payload of the verified token
        """
        payload = self.read_token(token)
        await self.consume_code(self.flow.identity_of(payload), code)
        logger.info(f"One-time code verified for flow {self.flow.name}")

        return payload

    async def resend(self, token: str | None) -> IssuedOtp:
        """
        Send a new code for the identity in ``token``; an expired token is accepted.

        Returns:
            IssuedOtp: The new code and a fresh token with the same payload
        """
        payload = self.read_token(token, allow_expired=True)

        return await self.issue(payload)

    def issue_verified(self, payload: SignedPayload, ttl_seconds: int) -> str:
        """Sign a short-lived pass for the step that follows a successful verification."""
        self._require_kind()
        verified = payload.model_copy(update={"stage": SignatureStage.VERIFIED})

        return signature.issue(verified, ttl_seconds, clock=self.clock)
