from datetime import datetime, time, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from assetgate.core.config import settings
from assetgate.core.constants import (
    FALLBACK_PLAN_PRICES,
    LICENSE_VARIANTS,
    LicenseStatus,
    LicenseVariant,
    PlanType,
    Tier,
    TransactionType,
)
from assetgate.core.exceptions.domain import (
    DuplicateResourceError,
    PermissionDeniedError,
    ProcessingError,
)
from assetgate.core.exceptions.license_vendor import (
    LicenseForbiddenError,
    LicenseRejectedError,
    LicenseVendorException,
)
from assetgate.core.logger import mask_email, mask_secret
from assetgate.core.signature import utc_now
from assetgate.core.utils import build_app_url
from assetgate.models import License
from assetgate.repos import LicenseRepo, UserRepo
from assetgate.schemas import (
    ActionResponse,
    ExpiryReport,
    LicenseCheck,
    LicenseTransactionCreate,
    LicenseUpsert,
    LicenseVerifyPayload,
)
from assetgate.services.email import EmailService
from assetgate.services.license_vendor import LemonSqueezyClient
from assetgate.services.otp_service import LICENSE_OTP, OtpIssuer

ACTIVATABLE_STATUSES = frozenset({LicenseStatus.ACTIVE, LicenseStatus.INACTIVE})
WRONG_PRODUCT_MESSAGE = (
    "This license key is not valid for MoonUI Pro. "
    "Make sure you use a license purchased from MoonUI Design."
)


def resolve_variant(variant_id: int | None, variant_name: str = "") -> LicenseVariant:
    """
    Plan granted by a vendor variant.

    Known variants come from the constant table; otherwise a name mentioning ``lifetime``
    or ``unlimited`` grants pro_plus for life and anything else a pro subscription.
    """
    if variant_id in LICENSE_VARIANTS:
        return LICENSE_VARIANTS[variant_id]

    name = variant_name.lower()
    if "lifetime" in name or "unlimited" in name:
        return LicenseVariant(Tier.PRO_PLUS, PlanType.ONE_TIME, variant_name or "Pro Plus")

    return LicenseVariant(Tier.PRO, PlanType.SUBSCRIBE, variant_name or "Pro")


def expiry_notice_window(
    now: datetime, days_ahead: int, tz: ZoneInfo | None = None
) -> tuple[datetime, datetime]:
    """Start and end of the calendar day ``days_ahead`` days after ``now``."""
    local_now = now.astimezone(tz or ZoneInfo(settings.celery_timezone))
    target_day = local_now.date() + timedelta(days=days_ahead)
    start = datetime.combine(target_day, time.min, tzinfo=local_now.tzinfo)

    return start, start + timedelta(days=1)


def activation_message(check: LicenseCheck) -> str:
    if check.plan_type == PlanType.ONE_TIME:
        return f"License valid! Activating {check.variant_label} - Lifetime access."

    return f"License valid! Activating {check.variant_label} subscription."


class LicenseGateway:
    """
    Talks to the license vendor and records the outcome.

    The vendor is always called before anything is written, so a vendor failure leaves
    no local trace.
    """

    def __init__(
        self,
        license_repo: LicenseRepo,
        vendor: LemonSqueezyClient,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.license_repo = license_repo
        self.vendor = vendor
        self.clock = clock

    async def check_license(self, license_key: str) -> LicenseCheck:
        """
        Validate a key with the vendor and make sure it can be activated here.

        Raises:
            LicenseRejectedError: If the vendor does not know the key or its status is unusable
            LicenseForbiddenError: If the key belongs to another product or is used up
            LicenseVendorUnavailableError: If the vendor cannot be reached
        """
        result = await self.vendor.validate(license_key)

        if not result.valid or result.license_key is None or result.meta is None:
            logger.warning(f"Vendor rejected license {mask_secret(license_key)}: {result.error}")
            raise LicenseRejectedError(result.error or "Invalid license key.")

        meta = result.meta
        if (
            meta.store_id != settings.lemonsqueezy_store_id
            or meta.product_id != settings.lemonsqueezy_product_id
            or meta.variant_id not in LICENSE_VARIANTS
        ):
            logger.warning(
                f"License {mask_secret(license_key)} belongs to store {meta.store_id}, "
                f"product {meta.product_id}, variant {meta.variant_id}"
            )
            raise LicenseForbiddenError(WRONG_PRODUCT_MESSAGE)

        status = result.license_key.status
        if status not in ACTIVATABLE_STATUSES:
            logger.warning(f"License {mask_secret(license_key)} has status {status}")
            raise LicenseRejectedError(
                f'License status is "{status}". Only active or unused licenses can be activated.'
            )

        limit = result.license_key.activation_limit
        if limit is not None and result.license_key.activation_usage >= limit:
            logger.warning(f"License {mask_secret(license_key)} used all {limit} activations")
            raise LicenseForbiddenError(
                f"This license key has reached its activation limit of {limit}. "
                "It has already been used."
            )

        variant = LICENSE_VARIANTS[meta.variant_id]

        return LicenseCheck(
            license_key=license_key,
            email=meta.customer_email,
            tier=variant.tier,
            plan_type=variant.plan_type,
            variant_id=meta.variant_id,
            variant_label=variant.label,
            order_id=meta.order_id,
        )

    async def _order_amount(self, order_id: int | None, plan_type: PlanType) -> int:
        if order_id is not None:
            try:
                return await self.vendor.get_order_total(order_id)
            except LicenseVendorException as e:
                logger.warning(f"Order {order_id} total unavailable, using price table: {e}")

        return FALLBACK_PLAN_PRICES[plan_type]

    async def activate(self, license_key: str, user_id: int) -> License:
        """
        Activate a key with the vendor and bind it to ``user_id``.

        Activating a key again, for the same or another user, updates its single row.

        Returns:
            License: The upserted license row

        Raises:
            LicenseRejectedError: If the vendor refuses the activation
            LicenseVendorUnavailableError: If the vendor cannot be reached
            ProcessingError: If the license row cannot be saved
        """
        result = await self.vendor.activate(license_key, f"User-{user_id}")

        if not result.activated or result.license_key is None or result.meta is None:
            logger.warning(
                f"Vendor refused activation of {mask_secret(license_key)}: {result.error}"
            )
            raise LicenseRejectedError(result.error or "Failed to activate license via API.")

        variant = resolve_variant(result.meta.variant_id, result.meta.variant_name)
        vendor_status = result.license_key.status
        status = (
            LicenseStatus(vendor_status)
            if vendor_status in {member.value for member in LicenseStatus}
            else LicenseStatus.ACTIVE
        )

        try:
            license_row = await self.license_repo.upsert_by_license_key(
                LicenseUpsert(
                    user_id=user_id,
                    license_key=license_key,
                    status=status,
                    tier=variant.tier,
                    plan_type=variant.plan_type,
                    variant_id=result.meta.variant_id,
                    order_id=result.meta.order_id,
                    activated_at=self.clock(),
                    expires_at=result.license_key.expires_at,
                )
            )
        except SQLAlchemyError as e:
            logger.exception(f"Saving license {mask_secret(license_key)} failed")
            raise ProcessingError(
                "Failed to save license activation details to the database.", e
            ) from e

        amount = await self._order_amount(result.meta.order_id, variant.plan_type)
        try:
            async with self.license_repo.savepoint():
                await self.license_repo.create_transaction(
                    LicenseTransactionCreate(
                        user_id=user_id,
                        license_id=license_row.id,
                        transaction_type=TransactionType.ACTIVATION,
                        amount=amount,
                        details={
                            "variant_id": result.meta.variant_id,
                            "variant_name": result.meta.variant_name,
                            "order_id": result.meta.order_id,
                            "instance": (result.instance or {}).get("id"),
                        },
                    ),
                    auto_commit=False,
                )
        except SQLAlchemyError:
            logger.exception(f"Transaction log for license {license_row.id} was not written")

        logger.info(
            f"License {mask_secret(license_key)} activated for user {user_id} "
            f"({variant.tier}, {variant.plan_type})"
        )

        return license_row

    async def run_expiry_check(
        self, email_service: EmailService, now: datetime | None = None
    ) -> ExpiryReport:
        """
        Expire overdue licenses and warn owners of subscriptions ending soon.

        Returns:
            ExpiryReport: Number of licenses expired and notices queued
        """
        now = now or self.clock()
        expired_count = await self.license_repo.expire_overdue(now)

        start, end = expiry_notice_window(now, settings.license_expiry_notice_days)
        notified_count = 0
        for license_row, email, name in await self.license_repo.list_expiring(start, end):
            message = email_service.expiration_notice(email, name, license_row.expires_at)
            if await email_service.send(message):
                notified_count += 1

        logger.info(f"License expiry sweep: {expired_count} expired, {notified_count} notified")

        return ExpiryReport(expired_count=expired_count, notified_count=notified_count)


class LicenseVerificationService:
    """
    Proves that the person entering a license key controls the purchase email,
    before any account exists.
    """

    def __init__(
        self,
        gateway: LicenseGateway,
        user_repo: UserRepo,
        email_service: EmailService,
        issuer: OtpIssuer | None = None,
    ):
        self.gateway = gateway
        self.user_repo = user_repo
        self.email_service = email_service
        self.issuer = issuer or OtpIssuer(LICENSE_OTP)

    def _otp_page(self, token: str) -> str:
        return build_app_url("/verify-license/otp", absolute=False, signature=token)

    async def start_verification(self, license_key: str) -> ActionResponse:
        """Validate the key and email a code to the purchase address."""
        check = await self.gateway.check_license(license_key)
        issued = await self.issuer.issue(
            LicenseVerifyPayload(
                email=check.email,
                license_key=check.license_key,
                tier=check.tier,
                plan_type=check.plan_type,
                order_id=check.order_id,
                variant_id=check.variant_id,
            )
        )
        await self.email_service.send(self.email_service.license_otp(check.email, issued.code))
        logger.info(f"License verification started for {mask_email(check.email)}")

        return ActionResponse(
            success=activation_message(check),
            redirect_url=self._otp_page(issued.token),
            signature=issued.token,
        )

    async def verify_otp(self, token: str, otp: str, has_session: bool = False) -> ActionResponse:
        """
        Check the caller and the purchase email, then consume the code and hand out a
        short-lived pass to the signup page. A refused request leaves the code usable.

        Raises:
            PermissionDeniedError: If the caller is already signed in
            DuplicateResourceError: If the purchase email already has an account
        """
        payload = self.issuer.read_token(token)

        if has_session:
            raise PermissionDeniedError(
                "You are already signed in. Sign out before verifying another license."
            )

        if await self.user_repo.get_by_email(payload.email):
            logger.warning(f"License verified for registered email {mask_email(payload.email)}")
            raise DuplicateResourceError(
                "This email is already registered. Please sign in, or verify another license."
            )

        await self.issuer.consume_code(self.issuer.flow.identity_of(payload), otp)

        verified = self.issuer.issue_verified(payload, settings.activation_signature_ttl_seconds)

        return ActionResponse(
            success="Email verified. Create your account to finish activating the license.",
            redirect_url=build_app_url("/signup", absolute=False, signature=verified),
            signature=verified,
        )

    async def resend_otp(self, token: str) -> ActionResponse:
        issued = await self.issuer.resend(token)
        payload = self.issuer.read_token(issued.token)
        await self.email_service.send(self.email_service.license_otp(payload.email, issued.code))

        return ActionResponse(
            success="A new verification code has been sent to your email.",
            redirect_url=self._otp_page(issued.token),
            signature=issued.token,
        )
