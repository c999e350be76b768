from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError, PendingRollbackError

from assetgate.core.constants import LicenseStatus, PlanType, Tier
from assetgate.core.exceptions.domain import (
    DuplicateResourceError,
    PermissionDeniedError,
    ProcessingError,
)
from assetgate.core.exceptions.license_vendor import (
    LicenseForbiddenError,
    LicenseRejectedError,
    LicenseVendorUnavailableError,
)
from assetgate.core.exceptions.verification import OtpMismatchError
from assetgate.repos import LicenseRepo, UserRepo
from assetgate.schemas import SignatureStage, VendorActivation, VendorValidation
from assetgate.services.email import EmailMessage, EmailService
from assetgate.services.license_service import (
    LicenseGateway,
    LicenseVerificationService,
    expiry_notice_window,
    resolve_variant,
)
from assetgate.services.license_vendor import LemonSqueezyClient
from assetgate.services.otp_service import LICENSE_OTP, OtpIssuer

META = {
    "store_id": 213520,
    "order_id": 77,
    "product_id": 632985,
    "variant_id": 993285,
    "variant_name": "Pro (Yearly)",
    "customer_name": "Jane",
    "customer_email": "jane@example.com",
}


def validation(**overrides) -> VendorValidation:
    license_key = {"status": "inactive", "key": "KEY-1", "activation_limit": 1}
    license_key.update(overrides.pop("license_key", {}))
    meta = {**META, **overrides.pop("meta", {})}

    return VendorValidation.model_validate(
        {"valid": True, "license_key": license_key, "meta": meta, **overrides}
    )


def activation(**overrides) -> VendorActivation:
    license_key = {"status": "active", "key": "KEY-1", "expires_at": "2026-03-14T00:00:00Z"}
    license_key.update(overrides.pop("license_key", {}))

    return VendorActivation.model_validate(
        {
            "activated": True,
            "license_key": license_key,
            "instance": {"id": "inst-1"},
            "meta": {**META, **overrides.pop("meta", {})},
            **overrides,
        }
    )


@pytest.fixture
def vendor() -> AsyncMock:
    vendor = AsyncMock(spec=LemonSqueezyClient)
    vendor.validate = AsyncMock(return_value=validation())
    vendor.activate = AsyncMock(return_value=activation())
    vendor.get_order_total = AsyncMock(return_value=150000)
    return vendor


@pytest.fixture
def license_repo() -> AsyncMock:
    repo = AsyncMock(spec=LicenseRepo)
    repo.upsert_by_license_key = AsyncMock(
        side_effect=lambda data: SimpleNamespace(id=9, **data.model_dump())
    )
    repo.create_transaction = AsyncMock()
    return repo


@pytest.fixture
def gateway(license_repo, vendor, clock) -> LicenseGateway:
    return LicenseGateway(license_repo, vendor, clock=clock)


@pytest.fixture
def email_service() -> MagicMock:
    service = MagicMock(spec=EmailService)
    service.license_otp = EmailService.license_otp
    service.expiration_notice = EmailService.expiration_notice
    service.send = AsyncMock(return_value=True)
    return service


class TestResolveVariant:
    def test_known_variant(self):
        variant = resolve_variant(993308)

        assert variant.tier == Tier.PRO
        assert variant.plan_type == PlanType.ONE_TIME

    @pytest.mark.parametrize("name", ["Lifetime Bundle", "Unlimited seats"])
    def test_lifetime_names_grant_pro_plus(self, name):
        variant = resolve_variant(1, name)

        assert variant.tier == Tier.PRO_PLUS
        assert variant.plan_type == PlanType.ONE_TIME

    def test_unknown_variant_defaults_to_pro_subscription(self):
        variant = resolve_variant(None)

        assert (variant.tier, variant.plan_type) == (Tier.PRO, PlanType.SUBSCRIBE)


class TestExpiryNoticeWindow:
    def test_window_is_target_calendar_day(self):
        now = datetime(2025, 3, 14, 23, 30, tzinfo=UTC)

        start, end = expiry_notice_window(now, 7, ZoneInfo("UTC"))

        assert start == datetime(2025, 3, 21, tzinfo=UTC)
        assert (end - start).days == 1

    def test_window_follows_timezone(self):
        now = datetime(2025, 3, 14, 23, 30, tzinfo=UTC)

        start, _ = expiry_notice_window(now, 7, ZoneInfo("Asia/Jakarta"))

        assert start.date().isoformat() == "2025-03-22"


@pytest.mark.anyio
class TestCheckLicense:
    """Test vendor validation rules."""

    async def test_valid_key(self, gateway):
        check = await gateway.check_license("KEY-1")

        assert check.email == "jane@example.com"
        assert check.tier == Tier.PRO
        assert check.plan_type == PlanType.SUBSCRIBE
        assert check.order_id == 77
        assert check.variant_label == "Pro (Yearly)"

    async def test_unknown_key(self, gateway, vendor):
        vendor.validate = AsyncMock(
            return_value=VendorValidation(valid=False, error="license_key not found.")
        )

        with pytest.raises(LicenseRejectedError, match="not found"):
            await gateway.check_license("NOPE")

    @pytest.mark.parametrize(
        "meta",
        [{"store_id": 1}, {"product_id": 2}, {"variant_id": 3}],
    )
    async def test_other_product(self, gateway, vendor, meta):
        vendor.validate = AsyncMock(return_value=validation(meta=meta))

        with pytest.raises(LicenseForbiddenError):
            await gateway.check_license("KEY-1")

    @pytest.mark.parametrize("status", ["expired", "disabled"])
    async def test_unusable_status(self, gateway, vendor, status):
        vendor.validate = AsyncMock(return_value=validation(license_key={"status": status}))

        with pytest.raises(LicenseRejectedError, match=status):
            await gateway.check_license("KEY-1")

    async def test_activation_limit_reached(self, gateway, vendor):
        vendor.validate = AsyncMock(
            return_value=validation(license_key={"activation_usage": 1, "activation_limit": 1})
        )

        with pytest.raises(LicenseForbiddenError, match="activation limit of 1"):
            await gateway.check_license("KEY-1")

    async def test_vendor_outage_propagates(self, gateway, vendor):
        vendor.validate = AsyncMock(side_effect=LicenseVendorUnavailableError())

        with pytest.raises(LicenseVendorUnavailableError):
            await gateway.check_license("KEY-1")


@pytest.mark.anyio
class TestActivate:
    """Test activation and bookkeeping."""

    async def test_activation_upserts_and_records_transaction(
        self, gateway, vendor, license_repo, clock
    ):
        license_row = await gateway.activate("KEY-1", 5)

        vendor.activate.assert_awaited_once_with("KEY-1", "User-5")
        upsert = license_repo.upsert_by_license_key.call_args.args[0]
        assert upsert.user_id == 5
        assert upsert.status == LicenseStatus.ACTIVE
        assert upsert.tier == Tier.PRO
        assert upsert.activated_at == clock.now
        assert upsert.expires_at == datetime(2026, 3, 14, tzinfo=UTC)
        transaction = license_repo.create_transaction.call_args.args[0]
        assert transaction.license_id == license_row.id
        assert transaction.amount == 150000
        assert transaction.details["instance"] == "inst-1"

    async def test_refused_activation_writes_nothing(self, gateway, vendor, license_repo):
        vendor.activate = AsyncMock(
            return_value=VendorActivation(activated=False, error="Activation limit reached")
        )

        with pytest.raises(LicenseRejectedError, match="Activation limit"):
            await gateway.activate("KEY-1", 5)

        license_repo.upsert_by_license_key.assert_not_called()

    async def test_vendor_outage_writes_nothing(self, gateway, vendor, license_repo):
        vendor.activate = AsyncMock(side_effect=LicenseVendorUnavailableError())

        with pytest.raises(LicenseVendorUnavailableError):
            await gateway.activate("KEY-1", 5)

        license_repo.upsert_by_license_key.assert_not_called()

    async def test_order_total_falls_back_to_price_table(self, gateway, vendor, license_repo):
        vendor.get_order_total = AsyncMock(side_effect=LicenseVendorUnavailableError())

        await gateway.activate("KEY-1", 5)

        assert license_repo.create_transaction.call_args.args[0].amount == 150000

    async def test_one_time_fallback_price(self, gateway, vendor, license_repo):
        vendor.activate = AsyncMock(return_value=activation(meta={"variant_id": 993308}))
        vendor.get_order_total = AsyncMock(side_effect=LicenseVendorUnavailableError())

        await gateway.activate("KEY-1", 5)

        assert license_repo.create_transaction.call_args.args[0].amount == 500000

    async def test_unknown_vendor_status_is_stored_active(self, gateway, vendor, license_repo):
        vendor.activate = AsyncMock(return_value=activation(license_key={"status": "weird"}))

        await gateway.activate("KEY-1", 5)

        assert license_repo.upsert_by_license_key.call_args.args[0].status == LicenseStatus.ACTIVE

    async def test_database_failure(self, gateway, license_repo):
        license_repo.upsert_by_license_key = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("db down"))
        )

        with pytest.raises(ProcessingError):
            await gateway.activate("KEY-1", 5)

    async def test_transaction_log_failure_is_tolerated(self, gateway, license_repo):
        license_repo.create_transaction = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("db down"))
        )

        license_row = await gateway.activate("KEY-1", 5)

        assert license_row.id == 9

    async def test_reactivation_by_another_user_takes_over_the_row(
        self, gateway, license_repo
    ):
        rows: dict[str, SimpleNamespace] = {}

        async def upsert(data):
            row = rows.get(data.license_key)
            if row is None:
                row = rows[data.license_key] = SimpleNamespace(id=len(rows) + 1)
            row.__dict__.update(data.model_dump())
            return row

        license_repo.upsert_by_license_key = AsyncMock(side_effect=upsert)

        first = await gateway.activate("KEY-1", 5)
        second = await gateway.activate("KEY-1", 6)

        first_upsert, second_upsert = license_repo.upsert_by_license_key.call_args_list
        assert first_upsert.args[0].user_id == 5
        assert second_upsert.args[0].user_id == 6
        assert second_upsert.args[0].license_key == first_upsert.args[0].license_key
        assert list(rows) == ["KEY-1"]
        assert second.id == first.id
        assert rows["KEY-1"].user_id == 6


class Savepoint:
    def __init__(self, session: "FailingFlushSession"):
        self.session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.session.needs_rollback = False
            self.session.savepoint_rollbacks += 1
        return False


class FailingFlushSession:
    """Session double whose flush fails and which, like AsyncSession, refuses further
    statements until the failed transaction is rolled back."""

    def __init__(self, latest_license):
        self.latest_license = latest_license
        self.needs_rollback = False
        self.savepoint_rollbacks = 0

    def add(self, instance):
        pass

    async def flush(self):
        self.needs_rollback = True
        raise OperationalError("INSERT", {}, Exception("db down"))

    async def execute(self, statement, *args, **kwargs):
        if self.needs_rollback:
            raise PendingRollbackError("This session's transaction has been rolled back")

        result = MagicMock()
        result.scalar_one_or_none.return_value = self.latest_license
        return result

    def begin_nested(self) -> Savepoint:
        return Savepoint(self)


@pytest.mark.anyio
class TestActivateKeepsSessionUsable:
    async def test_failed_transaction_log_is_rolled_back_to_savepoint(self, vendor, clock):
        row = SimpleNamespace(id=9, tier=Tier.PRO, status=LicenseStatus.ACTIVE, expires_at=None)
        session = FailingFlushSession(latest_license=row)
        license_repo = LicenseRepo(session)
        license_repo.upsert_by_license_key = AsyncMock(return_value=row)
        gateway = LicenseGateway(license_repo, vendor, clock=clock)

        assert await gateway.activate("KEY-1", 5) is row

        assert session.savepoint_rollbacks == 1
        assert await license_repo.get_latest_for_user(5) is row


@pytest.mark.anyio
class TestRunExpiryCheck:
    async def test_expires_and_notifies(self, gateway, license_repo, email_service, clock):
        expiring = SimpleNamespace(expires_at=datetime(2025, 3, 21, 9, tzinfo=UTC))
        license_repo.expire_overdue = AsyncMock(return_value=3)
        license_repo.list_expiring = AsyncMock(
            return_value=[(expiring, "a@example.com", "Ann"), (expiring, "b@example.com", "")]
        )
        email_service.send = AsyncMock(side_effect=[True, False])

        report = await gateway.run_expiry_check(email_service)

        assert report.expired_count == 3
        assert report.notified_count == 1
        license_repo.expire_overdue.assert_awaited_once_with(clock.now)
        sent: EmailMessage = email_service.send.call_args_list[0].args[0]
        assert sent.to == "a@example.com"
        assert "March 21, 2025" in sent.html


@pytest.fixture
def user_repo() -> AsyncMock:
    repo = AsyncMock(spec=UserRepo)
    repo.get_by_email = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def verification(gateway, user_repo, email_service, otp_codes, cooldowns, clock):
    issuer = OtpIssuer(LICENSE_OTP, store=otp_codes, cooldowns=cooldowns, clock=clock)
    return LicenseVerificationService(gateway, user_repo, email_service, issuer=issuer)


@pytest.mark.anyio
class TestLicenseVerificationService:
    """Test the license key, emailed code, signup pass sequence."""

    async def test_start_emails_code_to_purchase_address(self, verification, email_service):
        response = await verification.start_verification("KEY-1")

        message: EmailMessage = email_service.send.call_args.args[0]
        assert message.to == "jane@example.com"
        assert response.success == "License valid! Activating Pro (Yearly) subscription."
        assert response.redirect_url.startswith("/verify-license/otp?signature=")
        assert response.signature

    async def test_code_is_never_returned(self, verification, otp_codes):
        response = await verification.start_verification("KEY-1")

        code = otp_codes.codes["otp:KEY-1"]
        assert code not in response.model_dump_json()

    async def test_rejected_key_sends_nothing(self, verification, vendor, email_service):
        vendor.validate = AsyncMock(return_value=VendorValidation(valid=False))

        with pytest.raises(LicenseRejectedError):
            await verification.start_verification("NOPE")

        email_service.send.assert_not_called()

    async def test_verify_returns_signup_pass(self, verification, otp_codes):
        started = await verification.start_verification("KEY-1")

        response = await verification.verify_otp(started.signature, otp_codes.codes["otp:KEY-1"])

        assert response.redirect_url.startswith("/signup?signature=")
        verified = verification.issuer.read_token(response.signature, SignatureStage.VERIFIED)
        assert verified.email == "jane@example.com"

    async def test_wrong_code(self, verification):
        started = await verification.start_verification("KEY-1")

        with pytest.raises(OtpMismatchError):
            await verification.verify_otp(started.signature, "not-the-code")

    async def test_signed_in_caller_is_refused(self, verification, otp_codes):
        started = await verification.start_verification("KEY-1")
        code = otp_codes.codes["otp:KEY-1"]

        with pytest.raises(PermissionDeniedError):
            await verification.verify_otp(started.signature, code, has_session=True)

        assert otp_codes.codes["otp:KEY-1"] == code

    async def test_registered_email_is_refused(self, verification, user_repo, otp_codes):
        user_repo.get_by_email = AsyncMock(return_value=SimpleNamespace(id=1))
        started = await verification.start_verification("KEY-1")
        code = otp_codes.codes["otp:KEY-1"]

        with pytest.raises(DuplicateResourceError):
            await verification.verify_otp(started.signature, code)

        assert otp_codes.codes["otp:KEY-1"] == code

    async def test_resend_sends_new_code(self, verification, email_service, clock):
        started = await verification.start_verification("KEY-1")
        clock.now = clock.now.replace(hour=13)

        response = await verification.resend_otp(started.signature)

        assert email_service.send.await_count == 2
        assert response.signature != started.signature

    async def test_queue_failure_does_not_abort(self, verification, email_service):
        email_service.send = AsyncMock(return_value=False)

        response = await verification.start_verification("KEY-1")

        assert response.signature
