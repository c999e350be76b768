import pytest

from assetgate.api.v1.deps.errors import to_http_exception
from assetgate.core.exceptions.base import CustomException
from assetgate.core.exceptions.domain import (
    AuthenticationError,
    DuplicateResourceError,
    PermissionDeniedError,
    ProcessingError,
    ResourceNotFoundError,
    ValidationError,
)
from assetgate.core.exceptions.license_vendor import (
    LicenseForbiddenError,
    LicenseRejectedError,
    LicenseVendorUnavailableError,
)
from assetgate.core.exceptions.rate_limiter import (
    DownloadQuotaExceededError,
    OtpCooldownActiveError,
    OtpDailyLimitError,
)
from assetgate.core.exceptions.verification import (
    OtpMismatchError,
    OtpStoreUnavailableError,
    SignatureExpiredError,
)


class TestToHttpException:
    """Test translation of domain exceptions into HTTP errors."""

    @pytest.mark.parametrize(
        "exc,status_code",
        [
            (ValidationError("bad"), 400),
            (SignatureExpiredError("expired"), 400),
            (OtpMismatchError("wrong"), 400),
            (LicenseRejectedError("rejected"), 400),
            (AuthenticationError("who"), 401),
            (PermissionDeniedError("no"), 403),
            (LicenseForbiddenError("not ours"), 403),
            (ResourceNotFoundError("gone"), 404),
            (DuplicateResourceError("twice"), 409),
            (OtpDailyLimitError(), 429),
            (OtpStoreUnavailableError("down"), 503),
            (LicenseVendorUnavailableError("down"), 503),
            (ProcessingError("broken"), 500),
        ],
    )
    def test_status_codes(self, exc, status_code):
        http_exc = to_http_exception(exc)

        assert http_exc.status_code == status_code
        assert http_exc.detail == exc.message

    def test_unauthorized_carries_challenge(self):
        http_exc = to_http_exception(AuthenticationError("who"))

        assert http_exc.headers == {"WWW-Authenticate": "Bearer"}

    def test_cooldown_sets_retry_after(self):
        http_exc = to_http_exception(OtpCooldownActiveError(retry_after=120))

        assert http_exc.headers == {"Retry-After": "120"}
        assert "120 seconds" in http_exc.detail

    def test_download_quota_headers(self):
        http_exc = to_http_exception(DownloadQuotaExceededError(limit=5))

        assert http_exc.status_code == 429
        assert http_exc.headers == {"X-RateLimit-Limit": "5", "X-RateLimit-Remaining": "0"}

    def test_unmapped_exception_hides_message(self):
        http_exc = to_http_exception(CustomException("secret detail"))

        assert http_exc.status_code == 500
        assert http_exc.detail == "Internal server error"
