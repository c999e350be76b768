from assetgate.core.exceptions.domain import UpstreamServiceError, ValidationError


class SignatureInvalidError(ValidationError):
    """
    Signed link failed its integrity check, was issued for another flow, or is malformed
    """

    def __init__(
        self, message: str = "Invalid verification link.", exception: Exception | None = None
    ):
        super().__init__(message, exception)


class SignatureExpiredError(ValidationError):
    """
    Signed link is authentic but past its expiry
    """

    def __init__(
        self, message: str = "Verification link has expired.", exception: Exception | None = None
    ):
        super().__init__(message, exception)


class OtpNotFoundError(ValidationError):
    """
    No live code is stored for the identity (never issued, consumed or expired)
    """

    def __init__(
        self, message: str = "OTP has expired or is invalid.", exception: Exception | None = None
    ):
        super().__init__(message, exception)


class OtpMismatchError(ValidationError):
    """
    Submitted code differs from the stored one; the stored code is kept
    """

    def __init__(self, message: str = "Incorrect OTP code.", exception: Exception | None = None):
        super().__init__(message, exception)


class OtpStoreUnavailableError(UpstreamServiceError):
    """
    Code storage could not be reached; verification fails closed
    """

    def __init__(
        self,
        message: str = "Verification service is temporarily unavailable. Please try again.",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
