from assetgate.core.exceptions.base import CustomException


class LicenseVendorException(CustomException):
    """
    Exception related to license vendor operations
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class LicenseVendorUnavailableError(LicenseVendorException):
    """
    Exception raised when the vendor API cannot be reached or answers with a server error
    """

    def __init__(
        self,
        message="License service is unavailable. Please try again later.",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class LicenseRejectedError(LicenseVendorException):
    """
    Exception raised when the vendor reports the key as invalid or not activatable
    """

    def __init__(
        self,
        message="Invalid license key.",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class LicenseForbiddenError(LicenseVendorException):
    """
    Exception raised when the key is valid but not usable for this product
    """

    def __init__(
        self,
        message="This license key is not valid for this product.",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
