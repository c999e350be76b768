from assetgate.core.exceptions.base import CustomException

# =============================================================================
# Generic Domain Exceptions (raised by Services, caught by Deps)
# =============================================================================


class ValidationError(CustomException):
    """Business rule validation failure."""

    def __init__(self, message: str = "Validation failed", exception: Exception | None = None):
        super().__init__(message, exception)


class AuthenticationError(CustomException):
    """Credentials or session token could not be verified."""

    def __init__(
        self, message: str = "Could not validate credentials", exception: Exception | None = None
    ):
        super().__init__(message, exception)


class PermissionDeniedError(CustomException):
    """Caller is known but not allowed to perform the action."""

    def __init__(self, message: str = "Permission denied", exception: Exception | None = None):
        super().__init__(message, exception)


class ResourceNotFoundError(CustomException):
    """Requested resource does not exist."""

    def __init__(self, message: str = "Resource not found", exception: Exception | None = None):
        super().__init__(message, exception)


class ProcessingError(CustomException):
    """Error during business logic processing."""

    def __init__(self, message: str = "Processing failed", exception: Exception | None = None):
        super().__init__(message, exception)


class DuplicateResourceError(CustomException):
    """Attempted to create a resource that already exists."""

    def __init__(
        self, message: str = "Resource already exists", exception: Exception | None = None
    ):
        super().__init__(message, exception)


class UpstreamServiceError(CustomException):
    """An external dependency failed; the operation may be retried."""

    def __init__(
        self, message: str = "Upstream service unavailable", exception: Exception | None = None
    ):
        super().__init__(message, exception)
