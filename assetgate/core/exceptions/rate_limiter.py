from assetgate.core.exceptions.base import CustomException


class RateLimiterException(CustomException):
    """
    Base exception for Rate Limiter
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class RateLimitExceeded(RateLimiterException):
    """
    Rate limit exceeded for a key
    """

    def __init__(
        self,
        message,
        retry_after: int | None = None,
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
        self.retry_after = retry_after


class OtpCooldownActiveError(RateLimitExceeded):
    """
    A new code was requested before the backoff cooldown elapsed
    """

    def __init__(self, retry_after: int, exception: Exception | None = None):
        super().__init__(
            f"Please wait {retry_after} seconds before requesting a new code.",
            retry_after=retry_after,
            exception=exception,
        )


class OtpDailyLimitError(RateLimitExceeded):
    """
    The daily number of code sends for an identity is used up
    """

    def __init__(self, retry_after: int | None = None, exception: Exception | None = None):
        super().__init__(
            "Daily limit reached. Please try again tomorrow.",
            retry_after=retry_after,
            exception=exception,
        )


class DownloadQuotaExceededError(RateLimitExceeded):
    """
    Free-tier download/copy allowance is used up
    """

    def __init__(self, limit: int, exception: Exception | None = None):
        super().__init__(
            f"You have reached the free limit of {limit} downloads. "
            "Upgrade to Pro for unlimited access.",
            exception=exception,
        )
        self.limit = limit


class RateLimitConfigurationError(RateLimiterException):
    """
    Invalid rate limit configuration
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)
