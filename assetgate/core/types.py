from typing import TypedDict


class TokenPairDict(TypedDict):
    """Internal token pair data passed between auth functions."""

    access_token: str
    refresh_token: str


class TokenWithJtiDict(TypedDict):
    """Token with its JTI for revocation tracking."""

    token: str
    jti: str


class RateLimitInfoDict(TypedDict):
    """Rate limit information for headers."""

    limit: int
    remaining: int
    reset_time: int
    window: int


class ExpiryReportDict(TypedDict):
    """Outcome of a license expiry sweep."""

    expired_count: int
    notified_count: int
