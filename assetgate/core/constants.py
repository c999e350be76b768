from enum import StrEnum
from typing import NamedTuple


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class Tier(StrEnum):
    FREE = "free"
    PRO = "pro"
    PRO_PLUS = "pro_plus"


class PlanType(StrEnum):
    SUBSCRIBE = "subscribe"
    ONE_TIME = "one_time"


class LicenseStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    DISABLED = "disabled"


class LicenseState(StrEnum):
    """License status as exposed in session claims."""

    ACTIVE = "active"
    EXPIRED = "expired"
    NONE = "none"


class TransactionType(StrEnum):
    ACTIVATION = "activation"
    RENEWAL = "renewal"
    EXPIRATION = "expiration"


class TransactionStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class InviteStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ContentType(StrEnum):
    COMPONENTS = "components"
    TEMPLATES = "templates"
    DESIGNS = "designs"
    GRADIENTS = "gradients"


class ContentStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class GradientType(StrEnum):
    LINEAR = "linear"
    RADIAL = "radial"
    CONIC = "conic"


class SortBy(StrEnum):
    RECENT = "recent"
    POPULAR = "popular"


class AssetAction(StrEnum):
    COPY = "copy"
    DOWNLOAD = "download"


PAID_TIERS = frozenset({Tier.PRO, Tier.PRO_PLUS})
STAFF_ROLES = frozenset({Role.ADMIN, Role.SUPERADMIN})
TIER_RANK = {Tier.FREE: 0, Tier.PRO: 1, Tier.PRO_PLUS: 2}


class LicenseVariant(NamedTuple):
    tier: Tier
    plan_type: PlanType
    label: str


# Lemon Squeezy variant id -> plan granted by that variant
LICENSE_VARIANTS: dict[int, LicenseVariant] = {
    993285: LicenseVariant(Tier.PRO, PlanType.SUBSCRIBE, "Pro (Yearly)"),
    993311: LicenseVariant(Tier.PRO, PlanType.SUBSCRIBE, "Pro (Monthly)"),
    993308: LicenseVariant(Tier.PRO, PlanType.ONE_TIME, "Pro (Lifetime)"),
}

# Amount recorded when the vendor order total cannot be fetched (minor units)
FALLBACK_PLAN_PRICES: dict[PlanType, int] = {
    PlanType.ONE_TIME: 500000,
    PlanType.SUBSCRIBE: 150000,
}


class RateLimitPrefix:
    """
    Centralized registry of all rate limit key prefixes.

    All rate limit keys follow the pattern: ratelimit:{category}:{identifier}
    where identifier is typically an IP address or user ID.

    Example:
        ```python
        from assetgate.core.constants import RateLimitPrefix

        key = f"{RateLimitPrefix.AUTH}{ip_address}"
        # Result: "ratelimit:auth:192.168.1.1"
        ```
    """

    # Authentication endpoints (login, register, password reset)
    AUTH = "ratelimit:auth:"

    # Authenticated user endpoints
    USER = "ratelimit:user:"

    # General API endpoints (moderate limits)
    API = "ratelimit:api:"

    # Public endpoints (lenient limits for read-only operations)
    PUBLIC = "ratelimit:public:"

    # License verification steps
    LICENSE = "ratelimit:license:"

    # Catalog search queries
    SEARCH = "ratelimit:search:"

    @classmethod
    def all_prefixes(cls) -> set[str]:
        """
        Get all registered prefixes for validation.

        Returns:
            set[str]: Set of all registered rate limit prefixes
        """
        return {
            value
            for key, value in cls.__dict__.items()
            if isinstance(value, str) and value.startswith("ratelimit:")
        }

    @classmethod
    def validate_prefix(cls, prefix: str) -> None:
        """
        Validate that a prefix doesn't conflict with existing ones.

        Args:
            prefix: The prefix to validate (should include "ratelimit:" and trailing ":")

        Raises:
            ValueError: If prefix already exists in the registry
        """
        if prefix in cls.all_prefixes():
            raise ValueError(
                f"Rate limit prefix '{prefix}' is already registered. "
                f"Existing prefixes: {cls.all_prefixes()}"
            )


class RedisKeyPrefix:
    """Key prefixes for verification state kept in Redis."""

    LICENSE_OTP = "otp:"
    PASSWORD_RESET_OTP = "password-reset-otp:"
    EMAIL_VERIFY_OTP = "email-verify-otp:"
    INVITE_OTP = "invite-otp:"
    OTP_COOLDOWN = "otp-cooldown:"
    DOWNLOAD_LIMIT_USER = "limit:user:"
    DOWNLOAD_LIMIT_IP = "limit:ip:"
    CATEGORY_TREE = "catalog:categories:"


class FieldSizes:
    # Common string lengths
    TINY = 20
    SHORT = 50
    MEDIUM = 255
    LONG = 1000

    # Specific field sizes
    EMAIL = MEDIUM
    NAME = MEDIUM
    PASSWORD = 128
    PASSWORD_HASH = LONG
    LICENSE_KEY = 128
    TOKEN = 128
    SLUG = MEDIUM
    URL = LONG
