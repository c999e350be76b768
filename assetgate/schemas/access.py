from assetgate.core.constants import Role, Tier
from assetgate.schemas.base import BaseSchema


class AccessDecisionResponse(BaseSchema):
    """Outcome of the page access policy for one path"""

    allowed: bool
    redirect_url: str | None = None
    logged_in: bool = False
    role: Role | None = None
    tier: Tier | None = None


class ExpiryReport(BaseSchema):
    expired_count: int
    notified_count: int
