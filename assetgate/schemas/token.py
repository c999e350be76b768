from assetgate.core.constants import LicenseState, Role, Tier
from assetgate.schemas.base import BaseSchema


class Token(BaseSchema):
    """Token response schema"""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str | None = None

    def __str__(self):
        return self.token_type + " " + self.access_token


class TokenPayload(BaseSchema):
    """Token payload for refresh token"""

    refresh_token: str


class SessionClaims(BaseSchema):
    """Claims embedded in every session token and re-derived on refresh"""

    user_id: int
    role: Role = Role.USER
    tier: Tier = Tier.FREE
    email_verified: bool = False
    license_status: LicenseState = LicenseState.NONE

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)
