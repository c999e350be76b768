from datetime import datetime
from typing import Callable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from assetgate.core.constants import LicenseState, LicenseStatus, Role, Tier
from assetgate.core.signature import utc_now
from assetgate.models import License
from assetgate.repos import LicenseRepo, UserRepo
from assetgate.schemas import SessionClaims


def is_honored(license_row: License | None, now: datetime) -> bool:
    """A license grants its tier only while active and not past its expiry."""
    if license_row is None or license_row.status != LicenseStatus.ACTIVE:
        return False

    return license_row.expires_at is None or license_row.expires_at > now


def effective_tier(license_row: License | None, now: datetime) -> Tier:
    return Tier(license_row.tier) if is_honored(license_row, now) else Tier.FREE


def license_state(license_row: License | None, now: datetime) -> LicenseState:
    if license_row is None:
        return LicenseState.NONE

    return LicenseState.ACTIVE if is_honored(license_row, now) else LicenseState.EXPIRED


class TierResolver:
    """
    Re-derives role and tier for a session on every refresh.

    A storage failure never propagates: the previous claims are kept, or the least
    privileged claims are used when there are none.
    """

    def __init__(
        self,
        user_repo: UserRepo,
        license_repo: LicenseRepo,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.user_repo = user_repo
        self.license_repo = license_repo
        self.clock = clock

    async def resolve(
        self, user_id: int, previous: SessionClaims | None = None
    ) -> SessionClaims | None:
        """
        Build fresh session claims for ``user_id``.

        Args:
            user_id: The session's user
            previous: Claims of the token being refreshed, used as fallback

        Returns:
            SessionClaims | None: Fresh claims, or None when the user no longer exists
        """
        try:
            async with self.license_repo.savepoint():
                user = await self.user_repo.get_by_id(user_id)
                license_row = (
                    await self.license_repo.get_latest_for_user(user_id) if user else None
                )
        except (SQLAlchemyError, OSError):
            logger.exception(f"Tier lookup failed for user {user_id}, keeping previous claims")
            return previous or SessionClaims(user_id=user_id, role=Role.USER, tier=Tier.FREE)

        if user is None:
            return None

        now = self.clock()

        return SessionClaims(
            user_id=user_id,
            role=Role(user.role_user),
            tier=effective_tier(license_row, now),
            email_verified=user.email_verified_at is not None,
            license_status=license_state(license_row, now),
        )
