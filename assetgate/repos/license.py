from datetime import datetime
from typing import Sequence

from sqlalchemy import Select, Update, and_, func, select, update
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.ext.asyncio import AsyncSession

from assetgate.core.constants import LicenseStatus, PlanType
from assetgate.models import License, LicenseTransaction, User
from assetgate.repos.base import BaseRepository
from assetgate.schemas import LicenseTransactionCreate, LicenseUpdate, LicenseUpsert

# Columns overwritten when an existing license key is activated again
UPSERT_COLUMNS = (
    "user_id",
    "status",
    "tier",
    "plan_type",
    "variant_id",
    "order_id",
    "activated_at",
    "expires_at",
)


def upsert_license_stmt(data: LicenseUpsert) -> Insert:
    """INSERT ... ON CONFLICT (license_key) DO UPDATE, so a key maps to exactly one row."""
    stmt = insert(License).values(**data.model_dump())

    return stmt.on_conflict_do_update(
        index_elements=[License.license_key],
        set_={
            **{column: stmt.excluded[column] for column in UPSERT_COLUMNS},
            "updated_at": func.now(),
        },
    )


def latest_license_stmt(user_id: int) -> Select[tuple[License]]:
    return (
        select(License)
        .where(License.user_id == user_id)
        .order_by(License.created_at.desc(), License.id.desc())
        .limit(1)
    )


def expire_overdue_stmt(now: datetime) -> Update:
    """Flip active licenses whose expiry already passed to ``expired``."""
    return (
        update(License)
        .where(
            License.status == LicenseStatus.ACTIVE,
            License.expires_at.is_not(None),
            License.expires_at < now,
        )
        .values(status=LicenseStatus.EXPIRED, updated_at=func.now())
    )


def expiring_subscriptions_stmt(
    start: datetime, end: datetime
) -> Select[tuple[License, str, str]]:
    """Active subscriptions expiring in ``[start, end)`` with the owner's email and name."""
    return (
        select(License, User.email, User.name)
        .join(User, User.id == License.user_id)
        .where(
            and_(
                License.status == LicenseStatus.ACTIVE,
                License.plan_type == PlanType.SUBSCRIBE,
                License.expires_at >= start,
                License.expires_at < end,
            )
        )
        .order_by(License.expires_at)
    )


class LicenseRepo(BaseRepository[License, LicenseUpsert, LicenseUpdate]):
    def __init__(self, session: AsyncSession):
        """License and license transaction persistence"""
        super().__init__(session, License)

    async def upsert_by_license_key(self, data: LicenseUpsert, auto_commit: bool = True) -> License:
        """
        Insert a license or take over the existing row with the same key.

        Args:
            data (LicenseUpsert): Values from the vendor activation.
            auto_commit (bool): Whether to commit the transaction.

        Returns:
            License: The inserted or updated row.
        """
        stmt = upsert_license_stmt(data).returning(License)
        result = await self.session.scalars(
            stmt, execution_options={"populate_existing": True}
        )
        license_row = result.one()
        if auto_commit:
            await self.session.commit()

        return license_row

    async def get_latest_for_user(self, user_id: int) -> License | None:
        result = await self.session.execute(latest_license_stmt(user_id))

        return result.scalar_one_or_none()

    async def create_transaction(
        self, data: LicenseTransactionCreate, auto_commit: bool = True
    ) -> LicenseTransaction:
        transaction = LicenseTransaction(**data.model_dump())
        self.session.add(transaction)
        await self.session.flush()
        if auto_commit:
            await self.session.commit()

        return transaction

    async def expire_overdue(self, now: datetime, auto_commit: bool = True) -> int:
        result = await self.session.execute(expire_overdue_stmt(now))
        if auto_commit:
            await self.session.commit()

        return result.rowcount

    async def list_expiring(
        self, start: datetime, end: datetime
    ) -> Sequence[tuple[License, str, str]]:
        result = await self.session.execute(expiring_subscriptions_stmt(start, end))

        return [(row[0], row[1], row[2]) for row in result.all()]
