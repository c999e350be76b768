from typing import Sequence

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.ext.asyncio import AsyncSession

from assetgate.models import Invite
from assetgate.repos.base import BaseRepository
from assetgate.schemas import InviteUpdate, InviteUpsert


def upsert_invite_stmt(data: InviteUpsert) -> Insert:
    """One invite per email; re-inviting refreshes token, role and expiry."""
    stmt = insert(Invite).values(**data.model_dump())

    return stmt.on_conflict_do_update(
        index_elements=[Invite.email],
        set_={
            "role": stmt.excluded.role,
            "token": stmt.excluded.token,
            "inviter_id": stmt.excluded.inviter_id,
            "status": stmt.excluded.status,
            "expires_at": stmt.excluded.expires_at,
        },
    )


class InviteRepo(BaseRepository[Invite, InviteUpsert, InviteUpdate]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Invite)

    async def upsert(self, data: InviteUpsert, auto_commit: bool = True) -> Invite:
        result = await self.session.scalars(
            upsert_invite_stmt(data).returning(Invite),
            execution_options={"populate_existing": True},
        )
        invite = result.one()
        if auto_commit:
            await self.session.commit()

        return invite

    async def get_by_email(self, email: str) -> Invite | None:
        result = await self.session.execute(select(Invite).where(Invite.email == email))

        return result.scalar_one_or_none()

    async def list_recent(self, limit: int = 100, offset: int = 0) -> Sequence[Invite]:
        result = await self.session.execute(
            select(Invite).order_by(Invite.created_at.desc()).limit(limit).offset(offset)
        )

        return result.scalars().all()
