from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from assetgate.core.constants import FieldSizes, InviteStatus, Role
from assetgate.models.base import Base, str_enum


class Invite(Base):
    email: Mapped[str] = mapped_column(String(FieldSizes.EMAIL), unique=True, nullable=False)
    role: Mapped[Role] = mapped_column(str_enum(Role), nullable=False)
    token: Mapped[str] = mapped_column(String(FieldSizes.TOKEN), unique=True, nullable=False)
    inviter_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[InviteStatus] = mapped_column(
        str_enum(InviteStatus),
        nullable=False,
        default=InviteStatus.PENDING,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
