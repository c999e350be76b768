from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from assetgate.core.constants import FieldSizes, Role
from assetgate.models.base import Base, str_enum


class User(Base):
    """Account; invited users exist without a password until they accept"""

    name: Mapped[str] = mapped_column(String(FieldSizes.NAME), nullable=False)
    email: Mapped[str] = mapped_column(
        String(FieldSizes.EMAIL),
        unique=True,
        index=True,
        nullable=False,
    )
    hashed_password: Mapped[Optional[str]] = mapped_column(
        String(FieldSizes.PASSWORD_HASH),
        nullable=True,
    )
    role_user: Mapped[Role] = mapped_column(
        str_enum(Role),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER.value,
    )
    email_verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(FieldSizes.URL), nullable=True)
