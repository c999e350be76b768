from datetime import datetime
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from assetgate.core.constants import (
    FieldSizes,
    LicenseStatus,
    PlanType,
    Tier,
    TransactionStatus,
    TransactionType,
)
from assetgate.models.base import Base, str_enum


class License(Base):
    """Vendor license bound to a user; the newest row per user is authoritative"""

    user_id: Mapped[int] = mapped_column(
        BigInteger(),
        ForeignKey("user.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    license_key: Mapped[str] = mapped_column(
        String(FieldSizes.LICENSE_KEY),
        unique=True,
        nullable=False,
    )
    status: Mapped[LicenseStatus] = mapped_column(str_enum(LicenseStatus), nullable=False)
    tier: Mapped[Tier] = mapped_column(str_enum(Tier), nullable=False, default=Tier.FREE)
    plan_type: Mapped[PlanType] = mapped_column(str_enum(PlanType), nullable=False)
    variant_id: Mapped[Optional[int]] = mapped_column(BigInteger(), nullable=True)
    order_id: Mapped[Optional[int]] = mapped_column(BigInteger(), nullable=True)
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)


class LicenseTransaction(Base):
    """Bookkeeping entry written after a license activation or lifecycle change"""

    user_id: Mapped[int] = mapped_column(
        BigInteger(),
        ForeignKey("user.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    license_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(),
        ForeignKey("license.id", ondelete="SET NULL"),
        nullable=True,
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        str_enum(TransactionType),
        nullable=False,
    )
    status: Mapped[TransactionStatus] = mapped_column(str_enum(TransactionStatus), nullable=False)
    amount: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    # "metadata" is reserved on declarative classes
    details: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSONB, nullable=True)
