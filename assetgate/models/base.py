import re
from datetime import datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, func
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    declared_attr,
    mapped_column,
)

from assetgate.core.constants import FieldSizes
from assetgate.core.db import meta


def str_enum(enum_cls: type[StrEnum]) -> Enum:
    """
    Store a StrEnum by value in a VARCHAR column with a CHECK constraint.

    Args:
        enum_cls: The enum class.

    Returns:
        Enum: Column type usable in ``mapped_column``.
    """
    return Enum(
        enum_cls,
        native_enum=False,
        create_constraint=True,
        length=FieldSizes.TINY,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
        name=re.sub(r"(?<!^)(?=[A-Z])", "_", enum_cls.__name__).lower(),
    )


class Base(DeclarativeBase):
    """Base class for all database models"""

    __abstract__ = True

    metadata = meta
    id: Mapped[int] = mapped_column(BigInteger(), autoincrement=True, primary_key=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return re.sub(r"(?<!^)(?=[A-Z])", "_", cls.__name__).lower()
