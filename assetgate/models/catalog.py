from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assetgate.core.constants import ContentStatus, FieldSizes, GradientType, Tier
from assetgate.models.base import Base, str_enum
from assetgate.models.user import User


class CategoryMixin:
    """One-level category tree; a row with ``parent_id`` is a sub-category"""

    name: Mapped[str] = mapped_column(String(FieldSizes.NAME), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(FieldSizes.URL), nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(BigInteger(), nullable=True)


class ContentMixin:
    """Columns shared by every content table"""

    slug: Mapped[str] = mapped_column(String(FieldSizes.SLUG), index=True, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(FieldSizes.URL), nullable=True)
    tier: Mapped[Tier] = mapped_column(str_enum(Tier), nullable=False, default=Tier.FREE)
    number: Mapped[Optional[int]] = mapped_column(Integer(), nullable=True)
    view_count: Mapped[int] = mapped_column(
        Integer(), nullable=False, default=0, server_default="0"
    )


class CategoryComponent(CategoryMixin, Base):
    parent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_component.id", ondelete="SET NULL"), nullable=True
    )


class CategoryTemplate(CategoryMixin, Base):
    parent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_template.id", ondelete="SET NULL"), nullable=True
    )


class CategoryDesign(CategoryMixin, Base):
    parent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_design.id", ondelete="SET NULL"), nullable=True
    )


class CategoryGradient(CategoryMixin, Base):
    parent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_gradient.id", ondelete="SET NULL"), nullable=True
    )


class ContentComponent(ContentMixin, Base):
    title: Mapped[str] = mapped_column(String(FieldSizes.NAME), nullable=False)
    copy_component_html: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    type_content: Mapped[str] = mapped_column(String(FieldSizes.SHORT), nullable=False)
    status_content: Mapped[ContentStatus] = mapped_column(
        str_enum(ContentStatus), nullable=False, default=ContentStatus.DRAFT
    )
    copy_count: Mapped[int] = mapped_column(
        Integer(), nullable=False, default=0, server_default="0"
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_component.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )

    category: Mapped[Optional[CategoryComponent]] = relationship()
    author: Mapped[Optional[User]] = relationship()


class ContentTemplate(ContentMixin, Base):
    title: Mapped[str] = mapped_column(String(FieldSizes.NAME), nullable=False)
    type_content: Mapped[str] = mapped_column(String(FieldSizes.SHORT), nullable=False)
    status_content: Mapped[ContentStatus] = mapped_column(
        str_enum(ContentStatus), nullable=False, default=ContentStatus.DRAFT
    )
    link_download: Mapped[Optional[str]] = mapped_column(String(FieldSizes.URL), nullable=True)
    download_count: Mapped[int] = mapped_column(
        Integer(), nullable=False, default=0, server_default="0"
    )
    size: Mapped[Optional[str]] = mapped_column(String(FieldSizes.SHORT), nullable=True)
    format: Mapped[Optional[str]] = mapped_column(String(FieldSizes.SHORT), nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_template.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )

    category: Mapped[Optional[CategoryTemplate]] = relationship()
    author: Mapped[Optional[User]] = relationship()


class ContentDesign(ContentMixin, Base):
    title: Mapped[str] = mapped_column(String(FieldSizes.NAME), nullable=False)
    # Design tool (figma, framer, ...)
    format: Mapped[str] = mapped_column(String(FieldSizes.SHORT), nullable=False)
    status_content: Mapped[ContentStatus] = mapped_column(
        str_enum(ContentStatus), nullable=False, default=ContentStatus.DRAFT
    )
    link_download: Mapped[Optional[str]] = mapped_column(String(FieldSizes.URL), nullable=True)
    download_count: Mapped[int] = mapped_column(
        Integer(), nullable=False, default=0, server_default="0"
    )
    size: Mapped[Optional[str]] = mapped_column(String(FieldSizes.SHORT), nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_design.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )

    category: Mapped[Optional[CategoryDesign]] = relationship()
    author: Mapped[Optional[User]] = relationship()


class ContentGradient(ContentMixin, Base):
    """Gradients are always public; they carry no status and no tool"""

    name: Mapped[str] = mapped_column(String(FieldSizes.NAME), nullable=False)
    colors: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    type_gradient: Mapped[GradientType] = mapped_column(
        str_enum(GradientType), nullable=False, default=GradientType.LINEAR
    )
    link_download: Mapped[Optional[str]] = mapped_column(String(FieldSizes.URL), nullable=True)
    download_count: Mapped[int] = mapped_column(
        Integer(), nullable=False, default=0, server_default="0"
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("category_gradient.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger(), ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )

    category: Mapped[Optional[CategoryGradient]] = relationship()
    author: Mapped[Optional[User]] = relationship()
