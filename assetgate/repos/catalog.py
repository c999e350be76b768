"""
Per-type catalog queries.

Every content type is served by one :class:`CatalogSource` subclass exposing the same
operations, so callers never look tables or columns up by string. Category matching and
expansion are plain functions over :class:`CategoryNode` lists.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Collection, Iterable, NamedTuple, Sequence

from sqlalchemy import (
    ColumnElement,
    Select,
    Text,
    cast,
    false,
    func,
    literal,
    or_,
    select,
    update,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from assetgate.core.config import settings
from assetgate.core.constants import ContentStatus, ContentType, GradientType, SortBy, Tier
from assetgate.core.utils import slugify
from assetgate.models import (
    CategoryComponent,
    CategoryDesign,
    CategoryGradient,
    CategoryTemplate,
    ContentComponent,
    ContentDesign,
    ContentGradient,
    ContentTemplate,
    User,
)
from assetgate.schemas import CatalogItem

UNCATEGORIZED = "Uncategorized"
FRAMER_TOOLS = ("framer", "react")


@dataclass(frozen=True)
class CategoryNode:
    id: int
    name: str
    parent_id: int | None = None

    @property
    def slug(self) -> str:
        return slugify(self.name)

    def matches(self, slug: str) -> bool:
        """Exact, case-insensitive match on the name or its slug form."""
        wanted = slug.strip().lower()
        return wanted in (self.name.lower(), self.slug)


class Candidate(NamedTuple):
    """Phase-one row of the cross-type listing: enough to sort and page."""

    id: int
    type: ContentType
    created_at: datetime
    count: int


def match_category_ids(categories: Iterable[CategoryNode], slug: str) -> list[int]:
    """Ids of categories whose name contains ``slug`` (case-insensitive)."""
    needle = slug.strip().lower()
    return [
        node.id for node in categories if needle in node.name.lower() or needle in node.slug
    ]


def expand_children(categories: Iterable[CategoryNode], ids: Collection[int]) -> list[int]:
    """
    Add the immediate children of ``ids``. Grandchildren are not included.

    Args:
        categories: All categories of one content type.
        ids: Category ids to expand.

    Returns:
        list[int]: ``ids`` followed by their direct children, without duplicates.
    """
    expanded = list(dict.fromkeys(ids))
    seen = set(expanded)

    for node in categories:
        if node.parent_id in ids and node.id not in seen:
            expanded.append(node.id)
            seen.add(node.id)

    return expanded


def select_category_ids(
    categories: Sequence[CategoryNode],
    parent_slugs: Collection[str],
    sub_slugs: Collection[str],
) -> set[int]:
    """
    Resolve a faceted category selection to category ids.

    Selected sub-categories are kept as they are. A selected parent with none of its
    children selected contributes itself and all its children; a parent with a selected
    child is narrowed to that child.
    """
    parent_ids = [node.id for node in categories if any(node.matches(s) for s in parent_slugs)]
    sub_ids = {node.id for node in categories if any(node.matches(s) for s in sub_slugs)}

    selected = set(sub_ids)
    for parent_id in parent_ids:
        children = [node.id for node in categories if node.parent_id == parent_id]
        if not sub_ids.intersection(children):
            selected.add(parent_id)
            selected.update(children)

    return selected


def tool_condition(column: Any, tool: str) -> ColumnElement[bool]:
    """Case-insensitive tool match; ``framer`` also covers ``react`` exports."""
    wanted = tool.strip().lower()
    if wanted == "framer":
        return func.lower(column).in_(FRAMER_TOOLS)

    return func.lower(column) == wanted


def sort_candidates(candidates: list[Candidate], sort_by: SortBy) -> list[Candidate]:
    """Newest first; ``popular`` orders by counter first and breaks ties by recency."""
    if sort_by == SortBy.POPULAR:
        return sorted(candidates, key=lambda c: (c.count, c.created_at), reverse=True)

    return sorted(candidates, key=lambda c: c.created_at, reverse=True)


class CatalogSource(ABC):
    """Queries for one content type."""

    content_type: ClassVar[ContentType]
    model: ClassVar[Any]
    category_model: ClassVar[Any]
    # Cross-type search filters this type by tool
    facet_tool: ClassVar[bool] = True

    def __init__(self, session: AsyncSession):
        self.session = session

    # ---- column capabilities ----

    @property
    def title_column(self) -> Any:
        return self.model.title

    @property
    def popularity_column(self) -> Any:
        return self.model.download_count

    @property
    def tool_column(self) -> Any | None:
        return self.model.type_content

    @property
    def status_column(self) -> Any | None:
        return self.model.status_content

    # ---- statement builders ----

    def search_condition(self, query: str) -> ColumnElement[bool]:
        pattern = f"%{query.strip()}%"
        author_ids = select(User.id).where(User.name.ilike(pattern))

        return or_(
            self.title_column.ilike(pattern),
            self.model.slug.ilike(pattern),
            cast(self.model.number, Text).ilike(pattern),
            self.model.user_id.in_(author_ids),
        )

    def build_conditions(
        self,
        *,
        category_ids: Collection[int] | None = None,
        tiers: Collection[Tier] = (),
        tool: str | None = None,
        query: str = "",
        created_after: datetime | None = None,
        gradient_types: Collection[GradientType] = (),
        colors: Collection[str] = (),
    ) -> list[ColumnElement[bool]]:
        """
        Conjunctive filters for this type.

        Args:
            category_ids: Allowed category ids; an empty collection matches nothing and
                ``None`` disables the filter.
            tiers: Allowed tiers, all when empty.
            tool: Tool name; ignored by types without a tool column.
            query: Free text matched against title, slug, number and author name.
            created_after: Lower bound on ``created_at``.
            gradient_types: Gradient facet, used by gradients only.
            colors: Color facet, used by gradients only.

        Returns:
            list: SQL conditions to combine with AND.
        """
        conditions: list[ColumnElement[bool]] = []

        if self.status_column is not None:
            conditions.append(self.status_column == ContentStatus.PUBLISHED)

        if tool and self.tool_column is not None:
            conditions.append(tool_condition(self.tool_column, tool))

        if tiers:
            conditions.append(self.model.tier.in_(list(tiers)))

        if query.strip():
            conditions.append(self.search_condition(query))

        if created_after is not None:
            conditions.append(self.model.created_at >= created_after)

        if category_ids is not None:
            if category_ids:
                conditions.append(self.model.category_id.in_(list(category_ids)))
            else:
                conditions.append(false())

        conditions.extend(self.facet_conditions(gradient_types, colors))

        return conditions

    def facet_conditions(
        self, gradient_types: Collection[GradientType], colors: Collection[str]
    ) -> list[ColumnElement[bool]]:
        return []

    def candidate_stmt(self, conditions: Sequence[ColumnElement[bool]]) -> Select:
        return select(
            self.model.id,
            self.model.created_at,
            literal(self.content_type.value).label("type"),
            func.coalesce(self.popularity_column, 0).label("count"),
        ).where(*conditions)

    def count_stmt(self, conditions: Sequence[ColumnElement[bool]]) -> Select:
        return select(func.count()).select_from(self.model).where(*conditions)

    def filtered_stmt(
        self,
        conditions: Sequence[ColumnElement[bool]],
        sort_by: SortBy,
        limit: int,
        offset: int,
    ) -> Select:
        order = (
            (self.popularity_column.desc(), self.model.created_at.desc())
            if sort_by == SortBy.POPULAR
            else (self.model.created_at.desc(),)
        )

        return (
            select(self.model)
            .options(selectinload(self.model.category), selectinload(self.model.author))
            .where(*conditions)
            .order_by(*order, self.model.id.desc())
            .limit(limit)
            .offset(offset)
        )

    def details_stmt(self, ids: Collection[int]) -> Select:
        return (
            select(self.model)
            .options(selectinload(self.model.category), selectinload(self.model.author))
            .where(self.model.id.in_(list(ids)))
        )

    # ---- queries ----

    async def categories(self) -> list[CategoryNode]:
        result = await self.session.execute(
            select(
                self.category_model.id,
                self.category_model.name,
                self.category_model.parent_id,
            ).order_by(self.category_model.created_at.desc())
        )

        return [CategoryNode(id=row.id, name=row.name, parent_id=row.parent_id) for row in result]

    async def category_counts(self) -> dict[int, int]:
        """Published item count per category id."""
        stmt = (
            select(self.model.category_id, func.count())
            .where(self.model.category_id.is_not(None))
            .group_by(self.model.category_id)
        )
        if self.status_column is not None:
            stmt = stmt.where(self.status_column == ContentStatus.PUBLISHED)

        result = await self.session.execute(stmt)

        return {category_id: count for category_id, count in result.all()}

    async def list_candidate_ids(
        self, conditions: Sequence[ColumnElement[bool]]
    ) -> list[Candidate]:
        result = await self.session.execute(self.candidate_stmt(conditions))

        return [
            Candidate(id=row.id, type=self.content_type, created_at=row.created_at, count=row.count)
            for row in result
        ]

    async def query_count(self, conditions: Sequence[ColumnElement[bool]]) -> int:
        result = await self.session.execute(self.count_stmt(conditions))

        return int(result.scalar_one() or 0)

    async def query_filtered(
        self,
        conditions: Sequence[ColumnElement[bool]],
        sort_by: SortBy = SortBy.RECENT,
        limit: int = 12,
        offset: int = 0,
    ) -> list[CatalogItem]:
        result = await self.session.execute(self.filtered_stmt(conditions, sort_by, limit, offset))

        return [self.transform(row) for row in result.scalars().all()]

    async def fetch_details(self, ids: Collection[int]) -> list[CatalogItem]:
        if not ids:
            return []

        result = await self.session.execute(self.details_stmt(ids))

        return [self.transform(row) for row in result.scalars().all()]

    async def get_item(self, item_id: int) -> Any | None:
        result = await self.session.execute(self.details_stmt([item_id]))

        return result.scalars().one_or_none()

    async def increment_popularity(self, item_id: int, auto_commit: bool = True) -> None:
        column = self.popularity_column
        stmt = (
            update(self.model)
            .where(self.model.id == item_id)
            .values({column.key: func.coalesce(column, 0) + 1})
        )
        await self.session.execute(stmt)
        if auto_commit:
            await self.session.commit()

    # ---- shaping ----

    def transform(self, row: Any) -> CatalogItem:
        category = row.category
        author = row.author

        return CatalogItem(
            id=row.id,
            title=self.title_of(row),
            image_url=row.image_url or "",
            category_slug=category.name.lower() if category else UNCATEGORIZED.lower(),
            category_name=category.name if category else UNCATEGORIZED,
            author=author.name if author and author.name else settings.catalog_default_author,
            tier=row.tier,
            type=self.content_type,
            slug=row.slug,
            link=f"/assets/{self.content_type.value}/{row.slug}",
            copy_data=self.copy_data_of(row),
            download_url=getattr(row, "link_download", None) or "",
            count=getattr(row, self.popularity_column.key) or 0,
            created_at=row.created_at,
            **self.extra_fields(row),
        )

    def title_of(self, row: Any) -> str:
        return row.title

    def copy_data_of(self, row: Any) -> str:
        return ""

    def extra_fields(self, row: Any) -> dict[str, Any]:
        return {}


class ComponentSource(CatalogSource):
    content_type = ContentType.COMPONENTS
    model = ContentComponent
    category_model = CategoryComponent

    @property
    def popularity_column(self) -> Any:
        return ContentComponent.copy_count

    def copy_data_of(self, row: Any) -> str:
        return row.copy_component_html or ""


class TemplateSource(CatalogSource):
    content_type = ContentType.TEMPLATES
    model = ContentTemplate
    category_model = CategoryTemplate


class DesignSource(CatalogSource):
    content_type = ContentType.DESIGNS
    model = ContentDesign
    category_model = CategoryDesign
    facet_tool = False

    @property
    def tool_column(self) -> Any:
        return ContentDesign.format


class GradientSource(CatalogSource):
    content_type = ContentType.GRADIENTS
    model = ContentGradient
    category_model = CategoryGradient
    facet_tool = False

    @property
    def title_column(self) -> Any:
        return ContentGradient.name

    @property
    def tool_column(self) -> None:
        return None

    @property
    def status_column(self) -> None:
        return None

    def facet_conditions(
        self, gradient_types: Collection[GradientType], colors: Collection[str]
    ) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []

        if gradient_types:
            conditions.append(ContentGradient.type_gradient.in_(list(gradient_types)))

        if colors:
            colors_text = cast(ContentGradient.colors, Text)
            conditions.append(or_(*(colors_text.ilike(f"%{color}%") for color in colors)))

        return conditions

    def title_of(self, row: Any) -> str:
        return row.name

    def extra_fields(self, row: Any) -> dict[str, Any]:
        return {"colors": list(row.colors or []), "gradient_type": row.type_gradient}


def get_source(content_type: ContentType, session: AsyncSession) -> CatalogSource:
    match content_type:
        case ContentType.COMPONENTS:
            return ComponentSource(session)
        case ContentType.TEMPLATES:
            return TemplateSource(session)
        case ContentType.DESIGNS:
            return DesignSource(session)
        case ContentType.GRADIENTS:
            return GradientSource(session)

    raise ValueError(f"Unknown content type: {content_type}")


def all_sources(session: AsyncSession) -> list[CatalogSource]:
    return [get_source(content_type, session) for content_type in ContentType]
