from datetime import datetime
from typing import Annotated

from pydantic import ConfigDict, Field

from assetgate.core.constants import AssetAction, ContentType, GradientType, SortBy, Tier
from assetgate.schemas.base import BaseSchema

PageLimit = Annotated[int, Field(ge=1, le=100)]


class _QuerySchema(BaseSchema):
    # Unknown query parameters from the frontend are tolerated
    model_config = ConfigDict(extra="ignore")


class ItemQuery(_QuerySchema):
    """Single-type listing used by the infinite-scroll pages"""

    category_slug: str = "all"
    limit: PageLimit = 12
    offset: Annotated[int, Field(ge=0)] = 0
    content_type: ContentType = ContentType.COMPONENTS
    tiers: list[Tier] = []
    tool: str = "figma"
    sort_by: SortBy = SortBy.RECENT
    q: str = ""


class AssetFilters(_QuerySchema):
    """Faceted search across one or all content types"""

    tool: str | None = None
    content_type: ContentType | None = None
    category_slugs: list[str] = []
    sub_category_slugs: list[str] = []
    tiers: list[Tier] = []
    gradient_types: list[GradientType] = []
    colors: list[str] = []
    q: str = ""
    sort_by: SortBy = SortBy.RECENT
    page: Annotated[int, Field(ge=1)] = 1
    limit: PageLimit = 12
    offset: Annotated[int | None, Field(ge=0)] = None

    @property
    def start(self) -> int:
        return self.offset if self.offset is not None else (self.page - 1) * self.limit


class CatalogItem(BaseSchema):
    id: int
    title: str
    image_url: str = ""
    category_slug: str
    category_name: str
    author: str
    tier: Tier
    type: ContentType
    slug: str
    link: str
    copy_data: str = ""
    download_url: str = ""
    count: int = 0
    created_at: datetime
    colors: list[str] | None = None
    gradient_type: GradientType | None = None


class CatalogPage(BaseSchema):
    items: list[CatalogItem]
    total_count: int


class CategoryNodeResponse(BaseSchema):
    id: int
    name: str
    slug: str
    count: int = 0
    children: list["CategoryNodeResponse"] = []


class CategoryTree(BaseSchema):
    content_type: ContentType
    categories: list[CategoryNodeResponse]


class AssetActionResult(BaseSchema):
    action: AssetAction
    content_type: ContentType
    item_id: int
    copy_data: str | None = None
    download_url: str | None = None
    remaining: int | None = None
