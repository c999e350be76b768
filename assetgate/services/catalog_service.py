from datetime import datetime, timedelta
from typing import Callable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assetgate.core.config import settings
from assetgate.core.constants import (
    TIER_RANK,
    AssetAction,
    ContentStatus,
    ContentType,
    RedisKeyPrefix,
    Tier,
)
from assetgate.core.exceptions.domain import (
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from assetgate.core.exceptions.rate_limiter import DownloadQuotaExceededError
from assetgate.core.signature import utc_now
from assetgate.repos.catalog import (
    Candidate,
    CatalogSource,
    CategoryNode,
    all_sources,
    expand_children,
    get_source,
    match_category_ids,
    select_category_ids,
    sort_candidates,
)
from assetgate.schemas import (
    AssetActionResult,
    AssetFilters,
    CatalogItem,
    CatalogPage,
    CategoryNodeResponse,
    CategoryTree,
    ItemQuery,
    SessionClaims,
)
from assetgate.services.cache.download_quota import DownloadQuota, download_quota
from assetgate.services.cache.manager import CacheManager, cache_manager

NEW_CATEGORY = "new"
ALL_CATEGORIES = "all"


def allowed_action(content_type: ContentType) -> AssetAction:
    """Components are copied, every other type is downloaded."""
    return AssetAction.COPY if content_type == ContentType.COMPONENTS else AssetAction.DOWNLOAD


def tier_reaches(tier: Tier, required: Tier) -> bool:
    return TIER_RANK[tier] >= TIER_RANK[required]


def build_tree(
    nodes: list[CategoryNode], counts: dict[int, int]
) -> list[CategoryNodeResponse]:
    """
    One-level category tree; a root's count includes the items of its children.
    """
    children: dict[int, list[CategoryNodeResponse]] = {}
    for node in nodes:
        if node.parent_id is not None:
            children.setdefault(node.parent_id, []).append(
                CategoryNodeResponse(
                    id=node.id, name=node.name, slug=node.slug, count=counts.get(node.id, 0)
                )
            )

    roots = []
    for node in nodes:
        if node.parent_id is not None:
            continue
        subs = children.get(node.id, [])
        roots.append(
            CategoryNodeResponse(
                id=node.id,
                name=node.name,
                slug=node.slug,
                count=counts.get(node.id, 0) + sum(sub.count for sub in subs),
                children=subs,
            )
        )

    return roots


class CatalogService:
    """
    Listing, faceted search and gated copy/download of catalog assets.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: CacheManager = cache_manager,
        quota: DownloadQuota = download_quota,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.cache = cache
        self.quota = quota
        self.clock = clock

    def source(self, content_type: ContentType) -> CatalogSource:
        return get_source(content_type, self.session)

    async def fetch_items(self, query: ItemQuery) -> CatalogPage:
        """
        One page of a single content type.

        A category slug other than ``all`` selects every category whose name contains it,
        plus their immediate children.

        Args:
            query: Listing parameters

        Returns:
            CatalogPage: Items of the page and the total count of the filter
        """
        source = self.source(query.content_type)

        category_ids = None
        if query.category_slug and query.category_slug.lower() != ALL_CATEGORIES:
            categories = await source.categories()
            matched = match_category_ids(categories, query.category_slug)
            if not matched:
                return CatalogPage(items=[], total_count=0)
            category_ids = expand_children(categories, matched)

        conditions = source.build_conditions(
            category_ids=category_ids,
            tiers=query.tiers,
            tool=query.tool,
            query=query.q,
        )
        items = await source.query_filtered(
            conditions, sort_by=query.sort_by, limit=query.limit, offset=query.offset
        )
        total = await source.query_count(conditions)

        return CatalogPage(items=items, total_count=total)

    async def _candidates(self, source: CatalogSource, filters: AssetFilters) -> list[Candidate]:
        parent_slugs = [s for s in filters.category_slugs if s.lower() != NEW_CATEGORY]
        sub_slugs = [s for s in filters.sub_category_slugs if s.lower() != NEW_CATEGORY]
        wants_new = len(parent_slugs) != len(filters.category_slugs) or len(sub_slugs) != len(
            filters.sub_category_slugs
        )

        category_ids = None
        if parent_slugs or sub_slugs:
            categories = await source.categories()
            category_ids = select_category_ids(categories, parent_slugs, sub_slugs)

        created_after = None
        if wants_new:
            created_after = self.clock() - timedelta(days=settings.catalog_new_window_days)

        conditions = source.build_conditions(
            category_ids=category_ids,
            tiers=filters.tiers,
            tool=filters.tool if source.facet_tool else None,
            query=filters.q,
            created_after=created_after,
            gradient_types=filters.gradient_types,
            colors=filters.colors,
        )

        return await source.list_candidate_ids(conditions)

    async def get_assets_items(self, filters: AssetFilters) -> CatalogPage:
        """
        Faceted search over one or all content types.

        Ids and sort keys are collected from every source first; full rows are loaded
        only for the ids of the requested page. A storage error yields an empty page.
        """
        sources = (
            [self.source(filters.content_type)]
            if filters.content_type
            else all_sources(self.session)
        )

        candidates: list[Candidate] = []
        try:
            async with self.session.begin_nested():
                for source in sources:
                    candidates.extend(await self._candidates(source, filters))

                ordered = sort_candidates(candidates, filters.sort_by)
                window = ordered[filters.start : filters.start + filters.limit]

                by_key: dict[tuple[ContentType, int], CatalogItem] = {}
                for source in sources:
                    ids = [c.id for c in window if c.type == source.content_type]
                    for item in await source.fetch_details(ids):
                        by_key[(item.type, item.id)] = item
        except SQLAlchemyError:
            logger.exception("Catalog search failed, returning an empty page")
            return CatalogPage(items=[], total_count=0)

        items = [by_key[(c.type, c.id)] for c in window if (c.type, c.id) in by_key]

        return CatalogPage(items=items, total_count=len(candidates))

    async def get_overview(self, content_type: ContentType) -> dict[str, list[CatalogItem]]:
        """Newest items of every root category, keyed by category slug."""
        source = self.source(content_type)
        categories = await source.categories()

        overview: dict[str, list[CatalogItem]] = {}
        for root in (node for node in categories if node.parent_id is None):
            conditions = source.build_conditions(
                category_ids=expand_children(categories, [root.id])
            )
            items = await source.query_filtered(conditions, limit=settings.catalog_overview_size)
            if items:
                overview[root.slug] = items

        return overview

    async def list_categories(self, content_type: ContentType) -> CategoryTree:
        cache_key = f"{RedisKeyPrefix.CATEGORY_TREE}{content_type}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return CategoryTree.model_validate(cached)

        source = self.source(content_type)
        tree = CategoryTree(
            content_type=content_type,
            categories=build_tree(await source.categories(), await source.category_counts()),
        )
        await self.cache.set(cache_key, tree.model_dump(mode="json"))

        return tree

    async def record_asset_action(
        self,
        content_type: ContentType,
        item_id: int,
        action: AssetAction,
        claims: SessionClaims | None,
        ip: str,
    ) -> AssetActionResult:
        """
        Hand out the copy payload or download link of one item.

        Args:
            content_type: Item type
            item_id: Item id
            action: ``copy`` for components, ``download`` otherwise
            claims: Session of the caller, None when anonymous
            ip: Client address, keys the quota of anonymous callers

        Returns:
            AssetActionResult: Payload, and the remaining free quota when it applies

        Raises:
            ValidationError: If the action does not fit the content type
            ResourceNotFoundError: If the item does not exist or is not published
            PermissionDeniedError: If the caller's tier is below the item's tier
            DownloadQuotaExceededError: If the free allowance is used up
        """
        if action != allowed_action(content_type):
            raise ValidationError(f"Action '{action}' is not available for {content_type}.")

        source = self.source(content_type)
        item = await source.get_item(item_id)
        if item is None:
            raise ResourceNotFoundError("Asset not found")
        if source.status_column is not None and item.status_content != ContentStatus.PUBLISHED:
            raise ResourceNotFoundError("Asset not found")

        is_staff = claims is not None and claims.is_staff
        tier = claims.tier if claims else Tier.FREE

        if not is_staff and not tier_reaches(tier, Tier(item.tier)):
            raise PermissionDeniedError(
                f"This asset requires a {Tier(item.tier).value} plan. Upgrade to access it."
            )

        remaining = None
        if not is_staff and tier == Tier.FREE:
            key = self.quota.key_for(claims.user_id if claims else None, ip)
            result = await self.quota.consume(key)
            if not result.allowed:
                logger.warning(f"Free download quota exhausted for {key}")
                raise DownloadQuotaExceededError(result.limit)
            remaining = result.remaining

        shaped = source.transform(item)
        await source.increment_popularity(item_id)

        return AssetActionResult(
            action=action,
            content_type=content_type,
            item_id=item_id,
            copy_data=shaped.copy_data if action == AssetAction.COPY else None,
            download_url=shaped.download_url if action == AssetAction.DOWNLOAD else None,
            remaining=remaining,
        )
