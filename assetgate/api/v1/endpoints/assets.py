from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from assetgate.api.v1.deps.auth import OptionalClaims
from assetgate.api.v1.deps.rate_limit import rate_limit_search
from assetgate.api.v1.deps.services import get_catalog_service
from assetgate.core import responses
from assetgate.core.constants import AssetAction, ContentType
from assetgate.core.utils import get_client_ip
from assetgate.schemas import (
    AssetActionResult,
    AssetFilters,
    CatalogItem,
    CatalogPage,
    CategoryTree,
    ItemQuery,
)
from assetgate.services.catalog_service import CatalogService

router = APIRouter()

CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


@router.get(
    "",
    response_model=CatalogPage,
    summary="List assets",
    description="One page of a single content type, optionally narrowed to a category.",
)
async def list_assets(query: Annotated[ItemQuery, Query()], catalog: CatalogServiceDep):
    return await catalog.fetch_items(query)


@router.get(
    "/search",
    response_model=CatalogPage,
    dependencies=[Depends(rate_limit_search)],
    responses={
        status.HTTP_429_TOO_MANY_REQUESTS: {
            "model": responses.TooManyRequestsResponse,
            "headers": responses.RATE_LIMIT_HEADERS_DOC,
        },
    },
    summary="Search assets",
    description="Faceted search across one or all content types.",
)
async def search_assets(filters: Annotated[AssetFilters, Query()], catalog: CatalogServiceDep):
    return await catalog.get_assets_items(filters)


@router.get(
    "/overview",
    response_model=dict[str, list[CatalogItem]],
    summary="Assets per root category",
)
async def assets_overview(
    catalog: CatalogServiceDep,
    content_type: ContentType = ContentType.COMPONENTS,
):
    return await catalog.get_overview(content_type)


@router.get(
    "/categories",
    response_model=CategoryTree,
    summary="Category tree",
)
async def list_categories(
    catalog: CatalogServiceDep,
    content_type: ContentType = ContentType.COMPONENTS,
):
    return await catalog.list_categories(content_type)


@router.post(
    "/{content_type}/{item_id}/{action}",
    response_model=AssetActionResult,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_403_FORBIDDEN: {"model": responses.ForbiddenResponse},
        status.HTTP_404_NOT_FOUND: {"model": responses.NotFoundResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
    },
    summary="Copy or download an asset",
    description="Check tier and free quota, count the action and return the asset payload.",
)
async def record_asset_action(
    request: Request,
    content_type: ContentType,
    item_id: int,
    action: AssetAction,
    claims: OptionalClaims,
    catalog: CatalogServiceDep,
):
    return await catalog.record_asset_action(
        content_type, item_id, action, claims, get_client_ip(request)
    )
