from fastapi import APIRouter, Depends, status

from assetgate.api.v1.deps.rate_limit import (
    rate_limit_api,
    rate_limit_auth,
    rate_limit_license,
    rate_limit_public,
)
from assetgate.api.v1.endpoints import access, assets, auth, cron, invite, license
from assetgate.core import responses

api_v1_router = APIRouter(prefix="/api/v1")

RATE_LIMITED = {
    status.HTTP_429_TOO_MANY_REQUESTS: {
        "model": responses.TooManyRequestsResponse,
        "headers": responses.RATE_LIMIT_HEADERS_DOC,
    },
}


api_v1_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Auth"],
    dependencies=[Depends(rate_limit_auth)],
    responses=RATE_LIMITED,
)

api_v1_router.include_router(
    license.router,
    prefix="/licenses",
    tags=["Licenses"],
    dependencies=[Depends(rate_limit_license)],
    responses=RATE_LIMITED,
)

api_v1_router.include_router(
    invite.admin_router,
    prefix="/admin/invites",
    tags=["Invites"],
    dependencies=[Depends(rate_limit_api)],
    responses=RATE_LIMITED,
)

api_v1_router.include_router(
    invite.router,
    prefix="/invites",
    tags=["Invites"],
    dependencies=[Depends(rate_limit_auth)],
    responses=RATE_LIMITED,
)

api_v1_router.include_router(
    assets.router,
    prefix="/assets",
    tags=["Assets"],
    dependencies=[Depends(rate_limit_public)],
    responses=RATE_LIMITED,
)

api_v1_router.include_router(
    access.router,
    prefix="/access",
    tags=["Access"],
    dependencies=[Depends(rate_limit_public)],
)

api_v1_router.include_router(
    cron.router,
    prefix="/cron",
    tags=["Cron"],
)
