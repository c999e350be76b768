from typing import Annotated

from fastapi import APIRouter, Query
from yarl import URL

from assetgate.api.v1.deps.auth import OptionalClaims
from assetgate.schemas import AccessDecisionResponse
from assetgate.services.access_policy import evaluate

router = APIRouter()


@router.get(
    "/check",
    response_model=AccessDecisionResponse,
    summary="Check page access",
    description="Decision of the page access policy for a path, for edge proxies.",
)
async def check_access(
    claims: OptionalClaims,
    path: Annotated[str, Query(min_length=1, description="Page path with optional query")],
):
    url = URL(path)
    decision = evaluate(
        claims,
        url.path or "/",
        query_params={key: value for key, value in url.query.items()},
        query=url.query_string,
    )

    return AccessDecisionResponse(
        allowed=decision.allowed,
        redirect_url=decision.redirect_url,
        logged_in=claims is not None,
        role=claims.role if claims else None,
        tier=claims.tier if claims else None,
    )
