from typing import Annotated

from fastapi import APIRouter, Depends, status

from assetgate.api.v1.deps.auth import verify_cron_secret
from assetgate.api.v1.deps.services import get_email_service, get_license_gateway
from assetgate.core import responses
from assetgate.schemas import ExpiryReport
from assetgate.services.email import EmailService
from assetgate.services.license_service import LicenseGateway

router = APIRouter(dependencies=[Depends(verify_cron_secret)])


@router.get(
    "/check-expiry",
    response_model=ExpiryReport,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
    },
    summary="Run the license expiry sweep",
    description="Expire overdue licenses and notify owners of subscriptions ending soon.",
)
async def check_license_expiry(
    gateway: Annotated[LicenseGateway, Depends(get_license_gateway)],
    emails: Annotated[EmailService, Depends(get_email_service)],
):
    return await gateway.run_expiry_check(emails)
