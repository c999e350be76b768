from typing import Annotated

from fastapi import APIRouter, Depends, status

from assetgate.api.v1.deps.auth import OptionalClaims
from assetgate.api.v1.deps.services import get_license_verification_service
from assetgate.core import responses
from assetgate.schemas import ActionResponse, LicenseKeyRequest, OtpSubmission, SignatureRequest
from assetgate.services.license_service import LicenseVerificationService

router = APIRouter()

LicenseServiceDep = Annotated[
    LicenseVerificationService, Depends(get_license_verification_service)
]


@router.post(
    "/validate",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_403_FORBIDDEN: {"model": responses.ForbiddenResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": responses.ServiceUnavailableResponse},
    },
    summary="Validate a license key",
    description="Check the key with the vendor and email a code to the purchase address.",
)
async def validate_license(data: LicenseKeyRequest, license_service: LicenseServiceDep):
    return await license_service.start_verification(data.license_key)


@router.post(
    "/verify-otp",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_403_FORBIDDEN: {"model": responses.ForbiddenResponse},
        status.HTTP_409_CONFLICT: {"model": responses.ConflictResponse},
    },
    summary="Verify the license code",
    description="Consume the emailed code and return the signup link.",
)
async def verify_license_otp(
    data: OtpSubmission, claims: OptionalClaims, license_service: LicenseServiceDep
):
    return await license_service.verify_otp(
        data.signature, data.otp, has_session=claims is not None
    )


@router.post(
    "/resend-otp",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
    },
    summary="Resend the license code",
)
async def resend_license_otp(data: SignatureRequest, license_service: LicenseServiceDep):
    return await license_service.resend_otp(data.signature)
