from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from assetgate.api.v1.deps.auth import CurrentClaims, get_current_session
from assetgate.api.v1.deps.services import get_account_service, get_auth_service
from assetgate.core import responses
from assetgate.core.config import Environment, settings
from assetgate.core.types import TokenPairDict
from assetgate.schemas import (
    ActionResponse,
    EmailOtpConfirm,
    ForgotPasswordRequest,
    OtpSubmission,
    ResetPasswordRequest,
    SessionClaims,
    SignatureRequest,
    Token,
    TokenPayload,
    UserRegister,
)
from assetgate.services.account_service import AccountService
from assetgate.services.auth_service import AuthService

router = APIRouter()

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]


def _set_session_cookie(response: Response, tokens: TokenPairDict) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=tokens["access_token"],
        httponly=True,
        secure=settings.current_environment in {Environment.STG, Environment.PRD},
        samesite="lax",
        max_age=settings.access_token_expire_seconds,
        path="/",
    )


@router.post(
    "/login",
    response_model=Token,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
    },
    summary="Login for access token",
    description="Authenticate with email and password and return access and refresh tokens.",
)
async def login_for_access_token(
    response: Response,
    user_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    auth_service: AuthServiceDep,
):
    """
    OAuth2 compatible token login; ``username`` carries the email
    """
    tokens = await auth_service.authenticate_user(user_data.username, user_data.password)
    _set_session_cookie(response, tokens)

    return tokens


@router.post(
    "/register",
    response_model=Token,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_409_CONFLICT: {"model": responses.ConflictResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": responses.InternalServerErrorResponse},
    },
    summary="Register with a verified license",
    description="Create the account of a verified license owner and activate the license.",
)
async def register(response: Response, user_in: UserRegister, auth_service: AuthServiceDep):
    tokens = await auth_service.register_user(user_in)
    _set_session_cookie(response, tokens)

    return tokens


@router.post(
    "/refresh-token",
    response_model=Token,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
    },
    summary="Refresh access token",
    description="Issue a new token pair with role and tier re-derived from the database.",
)
async def refresh_token(
    response: Response, token_payload: TokenPayload, auth_service: AuthServiceDep
):
    tokens = await auth_service.refresh_tokens(token_payload.refresh_token)
    _set_session_cookie(response, tokens)

    return tokens


@router.get(
    "/session",
    response_model=SessionClaims,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
    },
    summary="Current session",
)
async def read_session(claims: CurrentClaims):
    return claims


@router.post(
    "/logout",
    response_model=ActionResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
    },
    summary="Logout",
    description="Revoke the current access token.",
)
async def logout(
    response: Response,
    session: Annotated[tuple[SessionClaims, dict[str, Any]], Depends(get_current_session)],
    auth_service: AuthServiceDep,
):
    await auth_service.logout(session[1])
    response.delete_cookie(settings.session_cookie_name, path="/")

    return ActionResponse(success="Signed out.", redirect_url="/signin")


@router.post(
    "/forgot-password",
    response_model=ActionResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": responses.NotFoundResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
    },
    summary="Request a password reset code",
)
async def forgot_password(data: ForgotPasswordRequest, account_service: AccountServiceDep):
    return await account_service.forgot_password(data.email)


@router.post(
    "/forgot-password/verify",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
    },
    summary="Verify a password reset code",
)
async def verify_reset_code(data: OtpSubmission, account_service: AccountServiceDep):
    return await account_service.verify_reset_otp(data.signature, data.otp)


@router.post(
    "/forgot-password/resend",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
    },
    summary="Resend a password reset code",
)
async def resend_reset_code(data: SignatureRequest, account_service: AccountServiceDep):
    return await account_service.resend_reset_otp(data.signature)


@router.post(
    "/reset-password",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_404_NOT_FOUND: {"model": responses.NotFoundResponse},
    },
    summary="Set a new password",
    description="Set a new password with a verified reset link and sign out every session.",
)
async def reset_password(data: ResetPasswordRequest, account_service: AccountServiceDep):
    return await account_service.reset_password(
        data.signature, data.password.get_secret_value()
    )


@router.post(
    "/verify-email/send",
    response_model=ActionResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
        status.HTTP_409_CONFLICT: {"model": responses.ConflictResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
    },
    summary="Send an email verification code",
)
async def send_email_verification(claims: CurrentClaims, account_service: AccountServiceDep):
    return await account_service.send_email_verification(claims.user_id)


@router.post(
    "/verify-email/confirm",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
        status.HTTP_409_CONFLICT: {"model": responses.ConflictResponse},
    },
    summary="Confirm the email verification code",
)
async def confirm_email_verification(
    data: EmailOtpConfirm, claims: CurrentClaims, account_service: AccountServiceDep
):
    return await account_service.confirm_email_verification(claims.user_id, data.otp)
