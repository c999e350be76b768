from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from assetgate.api.v1.deps.auth import SuperAdmin
from assetgate.api.v1.deps.services import get_invite_service
from assetgate.core import responses
from assetgate.schemas import (
    ActionResponse,
    InviteAccept,
    InviteCreate,
    InviteResponse,
    SignatureRequest,
)
from assetgate.services.invite_service import InviteService

admin_router = APIRouter()
router = APIRouter()

InviteServiceDep = Annotated[InviteService, Depends(get_invite_service)]


@admin_router.post(
    "",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_403_FORBIDDEN: {"model": responses.ForbiddenResponse},
        status.HTTP_409_CONFLICT: {"model": responses.ConflictResponse},
    },
    summary="Invite a user",
    description="Provision an account with the given role and email an invitation link.",
)
async def create_invite(data: InviteCreate, caller: SuperAdmin, invite_service: InviteServiceDep):
    return await invite_service.create_invite(data, caller.user_id)


@admin_router.get(
    "",
    response_model=list[InviteResponse],
    responses={
        status.HTTP_403_FORBIDDEN: {"model": responses.ForbiddenResponse},
    },
    summary="List invites",
)
async def list_invites(
    caller: SuperAdmin,
    invite_service: InviteServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await invite_service.list_invites(limit=limit, offset=offset)


@admin_router.delete(
    "/{invite_id}",
    response_model=InviteResponse,
    responses={
        status.HTTP_403_FORBIDDEN: {"model": responses.ForbiddenResponse},
        status.HTTP_404_NOT_FOUND: {"model": responses.NotFoundResponse},
    },
    summary="Cancel an invite",
    description="Cancel an invite; an accepted invite also removes the invited account.",
)
async def cancel_invite(invite_id: int, caller: SuperAdmin, invite_service: InviteServiceDep):
    return await invite_service.cancel_invite(invite_id, caller.user_id)


@router.post(
    "/send-otp",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": responses.TooManyRequestsResponse},
    },
    summary="Send the invitation code",
)
async def send_invite_otp(data: SignatureRequest, invite_service: InviteServiceDep):
    return await invite_service.send_otp(data.signature)


@router.post(
    "/accept",
    response_model=ActionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_404_NOT_FOUND: {"model": responses.NotFoundResponse},
    },
    summary="Accept an invitation",
    description="Confirm the emailed code and set the password of the invited account.",
)
async def accept_invite(data: InviteAccept, invite_service: InviteServiceDep):
    return await invite_service.accept(
        data.signature, data.email, data.otp, data.password.get_secret_value()
    )
