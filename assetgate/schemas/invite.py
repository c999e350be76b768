from datetime import datetime

from pydantic import EmailStr, field_validator

from assetgate.core.constants import InviteStatus, Role
from assetgate.schemas.base import BaseSchema, BaseTimestampSchema


class InviteCreate(BaseSchema):
    """Super-admin request to invite a staff member or user"""

    email: EmailStr
    role: Role = Role.ADMIN

    @field_validator("email")
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class InviteUpsert(BaseSchema):
    email: EmailStr
    role: Role
    token: str
    inviter_id: int | None = None
    status: InviteStatus = InviteStatus.PENDING
    expires_at: datetime


class InviteUpdate(BaseSchema):
    status: InviteStatus | None = None


class InviteResponse(BaseTimestampSchema):
    id: int
    email: EmailStr
    role: Role
    status: InviteStatus
    inviter_id: int | None = None
    expires_at: datetime
