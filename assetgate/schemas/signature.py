from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import EmailStr, Field

from assetgate.core.constants import PlanType, Role, Tier
from assetgate.schemas.base import BaseSchema


class SignatureKind(StrEnum):
    INVITE = "invite"
    RESET_PASSWORD = "reset_password"
    LICENSE_VERIFY = "license_verify"


class SignatureStage(StrEnum):
    # The holder still has to present the emailed code
    OTP_PENDING = "otp_pending"
    # The code was consumed; the token is a short-lived pass for the next step
    VERIFIED = "verified"


class _SignedPayloadBase(BaseSchema):
    email: EmailStr
    stage: SignatureStage = SignatureStage.OTP_PENDING


class InvitePayload(_SignedPayloadBase):
    kind: Literal["invite"] = "invite"
    role: Role
    invite_token: str


class ResetPasswordPayload(_SignedPayloadBase):
    kind: Literal["reset_password"] = "reset_password"


class LicenseVerifyPayload(_SignedPayloadBase):
    kind: Literal["license_verify"] = "license_verify"
    license_key: str
    tier: Tier
    plan_type: PlanType
    order_id: int | None = None
    variant_id: int | None = None


SignedPayload = Annotated[
    Union[InvitePayload, ResetPasswordPayload, LicenseVerifyPayload],
    Field(discriminator="kind"),
]
