from typing import Annotated

from pydantic import EmailStr, Field, SecretStr, field_validator

from assetgate.core.constants import FieldSizes
from assetgate.schemas.base import BaseSchema
from assetgate.schemas.user import Password, check_password_strength

OtpCode = Annotated[str, Field(min_length=1, max_length=12, description="Emailed one-time code")]


def _trim(value: str) -> str:
    return value.strip()


class ActionResponse(BaseSchema):
    """Result of a multi-step flow; ``redirect_url`` names the next page when there is one"""

    success: str
    redirect_url: str | None = None
    signature: str | None = None


class LicenseKeyRequest(BaseSchema):
    license_key: Annotated[str, Field(min_length=1, max_length=FieldSizes.LICENSE_KEY)]

    @field_validator("license_key")
    def strip_license_key(cls, value: str) -> str:
        return _trim(value)


class SignatureRequest(BaseSchema):
    signature: str


class OtpSubmission(BaseSchema):
    signature: str
    otp: OtpCode

    @field_validator("otp")
    def strip_otp(cls, value: str) -> str:
        return _trim(value)


class ForgotPasswordRequest(BaseSchema):
    email: EmailStr


class ResetPasswordRequest(BaseSchema):
    signature: str
    password: Password

    @field_validator("password")
    def validate_password(cls, value: SecretStr) -> SecretStr:
        return check_password_strength(value)


class EmailOtpConfirm(BaseSchema):
    otp: OtpCode

    @field_validator("otp")
    def strip_otp(cls, value: str) -> str:
        return _trim(value)


class InviteAccept(BaseSchema):
    signature: str
    email: EmailStr
    otp: OtpCode
    password: Password

    @field_validator("otp")
    def strip_otp(cls, value: str) -> str:
        return _trim(value)

    @field_validator("password")
    def validate_password(cls, value: SecretStr) -> SecretStr:
        return check_password_strength(value)
