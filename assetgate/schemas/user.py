import re
from datetime import datetime
from typing import Annotated

from pydantic import EmailStr, Field, SecretStr, field_validator

from assetgate.core.constants import FieldSizes, Role
from assetgate.schemas.base import BaseSchema, BaseTimestampSchema

USER_PASSWORD_REGEX = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
USER_PASSWORD_DESCRIPTION = (
    "Password must be at least 8 characters long and include at least one uppercase letter, "
    + "one lowercase letter, one number, and one special character from @$!%*?&."
)

Password = Annotated[
    SecretStr,
    Field(
        min_length=8,
        max_length=FieldSizes.PASSWORD,
        description=USER_PASSWORD_DESCRIPTION,
    ),
]


def check_password_strength(value: SecretStr) -> SecretStr:
    if re.match(USER_PASSWORD_REGEX, value.get_secret_value()) is None:
        raise ValueError(USER_PASSWORD_DESCRIPTION)

    return value


class UserCreate(BaseSchema):
    """User creation schema"""

    name: str
    email: EmailStr
    hashed_password: str | None = None
    role_user: Role = Role.USER
    email_verified_at: datetime | None = None


class UserUpdate(BaseSchema):
    """User update schema"""

    name: str | None = None
    hashed_password: str | None = None
    role_user: Role | None = None
    email_verified_at: datetime | None = None
    image_url: str | None = None


class UserRegister(BaseSchema):
    """Sign-up after a verified license; the signature is the ``verified`` license token"""

    signature: str
    name: Annotated[str, Field(min_length=1, max_length=FieldSizes.NAME)]
    email: EmailStr
    password: Password

    @field_validator("password")
    def validate_password(cls, value: SecretStr) -> SecretStr:
        return check_password_strength(value)


class UserResponse(BaseTimestampSchema):
    """User schema for API response"""

    id: int
    name: str
    email: EmailStr
    role_user: Role
    email_verified_at: datetime | None = None
    image_url: str | None = None
