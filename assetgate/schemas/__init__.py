from .base import BaseSchema, BaseTimestampSchema, ExternalSchema
from .healthcheck import HealthCheckResponse
from .token import SessionClaims, Token, TokenPayload
from .user import UserCreate, UserRegister, UserResponse, UserUpdate
from .signature import (
    InvitePayload,
    LicenseVerifyPayload,
    ResetPasswordPayload,
    SignatureKind,
    SignatureStage,
    SignedPayload,
)
from .actions import (
    ActionResponse,
    EmailOtpConfirm,
    ForgotPasswordRequest,
    InviteAccept,
    LicenseKeyRequest,
    OtpSubmission,
    ResetPasswordRequest,
    SignatureRequest,
)
from .license import (
    LicenseCheck,
    LicenseResponse,
    LicenseTransactionCreate,
    LicenseUpdate,
    LicenseUpsert,
    VendorActivation,
    VendorOrder,
    VendorValidation,
)
from .invite import InviteCreate, InviteResponse, InviteUpdate, InviteUpsert
from .catalog import (
    AssetActionResult,
    AssetFilters,
    CatalogItem,
    CatalogPage,
    CategoryNodeResponse,
    CategoryTree,
    ItemQuery,
)
from .access import AccessDecisionResponse, ExpiryReport

__all__ = [
    "BaseSchema",
    "BaseTimestampSchema",
    "ExternalSchema",
    "HealthCheckResponse",
    "SessionClaims",
    "Token",
    "TokenPayload",
    "UserCreate",
    "UserRegister",
    "UserResponse",
    "UserUpdate",
    "InvitePayload",
    "LicenseVerifyPayload",
    "ResetPasswordPayload",
    "SignatureKind",
    "SignatureStage",
    "SignedPayload",
    "ActionResponse",
    "EmailOtpConfirm",
    "ForgotPasswordRequest",
    "InviteAccept",
    "LicenseKeyRequest",
    "OtpSubmission",
    "ResetPasswordRequest",
    "SignatureRequest",
    "LicenseCheck",
    "LicenseResponse",
    "LicenseTransactionCreate",
    "LicenseUpdate",
    "LicenseUpsert",
    "VendorActivation",
    "VendorOrder",
    "VendorValidation",
    "InviteCreate",
    "InviteResponse",
    "InviteUpdate",
    "InviteUpsert",
    "AssetActionResult",
    "AssetFilters",
    "CatalogItem",
    "CatalogPage",
    "CategoryNodeResponse",
    "CategoryTree",
    "ItemQuery",
    "AccessDecisionResponse",
    "ExpiryReport",
]
