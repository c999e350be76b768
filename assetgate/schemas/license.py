from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from assetgate.core.constants import (
    LicenseStatus,
    PlanType,
    Tier,
    TransactionStatus,
    TransactionType,
)
from assetgate.schemas.base import BaseSchema, BaseTimestampSchema, ExternalSchema


# ==================== Lemon Squeezy payloads ====================


class VendorLicenseKey(ExternalSchema):
    id: int | None = None
    status: str
    key: str
    activation_limit: int | None = None
    activation_usage: int = 0
    expires_at: datetime | None = None


class VendorMeta(ExternalSchema):
    store_id: int
    order_id: int | None = None
    product_id: int
    product_name: str = ""
    variant_id: int
    variant_name: str = ""
    customer_name: str = ""
    customer_email: EmailStr


class VendorValidation(ExternalSchema):
    """Response of ``POST /licenses/validate``"""

    valid: bool = False
    error: str | None = None
    license_key: VendorLicenseKey | None = None
    meta: VendorMeta | None = None


class VendorActivation(ExternalSchema):
    """Response of ``POST /licenses/activate``"""

    activated: bool = False
    error: str | None = None
    license_key: VendorLicenseKey | None = None
    instance: dict[str, Any] | None = None
    meta: VendorMeta | None = None


class VendorOrderAttributes(ExternalSchema):
    total: int


class VendorOrderData(ExternalSchema):
    attributes: VendorOrderAttributes


class VendorOrder(ExternalSchema):
    """Response of ``GET /orders/{id}``; only the total is read"""

    data: VendorOrderData


# ==================== Local records ====================


class LicenseCheck(BaseSchema):
    """A license accepted by the vendor checks, before it is bound to an account"""

    license_key: str
    email: EmailStr
    tier: Tier
    plan_type: PlanType
    variant_id: int
    variant_label: str
    order_id: int | None = None


class LicenseUpsert(BaseSchema):
    user_id: int
    license_key: str
    status: LicenseStatus
    tier: Tier
    plan_type: PlanType
    variant_id: int | None = None
    order_id: int | None = None
    activated_at: datetime
    expires_at: datetime | None = None


class LicenseTransactionCreate(BaseSchema):
    user_id: int
    license_id: int | None = None
    transaction_type: TransactionType = TransactionType.ACTIVATION
    status: TransactionStatus = TransactionStatus.SUCCESS
    amount: int = Field(ge=0)
    details: dict[str, Any] | None = None


class LicenseUpdate(BaseSchema):
    status: LicenseStatus | None = None
    expires_at: datetime | None = None


class LicenseResponse(BaseTimestampSchema):
    id: int
    user_id: int
    license_key: str
    status: LicenseStatus
    tier: Tier
    plan_type: PlanType
    activated_at: datetime | None = None
    expires_at: datetime | None = None
