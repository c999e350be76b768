from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assetgate import repos
from assetgate.core.db import get_session
from assetgate.services.account_service import AccountService
from assetgate.services.auth_service import AuthService
from assetgate.services.catalog_service import CatalogService
from assetgate.services.email import EmailService, email_service
from assetgate.services.invite_service import InviteService
from assetgate.services.license_service import LicenseGateway, LicenseVerificationService
from assetgate.services.license_vendor import LemonSqueezyClient
from assetgate.services.tier_resolver import TierResolver

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_email_service() -> EmailService:
    return email_service


def get_vendor_client() -> LemonSqueezyClient:
    return LemonSqueezyClient()


def get_license_gateway(
    db: SessionDep,
    vendor: Annotated[LemonSqueezyClient, Depends(get_vendor_client)],
) -> LicenseGateway:
    return LicenseGateway(repos.LicenseRepo(db), vendor)


def get_auth_service(
    db: SessionDep,
    gateway: Annotated[LicenseGateway, Depends(get_license_gateway)],
) -> AuthService:
    user_repo = repos.UserRepo(db)

    return AuthService(
        user_repo=user_repo,
        resolver=TierResolver(user_repo, repos.LicenseRepo(db)),
        gateway=gateway,
    )


def get_account_service(
    db: SessionDep,
    emails: Annotated[EmailService, Depends(get_email_service)],
) -> AccountService:
    return AccountService(repos.UserRepo(db), emails)


def get_license_verification_service(
    db: SessionDep,
    gateway: Annotated[LicenseGateway, Depends(get_license_gateway)],
    emails: Annotated[EmailService, Depends(get_email_service)],
) -> LicenseVerificationService:
    return LicenseVerificationService(gateway, repos.UserRepo(db), emails)


def get_invite_service(
    db: SessionDep,
    emails: Annotated[EmailService, Depends(get_email_service)],
) -> InviteService:
    return InviteService(repos.UserRepo(db), repos.InviteRepo(db), emails)


def get_catalog_service(db: SessionDep) -> CatalogService:
    return CatalogService(db)
