"""
Page access rules.

:func:`decide` maps ``(logged in, role, tier, path)`` to allow or redirect and
:func:`evaluate` adds the signed-link gates of the multi-step flows. Both are pure; the
middleware and the ``/access/check`` endpoint only gather their inputs.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping

from assetgate.core import signature
from assetgate.core.constants import PAID_TIERS, STAFF_ROLES, Role, Tier
from assetgate.core.signature import utc_now
from assetgate.core.utils import build_app_url
from assetgate.schemas import SessionClaims
from assetgate.schemas.signature import SignatureKind, SignatureStage

SIGNIN_PAGE = "/signin"
DASHBOARD = "/dashboard"
TRIAL_AREA = "/trial"
LICENSE_START = "/verify-license"
HOME = "/"

SIGNED_IN_MESSAGES = {
    "/signin": "You are already signed in. No need to sign in again.",
    "/signup": "You already have an account.",
    "/forgot-password": (
        "You are already signed in. To change your password, please go to account settings."
    ),
}
PROTECTED_PREFIXES = (DASHBOARD, TRIAL_AREA)
SUPERADMIN_ONLY = ("/dashboard/invite", "/dashboard/transactions")

SIGNIN_REQUIRED_MESSAGE = "Please sign in to access this page."
STAFF_SIGNED_IN_MESSAGE = "You are already signed in as admin. Redirecting to dashboard."
SUPERADMIN_ONLY_MESSAGE = "Access restricted to Super Admin."
ADMIN_LICENSE_MESSAGE = "Admins do not need license verification."
ACTIVE_LICENSE_MESSAGE = "Your license is still active. No need to verify again."


def under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def under_any(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(under(path, prefix) for prefix in prefixes)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_url: str | None = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def redirect(cls, path: str, **params: str | None) -> "AccessDecision":
        return cls(allowed=False, redirect_url=build_app_url(path, absolute=False, **params))


@dataclass(frozen=True)
class SignatureGate:
    path: str
    kind: SignatureKind
    stage: SignatureStage
    fallback: str
    missing_message: str
    invalid_message: str
    expired_message: str

    def check(
        self, token: str | None, clock: Callable[[], datetime] = utc_now
    ) -> AccessDecision:
        if not token:
            return AccessDecision.redirect(self.fallback, error=self.missing_message)

        result = signature.verify(token, self.kind, self.stage, clock=clock)
        if not result.valid:
            return AccessDecision.redirect(self.fallback, error=self.invalid_message)
        if result.expired:
            return AccessDecision.redirect(self.fallback, error=self.expired_message)

        return AccessDecision.allow()


SIGNATURE_GATES: tuple[SignatureGate, ...] = (
    SignatureGate(
        path="/invite",
        kind=SignatureKind.INVITE,
        stage=SignatureStage.OTP_PENDING,
        fallback=SIGNIN_PAGE,
        missing_message=(
            "Invalid invitation link. Please make sure you are using the correct link "
            "from the invitation email."
        ),
        invalid_message=(
            "Invalid invitation signature. Please contact admin to get a new invitation link."
        ),
        expired_message=(
            "Invitation link has expired. Please contact admin to get a new invitation link."
        ),
    ),
    SignatureGate(
        path="/signup",
        kind=SignatureKind.LICENSE_VERIFY,
        stage=SignatureStage.VERIFIED,
        fallback=LICENSE_START,
        missing_message=(
            "You must verify your license first before signing up. "
            "Enter your license key to continue."
        ),
        invalid_message=(
            "Invalid registration session. "
            "Please verify your license again by entering your license key."
        ),
        expired_message=(
            "Your registration session has expired (more than 5 minutes). "
            "Please verify your license again."
        ),
    ),
    SignatureGate(
        path="/reset-password",
        kind=SignatureKind.RESET_PASSWORD,
        stage=SignatureStage.VERIFIED,
        fallback="/forgot-password",
        missing_message="Invalid reset password link. Please request a new reset password link.",
        invalid_message=(
            "Invalid or already used reset password link. Please request a new link."
        ),
        expired_message=(
            "Reset password link has expired. Please request a new reset password link."
        ),
    ),
    SignatureGate(
        path="/verify-license/otp",
        kind=SignatureKind.LICENSE_VERIFY,
        stage=SignatureStage.OTP_PENDING,
        fallback=LICENSE_START,
        missing_message=(
            "OTP verification session not found. "
            "Please enter your license key to start the verification process."
        ),
        invalid_message=(
            "Invalid OTP verification session. Please enter your license key again."
        ),
        expired_message=(
            "OTP verification session has expired (more than 10 minutes). "
            "Please start verification again."
        ),
    ),
    SignatureGate(
        path="/forgot-password/otp",
        kind=SignatureKind.RESET_PASSWORD,
        stage=SignatureStage.OTP_PENDING,
        fallback="/forgot-password",
        missing_message="Missing signature.",
        invalid_message="Invalid signature.",
        expired_message="Link expired.",
    ),
)


def find_gate(path: str) -> SignatureGate | None:
    """The gate guarding ``path`` or any page below it."""
    return next((gate for gate in SIGNATURE_GATES if under(path, gate.path)), None)


def decide(
    logged_in: bool,
    role: Role | None,
    tier: Tier | None,
    path: str,
    query: str = "",
) -> AccessDecision:
    """
    Role and tier rules for one page request.

    Args:
        logged_in: Whether a valid session was presented
        role: Session role, ignored when not logged in
        tier: Effective tier of the session
        path: Requested page path
        query: Raw query string, kept in the sign-in ``callbackUrl``

    Returns:
        AccessDecision: Allow, or the page to redirect to
    """
    if not logged_in:
        if under_any(path, PROTECTED_PREFIXES):
            callback = f"{path}?{query}" if query else path
            return AccessDecision.redirect(
                SIGNIN_PAGE, callbackUrl=callback, error=SIGNIN_REQUIRED_MESSAGE
            )
        return AccessDecision.allow()

    is_staff = role in STAFF_ROLES
    is_paid = tier in PAID_TIERS

    for page, message in SIGNED_IN_MESSAGES.items():
        if under(path, page):
            if is_staff:
                return AccessDecision.redirect(DASHBOARD, info=STAFF_SIGNED_IN_MESSAGE)
            return AccessDecision.redirect(HOME, info=message)

    if under(path, LICENSE_START):
        if is_staff:
            return AccessDecision.redirect(DASHBOARD, info=ADMIN_LICENSE_MESSAGE)
        if is_paid:
            return AccessDecision.redirect(HOME, info=ACTIVE_LICENSE_MESSAGE)

    if is_staff:
        if under(path, TRIAL_AREA):
            return AccessDecision.redirect(DASHBOARD)
        if role != Role.SUPERADMIN and under_any(path, SUPERADMIN_ONLY):
            return AccessDecision.redirect(DASHBOARD, error=SUPERADMIN_ONLY_MESSAGE)
        return AccessDecision.allow()

    if not is_paid and under(path, DASHBOARD):
        return AccessDecision.redirect(TRIAL_AREA)
    if is_paid and under(path, TRIAL_AREA):
        return AccessDecision.redirect(DASHBOARD)
    if under_any(path, SUPERADMIN_ONLY):
        return AccessDecision.redirect(DASHBOARD, error=SUPERADMIN_ONLY_MESSAGE)

    return AccessDecision.allow()


def evaluate(
    claims: SessionClaims | None,
    path: str,
    query_params: Mapping[str, str] | None = None,
    query: str = "",
    clock: Callable[[], datetime] = utc_now,
) -> AccessDecision:
    """
    Full page policy: role and tier rules first, then the signed-link gate of the path.
    """
    decision = decide(
        logged_in=claims is not None,
        role=claims.role if claims else None,
        tier=claims.tier if claims else None,
        path=path,
        query=query,
    )
    if not decision.allowed:
        return decision

    gate = find_gate(path)
    if gate is None:
        return decision

    return gate.check((query_params or {}).get("signature"), clock=clock)
