from urllib.parse import parse_qs, urlsplit

import pytest

from assetgate.core import signature
from assetgate.core.config import settings
from assetgate.core.constants import Role, Tier
from assetgate.middleware.access_policy import is_page_path
from assetgate.schemas import InvitePayload, ResetPasswordPayload, SignatureStage


def location_of(response) -> tuple[str, dict[str, str]]:
    parts = urlsplit(response.headers["location"])
    return parts.path, {key: values[0] for key, values in parse_qs(parts.query).items()}


class TestIsPagePath:
    @pytest.mark.parametrize("path", ["/api/v1/catalog/items", "/health", "/docs", "/api"])
    def test_api_paths_are_exempt(self, path):
        assert is_page_path(path) is False

    @pytest.mark.parametrize("path", ["/", "/dashboard", "/apis", "/signin"])
    def test_page_paths(self, path):
        assert is_page_path(path) is True


@pytest.mark.asyncio
class TestAccessPolicyMiddleware:
    """Test page guarding through the full middleware stack."""

    async def test_anonymous_dashboard_redirects_to_signin(self, client):
        response = await client.get("/dashboard/components?page=2")

        assert response.status_code == 307
        path, query = location_of(response)
        assert path == "/signin"
        assert query["callbackUrl"] == "/dashboard/components?page=2"

    async def test_anonymous_public_page_passes_through(self, client):
        response = await client.get("/pricing")

        assert response.status_code == 404

    async def test_api_routes_are_not_guarded(self, client):
        response = await client.get("/api/v1/unknown")

        assert response.status_code == 404

    async def test_free_user_is_sent_to_trial(self, client, make_claims, make_access_token):
        client.cookies.set(settings.session_cookie_name, make_access_token(make_claims()))

        response = await client.get("/dashboard")

        assert response.status_code == 307
        assert location_of(response)[0] == "/trial"

    async def test_pro_user_reaches_dashboard(self, client, make_claims, make_access_token):
        client.cookies.set(
            settings.session_cookie_name, make_access_token(make_claims(tier=Tier.PRO))
        )

        response = await client.get("/dashboard")

        assert response.status_code == 404

    async def test_bearer_header_is_accepted(self, client, make_claims, make_access_token):
        token = make_access_token(make_claims(tier=Tier.PRO_PLUS))

        response = await client.get("/trial", headers={"Authorization": f"Bearer {token}"})

        assert location_of(response)[0] == "/dashboard"

    async def test_admin_is_kept_out_of_superadmin_pages(
        self, client, make_claims, make_access_token
    ):
        client.cookies.set(
            settings.session_cookie_name, make_access_token(make_claims(role=Role.ADMIN))
        )

        response = await client.get("/dashboard/invite")

        path, query = location_of(response)
        assert path == "/dashboard"
        assert query["error"] == "Access restricted to Super Admin."

    async def test_superadmin_reaches_invite_page(self, client, make_claims, make_access_token):
        client.cookies.set(
            settings.session_cookie_name, make_access_token(make_claims(role=Role.SUPERADMIN))
        )

        response = await client.get("/dashboard/invite")

        assert response.status_code == 404

    async def test_invalid_cookie_counts_as_anonymous(self, client):
        client.cookies.set(settings.session_cookie_name, "garbage")

        response = await client.get("/dashboard")

        assert location_of(response)[0] == "/signin"

    async def test_signed_in_user_leaves_login_pages(self, client, make_claims, make_access_token):
        client.cookies.set(settings.session_cookie_name, make_access_token(make_claims()))

        response = await client.get("/signin")

        path, query = location_of(response)
        assert path == "/"
        assert query["info"] == "You are already signed in. No need to sign in again."


@pytest.mark.asyncio
class TestSignatureGates:
    """Test the signed-link gates of the multi-step pages."""

    async def test_invite_without_signature(self, client):
        response = await client.get("/invite")

        path, query = location_of(response)
        assert path == "/signin"
        assert "Invalid invitation link" in query["error"]

    async def test_invite_with_valid_signature(self, client):
        token = signature.issue(
            InvitePayload(email="ops@example.com", role=Role.ADMIN, invite_token="t"), 3600
        )

        response = await client.get("/invite", params={"signature": token})

        assert response.status_code == 404

    async def test_reset_password_needs_verified_stage(self, client):
        pending = signature.issue(ResetPasswordPayload(email="jane@example.com"), 600)

        response = await client.get("/reset-password", params={"signature": pending})

        path, query = location_of(response)
        assert path == "/forgot-password"
        assert "Invalid" in query["error"]

    async def test_reset_password_with_verified_pass(self, client):
        verified = signature.issue(
            ResetPasswordPayload(email="jane@example.com", stage=SignatureStage.VERIFIED), 600
        )

        response = await client.get("/reset-password", params={"signature": verified})

        assert response.status_code == 404
