import pytest
from httpx import AsyncClient

from assetgate.core.constants import Role, Tier


class TestCheckAccess:
    """Test suite for GET /api/v1/access/check endpoint"""

    @pytest.mark.asyncio
    async def test_anonymous_protected_page(self, client: AsyncClient):
        response = await client.get("/api/v1/access/check", params={"path": "/dashboard"})

        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is False
        assert data["redirect_url"].startswith("/signin")
        assert data["logged_in"] is False
        assert data["role"] is None

    @pytest.mark.asyncio
    async def test_anonymous_public_page(self, client: AsyncClient):
        response = await client.get("/api/v1/access/check", params={"path": "/pricing"})

        assert response.json()["allowed"] is True
        assert response.json()["redirect_url"] is None

    @pytest.mark.asyncio
    async def test_pro_user(self, client: AsyncClient, make_claims, make_access_token):
        token = make_access_token(make_claims(tier=Tier.PRO))

        response = await client.get(
            "/api/v1/access/check",
            params={"path": "/dashboard/components?page=2"},
            headers={"Authorization": f"Bearer {token}"},
        )

        data = response.json()
        assert data["allowed"] is True
        assert data["logged_in"] is True
        assert data["tier"] == "pro"
        assert data["role"] == "user"

    @pytest.mark.asyncio
    async def test_free_user_is_sent_to_trial(
        self, client: AsyncClient, make_claims, make_access_token
    ):
        token = make_access_token(make_claims(role=Role.USER, tier=Tier.FREE))

        response = await client.get(
            "/api/v1/access/check",
            params={"path": "/dashboard"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.json()["allowed"] is False
        assert response.json()["redirect_url"] == "/trial"

    @pytest.mark.asyncio
    async def test_path_is_required(self, client: AsyncClient):
        response = await client.get("/api/v1/access/check")

        assert response.status_code == 422
