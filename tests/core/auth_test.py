from datetime import timedelta

from jose import jwt

from assetgate.core.auth import (
    claims_from_payload,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    read_session_claims,
    verify_password,
)
from assetgate.core.config import settings
from assetgate.core.constants import LicenseState, Role, Tier
from assetgate.schemas import SessionClaims


class TestTokens:
    """Test session token encoding and decoding."""

    def test_access_token_carries_claims(self):
        claims = SessionClaims(
            user_id=7,
            role=Role.ADMIN,
            tier=Tier.PRO_PLUS,
            email_verified=True,
            license_status=LicenseState.ACTIVE,
        )

        token = create_access_token(claims)
        payload = decode_token(token["token"])

        assert payload["sub"] == "7"
        assert payload["jti"] == token["jti"]
        assert payload["type"] == "access"
        assert payload["role"] == "admin"
        assert payload["tier"] == "pro_plus"
        assert claims_from_payload(payload) == claims

    def test_each_token_has_unique_jti(self):
        claims = SessionClaims(user_id=1)

        assert create_access_token(claims)["jti"] != create_access_token(claims)["jti"]

    def test_read_session_claims(self):
        claims = SessionClaims(user_id=3, tier=Tier.PRO)
        token = create_access_token(claims)["token"]

        result = read_session_claims(token)

        assert result is not None
        assert result[0] == claims
        assert result[1]["jti"]

    def test_refresh_token_is_not_a_session(self):
        token = create_refresh_token(SessionClaims(user_id=3))["token"]

        assert decode_token(token)["type"] == "refresh"
        assert read_session_claims(token) is None

    def test_expired_token_is_not_a_session(self):
        token = create_access_token(SessionClaims(user_id=3), timedelta(seconds=-1))["token"]

        assert read_session_claims(token) is None

    def test_foreign_signature_is_not_a_session(self):
        forged = jwt.encode(
            {"sub": "1", "type": "access", "role": "superadmin"},
            "not-the-secret",
            algorithm=settings.jwt_algorithm,
        )

        assert read_session_claims(forged) is None

    def test_missing_token(self):
        assert read_session_claims(None) is None
        assert read_session_claims("") is None
        assert read_session_claims("garbage") is None

    def test_incomplete_payload(self):
        assert claims_from_payload({"role": "user"}) is None
        assert claims_from_payload({"sub": "abc"}) is None
        assert claims_from_payload({"sub": "1", "role": "owner"}) is None

    def test_payload_defaults(self):
        claims = claims_from_payload({"sub": "5"})

        assert claims.role == Role.USER
        assert claims.tier == Tier.FREE
        assert claims.license_status == LicenseState.NONE


class TestPasswords:
    def test_hash_and_verify(self, default_password):
        hashed = get_password_hash(default_password)

        assert hashed != default_password
        assert verify_password(default_password, hashed) is True
        assert verify_password("wrong-password", hashed) is False


class TestSessionClaims:
    def test_is_staff(self):
        assert SessionClaims(user_id=1, role=Role.ADMIN).is_staff is True
        assert SessionClaims(user_id=1, role=Role.SUPERADMIN).is_staff is True
        assert SessionClaims(user_id=1, role=Role.USER).is_staff is False
