from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request

from assetgate.core.config import Environment, settings
from assetgate.core.utils import (
    build_app_url,
    generate_otp,
    get_client_ip,
    normalize_email,
    slugify,
)


def _request(headers: dict[str, str], host: str | None = "192.168.1.1") -> MagicMock:
    request = MagicMock(spec=Request)
    request.headers = headers
    request.client = MagicMock(host=host) if host else None
    return request


class TestGetClientIP:
    """Test get_client_ip function."""

    def test_local_environment_returns_localhost(self):
        """Test that local environment always returns localhost."""
        request = _request({"X-Forwarded-For": "203.0.113.195"})

        with patch.object(settings, "current_environment", Environment.LOCAL):
            result = get_client_ip(request)

        assert result == "localhost"

    def test_x_forwarded_for_header(self):
        request = _request({"X-Forwarded-For": "203.0.113.195"})

        with patch.object(settings, "current_environment", Environment.PRD):
            result = get_client_ip(request)

        assert result == "203.0.113.195"

    def test_x_forwarded_for_multiple_ips(self):
        """Test X-Forwarded-For header with multiple IPs (takes first one)."""
        request = _request({"X-Forwarded-For": " 203.0.113.195 , 70.41.3.18, 150.172.238.178"})

        with patch.object(settings, "current_environment", Environment.PRD):
            result = get_client_ip(request)

        assert result == "203.0.113.195"

    def test_x_real_ip_header(self):
        request = _request({"X-Real-IP": " 198.51.100.7 "})

        with patch.object(settings, "current_environment", Environment.STG):
            result = get_client_ip(request)

        assert result == "198.51.100.7"

    def test_header_priority_x_forwarded_for_first(self):
        request = _request({"X-Real-IP": "198.51.100.7", "X-Forwarded-For": "203.0.113.195"})

        with patch.object(settings, "current_environment", Environment.PRD):
            result = get_client_ip(request)

        assert result == "203.0.113.195"

    def test_request_client_host_fallback(self):
        with patch.object(settings, "current_environment", Environment.DEV):
            result = get_client_ip(_request({}))

        assert result == "192.168.1.1"

    def test_unknown_when_no_client(self):
        with patch.object(settings, "current_environment", Environment.DEV):
            result = get_client_ip(_request({}, host=None))

        assert result == "unknown"


class TestGenerateOtp:
    def test_six_digits_by_default(self):
        for _ in range(50):
            code = generate_otp()

            assert len(code) == 6
            assert code.isdigit()

    def test_zero_padded(self):
        with patch("assetgate.core.utils.secrets.randbelow", return_value=42):
            assert generate_otp() == "000042"

    def test_custom_length(self):
        assert len(generate_otp(8)) == 8


class TestHelpers:
    def test_normalize_email(self):
        assert normalize_email("  Owner@Example.COM ") == "owner@example.com"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Hero Sections", "hero-sections"),
            ("  Cards & Tiles!! ", "cards-tiles"),
            ("already-a-slug", "already-a-slug"),
        ],
    )
    def test_slugify(self, value, expected):
        assert slugify(value) == expected


class TestBuildAppUrl:
    def test_absolute_url_with_query(self):
        with patch.object(settings, "app_url", "https://app.example.com"):
            url = build_app_url("/verify-license/otp", signature="abc.def")

        assert url == "https://app.example.com/verify-license/otp?signature=abc.def"

    def test_relative_url_skips_none(self):
        url = build_app_url("/signin", absolute=False, callbackUrl="/pro", error=None)

        assert url == "/signin?callbackUrl=/pro"
