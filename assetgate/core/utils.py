import re
import secrets

from fastapi import Request
from yarl import URL

from assetgate.core.config import Environment, settings

OTP_LENGTH = 6


def get_client_ip(request: Request) -> str:
    """
    Get client IP address from request headers or remote address

    Args:
        request: FastAPI request object

    Returns:
        Client IP address as a string
    """
    if settings.current_environment == Environment.LOCAL:
        return "localhost"

    if "X-Forwarded-For" in request.headers:
        return request.headers["X-Forwarded-For"].split(",")[0].strip()

    if "X-Real-IP" in request.headers:
        return request.headers["X-Real-IP"].strip()

    return request.client.host if request.client else "unknown"


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Uniformly random numeric code, zero-padded to ``length`` digits."""
    return f"{secrets.randbelow(10**length):0{length}d}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_app_url(path: str, absolute: bool = True, **params: str) -> str:
    """
    Build a frontend URL with query parameters.

    Args:
        path: Page path, e.g. ``/verify-license/otp``.
        absolute: Prefix with ``settings.app_url`` (for emails) or return a relative path.
        **params: Query string parameters; ``None`` values are skipped.

    Returns:
        str: The encoded URL.
    """
    query = {key: value for key, value in params.items() if value is not None}
    url = URL(path).with_query(query) if query else URL(path)

    if absolute:
        return str(URL(settings.app_url).join(url))

    return str(url)


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
