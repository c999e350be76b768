"""
Tamper-evident, time-bound tokens for multi-step verification links.

A token is ``<encoded>.<tag>`` where ``encoded`` is the unpadded base64url form of a JSON
envelope ``{"payload": {...}, "issued_at": <ms>, "expires_at": <ms>}`` and ``tag`` is the
hex HMAC-SHA256 of ``encoded`` under ``settings.signature_secret``.

Verification distinguishes three outcomes:

- ``valid=False``: the tag does not match, the token is malformed, or it was issued for
  another flow (``kind``) or stage;
- ``valid=True, expired=True``: authentic but past ``expires_at``; the payload is still
  returned so callers can show the associated email;
- ``valid=True, expired=False``: usable.
"""

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from assetgate.core.config import settings
from assetgate.schemas.signature import SignatureKind, SignatureStage, SignedPayload

Clock = Callable[[], datetime]

_payload_adapter: TypeAdapter[SignedPayload] = TypeAdapter(SignedPayload)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    expired: bool = False
    payload: SignedPayload | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def usable(self) -> bool:
        return self.valid and not self.expired


_INVALID = VerificationResult(valid=False)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(encoded: str) -> bytes:
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding)


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def _compute_tag(encoded: str, secret: str) -> str:
    return hmac.new(secret.encode(), encoded.encode("ascii"), hashlib.sha256).hexdigest()


def issue(
    payload: SignedPayload,
    ttl_seconds: int,
    *,
    secret: str | None = None,
    clock: Clock = utc_now,
) -> str:
    """
    Create a signed token carrying ``payload`` that expires ``ttl_seconds`` from now.

    Args:
        payload: One of the signed payload flavors.
        ttl_seconds: Lifetime of the token in seconds.
        secret: HMAC key, defaults to ``settings.signature_secret``.
        clock: Time source.

    Returns:
        str: The encoded token, safe for use in a query string.
    """
    issued_at = _to_ms(clock())
    envelope = {
        "payload": payload.model_dump(mode="json"),
        "issued_at": issued_at,
        "expires_at": issued_at + ttl_seconds * 1000,
    }
    encoded = _b64encode(json.dumps(envelope, separators=(",", ":"), sort_keys=True).encode())

    return f"{encoded}.{_compute_tag(encoded, secret or settings.signature_secret)}"


def verify(
    token: str | None,
    kind: SignatureKind,
    stage: SignatureStage | None = None,
    *,
    secret: str | None = None,
    clock: Clock = utc_now,
) -> VerificationResult:
    """
    Verify a token issued by :func:`issue`.

    Args:
        token: The token string from the query string or request body.
        kind: Flavor the caller expects; tokens of another flavor are invalid.
        stage: Stage the caller expects, if it matters to the flow.
        secret: HMAC key, defaults to ``settings.signature_secret``.
        clock: Time source.

    Returns:
        VerificationResult: Never raises for bad input.
    """
    if not token or not token.isascii():
        return _INVALID

    encoded, separator, tag = token.partition(".")
    if not separator or not encoded or not tag:
        return _INVALID

    expected = _compute_tag(encoded, secret or settings.signature_secret)
    if not hmac.compare_digest(expected, tag):
        return _INVALID

    try:
        envelope = json.loads(_b64decode(encoded))
        payload = _payload_adapter.validate_python(envelope["payload"])
        issued_at = _from_ms(int(envelope["issued_at"]))
        expires_at = _from_ms(int(envelope["expires_at"]))
    except (
        binascii.Error,
        UnicodeDecodeError,
        json.JSONDecodeError,
        KeyError,
        TypeError,
        ValueError,
        PydanticValidationError,
    ):
        return _INVALID

    if payload.kind != kind or (stage is not None and payload.stage != stage):
        return _INVALID

    return VerificationResult(
        valid=True,
        expired=clock() > expires_at,
        payload=payload,
        issued_at=issued_at,
        expires_at=expires_at,
    )
