import json
from datetime import UTC, datetime

from faker import Faker

from assetgate.core.cooldown import CooldownState
from assetgate.services.cache.cooldown_store import CooldownStore
from assetgate.services.cache.otp_store import OtpCheck, OtpStore
from tests.schemas import UserCredentials

FIXED_NOW = datetime(2025, 3, 14, 12, 0, tzinfo=UTC)


def generate_user_credentials() -> UserCredentials:
    """
    Generate random user credentials (name, email and password)
    Returns:
        UserCredentials: Generated name, email and password
    """
    faker = Faker()
    password = (
        faker.password(
            length=12, special_chars=False, digits=True, upper_case=True, lower_case=True
        )
        + "@%&"
    )
    email = faker.safe_email()
    return UserCredentials(name=faker.name(), password=password, email=email)


class Clock:
    """Settable time source for code that takes a ``clock`` callable."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemoryOtpStore(OtpStore):
    """OTP store over a dict with the same compare-and-delete semantics."""

    def __init__(self):
        self.codes: dict[str, str] = {}
        self._redis_client = None

    async def save(self, key: str, code: str, ttl_seconds: int | None = None) -> None:
        self.codes[key] = code

    async def check_and_consume(self, key: str, code: str) -> OtpCheck:
        stored = self.codes.get(key)
        if stored is None:
            return OtpCheck.MISSING
        if stored != code.strip():
            return OtpCheck.MISMATCH

        del self.codes[key]
        return OtpCheck.MATCH


class InMemoryCooldownStore(CooldownStore):
    """Cooldown store over a dict of raw JSON values with compare-and-set semantics."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self._redis_client = None

    async def load_entry(self, flow: str, identity: str) -> tuple[CooldownState, str]:
        raw = self.values.get(self.key(flow, identity), "")
        return (CooldownState.from_dict(json.loads(raw)) if raw else CooldownState()), raw

    async def compare_and_set(
        self, flow: str, identity: str, expected: str, state: CooldownState
    ) -> bool:
        key = self.key(flow, identity)
        if self.values.get(key, "") != expected:
            return False

        self.values[key] = self.dump(state)
        return True
