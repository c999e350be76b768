import math
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, tzinfo
from enum import StrEnum
from typing import Any


def compute_delay(attempt: int, base_seconds: int = 30, cap_exponent: int = 9) -> int:
    """
    Cooldown in seconds after the ``attempt``-th send (0-based).

    Args:
        attempt: Number of sends already made in this session, minus one.
        base_seconds: Delay after the first send.
        cap_exponent: Highest power of two applied to the base delay.

    Returns:
        int: ``base_seconds * 2 ** min(attempt, cap_exponent)``
    """
    return base_seconds * 2 ** min(max(attempt, 0), cap_exponent)


class CooldownReason(StrEnum):
    COOLDOWN = "cooldown"
    DAILY_LIMIT = "daily_limit"


@dataclass(frozen=True)
class CooldownCheck:
    allowed: bool
    reason: CooldownReason | None = None
    retry_after: int = 0


@dataclass(frozen=True)
class CooldownState:
    """
    Send throttle for one (flow, identity) pair.

    The value is immutable; every transition returns a new state so the caller decides
    where it is persisted.
    """

    session_attempts: int = 0
    daily_attempts: int = 0
    day: date | None = None
    cooldown_started_at: datetime | None = None
    cooldown_seconds: int = 0

    def for_day(self, today: date) -> "CooldownState":
        """Reset the daily counter when the calendar day changed."""
        if self.day == today:
            return self

        return replace(self, daily_attempts=0, day=today)

    def remaining(self, now: datetime) -> int:
        if self.cooldown_started_at is None or self.cooldown_seconds <= 0:
            return 0

        elapsed = (now - self.cooldown_started_at).total_seconds()
        return max(0, math.ceil(self.cooldown_seconds - elapsed))

    def check(self, now: datetime, daily_limit: int, tz: tzinfo | None = None) -> CooldownCheck:
        """
        Decide whether another code may be sent at ``now``.

        Args:
            now: Current time (timezone-aware).
            daily_limit: Maximum sends per calendar day.
            tz: Timezone that defines the day boundary, defaults to ``now``'s.

        Returns:
            CooldownCheck: ``allowed`` or the blocking reason with seconds to wait.
        """
        current = self.for_day(now.astimezone(tz).date())

        if current.daily_attempts >= daily_limit:
            return CooldownCheck(allowed=False, reason=CooldownReason.DAILY_LIMIT)

        wait = current.remaining(now)
        if wait > 0:
            return CooldownCheck(allowed=False, reason=CooldownReason.COOLDOWN, retry_after=wait)

        return CooldownCheck(allowed=True)

    def register_send(
        self,
        now: datetime,
        base_seconds: int = 30,
        cap_exponent: int = 9,
        tz: tzinfo | None = None,
    ) -> "CooldownState":
        """Record a successful send and start the next cooldown."""
        current = self.for_day(now.astimezone(tz).date())
        session_attempts = current.session_attempts + 1

        return replace(
            current,
            session_attempts=session_attempts,
            daily_attempts=current.daily_attempts + 1,
            cooldown_started_at=now,
            cooldown_seconds=compute_delay(session_attempts - 1, base_seconds, cap_exponent),
        )

    def clear_session(self) -> "CooldownState":
        """Forget the backoff after a successful verification; the daily count is kept."""
        return replace(self, session_attempts=0, cooldown_started_at=None, cooldown_seconds=0)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["day"] = self.day.isoformat() if self.day else None
        data["cooldown_started_at"] = (
            self.cooldown_started_at.isoformat() if self.cooldown_started_at else None
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CooldownState":
        return cls(
            session_attempts=int(data.get("session_attempts", 0)),
            daily_attempts=int(data.get("daily_attempts", 0)),
            day=date.fromisoformat(data["day"]) if data.get("day") else None,
            cooldown_started_at=(
                datetime.fromisoformat(data["cooldown_started_at"])
                if data.get("cooldown_started_at")
                else None
            ),
            cooldown_seconds=int(data.get("cooldown_seconds", 0)),
        )
