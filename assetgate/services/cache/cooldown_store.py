import json
from datetime import timedelta

from loguru import logger
from redis.exceptions import RedisError

from assetgate.core.constants import RedisKeyPrefix
from assetgate.core.cooldown import CooldownState
from assetgate.services.cache.base import BaseRedisClient

COOLDOWN_TTL_SECONDS = int(timedelta(days=1).total_seconds())

# Writes the new state only when the stored value still equals the one read.
# An empty expected value stands for a missing key. Returns 1 when written, 0 otherwise.
COMPARE_AND_SET_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if (current or '') ~= ARGV[1] then
    return 0
end
redis.call('SET', KEYS[1], ARGV[2], 'EX', tonumber(ARGV[3]))
return 1
"""


class CooldownStore(BaseRedisClient):
    """
    Persists the send throttle of each (flow, identity) pair as JSON.

    Reads fail open to a fresh state and writes are best effort. Registering a send goes
    through ``compare_and_set`` so concurrent senders cannot all pass the same check.
    """

    @staticmethod
    def key(flow: str, identity: str) -> str:
        return f"{RedisKeyPrefix.OTP_COOLDOWN}{flow}:{identity}"

    @staticmethod
    def dump(state: CooldownState) -> str:
        return json.dumps(state.to_dict())

    async def load_entry(self, flow: str, identity: str) -> tuple[CooldownState, str]:
        """
        Read the state together with the raw stored value.

        Returns:
            tuple: The state and the raw value, ``""`` when nothing is stored
        """
        if self.redis_client is None:
            return CooldownState(), ""

        try:
            raw = await self.redis_client.get(self.key(flow, identity))
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to load code cooldown for flow {flow}: {e}")
            return CooldownState(), ""

        if not raw:
            return CooldownState(), ""

        raw = raw.decode() if isinstance(raw, bytes) else str(raw)
        try:
            return CooldownState.from_dict(json.loads(raw)), raw
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding unreadable code cooldown for flow {flow}: {e}")
            return CooldownState(), raw

    async def load(self, flow: str, identity: str) -> CooldownState:
        state, _ = await self.load_entry(flow, identity)
        return state

    async def compare_and_set(
        self, flow: str, identity: str, expected: str, state: CooldownState
    ) -> bool:
        """
        Store ``state`` only if the raw value is still ``expected``, atomically.

        Returns:
            bool: False when another writer changed the value first
        """
        if self.redis_client is None:
            return True

        try:
            result = await self.redis_client.eval(
                COMPARE_AND_SET_SCRIPT,
                1,
                self.key(flow, identity),
                expected,
                self.dump(state),
                COOLDOWN_TTL_SECONDS,
            )
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to register code send for flow {flow}: {e}")
            return True

        return int(result) == 1


cooldown_store = CooldownStore()
