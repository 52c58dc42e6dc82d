import redis

from order_engine.utils.retry import redis_retry
from order_engine.utils.settings import REDIS_URL, STATUS_LOCK_TTL_SECONDS
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one Lua call: only the holder's token releases the key
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    At most one status change in flight per order, across every process
    serving the kitchen board. The key expires on its own if the holder dies.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(order_id: str) -> str:
        return f"order:{order_id}:status-lock"

    @redis_retry()
    def acquire_status_lock(self, order_id: str, token: str, ttl: int = STATUS_LOCK_TTL_SECONDS) -> bool:
        key = self._key(order_id)
        logger.info(f"Acquire lock {key} for {token}")
        # SET order:<id>:status-lock <token> NX EX <ttl>
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_status_lock(self, order_id: str, token: str) -> bool:
        key = self._key(order_id)
        logger.info(f"Release lock {key} for {token}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
