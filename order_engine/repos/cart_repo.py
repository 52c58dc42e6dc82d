# order_engine/repos/cart_repo.py
import redis

from order_engine.domain.entities import Cart
from order_engine.utils.retry import redis_retry
from order_engine.utils.settings import CART_TTL_SECONDS, REDIS_URL


class CartStore:
    """
    Cart sessions kept in Redis as JSON.
    Every write pushes the expiry forward, an abandoned cart simply expires.
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int = CART_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def _key(cart_id: str) -> str:
        return f"cart:{cart_id}"

    @redis_retry()
    def get(self, cart_id: str) -> Cart | None:
        raw = self.redis.get(self._key(cart_id))
        if raw is None:
            return None
        return Cart.model_validate_json(raw)

    @redis_retry()
    def save(self, cart: Cart) -> None:
        self.redis.set(self._key(cart.id), cart.model_dump_json(), ex=self.ttl)
