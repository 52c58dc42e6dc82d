# order_engine/services/realtime.py
"""
Realtime fan-out of order changes and the optimistic-update contract used by
the views that consume them.

Delivery is at-least-once with no ordering guarantee across rows, so every
handler applies by id: replaying an event is harmless.
"""
import copy
import json
from collections import defaultdict
from typing import Any, Callable, Dict, List, Literal

import redis
from pydantic import BaseModel

from order_engine.domain.errors import ConflictError, EngineError, IntegrationFailure
from order_engine.domain.status import KITCHEN, TRACKING, OrderStatus, StatusView
from order_engine.utils.retry import redis_retry
from order_engine.utils.settings import REDIS_URL
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[["ChangeEvent"], None]


class ChangeEvent(BaseModel):
    type: Literal["INSERT", "UPDATE", "DELETE"]
    store_id: str
    order_id: str
    row: Dict[str, Any] = {}


def store_channel(store_id: str) -> str:
    return f"orders:store:{store_id}"


def order_channel(order_id: str) -> str:
    return f"orders:order:{order_id}"


class ChangeBus:
    """Publish/subscribe interface; each event goes to its store and order channels."""

    def publish(self, event: ChangeEvent) -> None:
        raise NotImplementedError

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], None]:
        raise NotImplementedError


class LocalChangeBus(ChangeBus):
    """In-process delivery, synchronous. Single-process deployments and tests."""

    def __init__(self):
        self.handlers: Dict[str, List[Handler]] = defaultdict(list)

    def publish(self, event: ChangeEvent) -> None:
        for channel in (store_channel(event.store_id), order_channel(event.order_id)):
            for handler in list(self.handlers[channel]):
                handler(event)

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], None]:
        self.handlers[channel].append(handler)

        def unsubscribe():
            if handler in self.handlers[channel]:
                self.handlers[channel].remove(handler)

        return unsubscribe


class RedisChangeBus(ChangeBus):
    """
    Redis pub/sub. Subscribers call pump() from their own loop to drain
    pending messages; nothing runs on a background thread.
    """

    def __init__(self, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.pubsub = None
        self.handlers: Dict[str, List[Handler]] = defaultdict(list)

    @redis_retry()
    def publish(self, event: ChangeEvent) -> None:
        data = event.model_dump_json()
        for channel in (store_channel(event.store_id), order_channel(event.order_id)):
            self.redis.publish(channel, data)

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], None]:
        if self.pubsub is None:
            self.pubsub = self.redis.pubsub()
        if not self.handlers[channel]:
            self.pubsub.subscribe(channel)
        self.handlers[channel].append(handler)

        def unsubscribe():
            if handler in self.handlers[channel]:
                self.handlers[channel].remove(handler)
            if not self.handlers[channel]:
                self.pubsub.unsubscribe(channel)

        return unsubscribe

    def pump(self, timeout: float = 0.0) -> int:
        """Deliver every message already waiting; returns how many were handled."""
        if self.pubsub is None:
            return 0
        handled = 0
        while True:
            message = self.pubsub.get_message(timeout=timeout)
            if message is None:
                return handled
            if message.get("type") != "message":  # subscribe/unsubscribe acks
                continue
            channel = message["channel"]
            if isinstance(channel, bytes):
                channel = channel.decode()
            try:
                event = ChangeEvent.model_validate(json.loads(message["data"]))
            except ValueError as e:
                logger.warning(f"Dropping malformed event on {channel}: {e}")
                continue
            for handler in list(self.handlers[channel]):
                handler(event)
            handled += 1


def optimistic_update(view, apply: Callable[[], None], commit: Callable[[], Any]) -> Any:
    """
    Snapshot the whole view, apply the change locally, then ask the store.
    On any failure the exact snapshot comes back before the error surfaces.
    """
    snapshot = view.snapshot()
    apply()
    try:
        return commit()
    except EngineError:
        view.restore(snapshot)
        raise
    except Exception as e:
        view.restore(snapshot)
        logger.error(f"Remote update failed, local state restored: {e}")
        raise IntegrationFailure(str(e) or "Update failed") from e


class OrderBoard:
    """Kitchen board for one store: active orders keyed by id, grouped into columns."""

    def __init__(self, store_id: str, view: StatusView = KITCHEN):
        self.store_id = store_id
        self.view = view
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.in_flight: set[str] = set()

    def _visible(self, status: str | None) -> bool:
        try:
            return self.view.column(OrderStatus.parse(status)) is not None
        except ValueError:
            return False

    def load(self, rows: List[Dict[str, Any]]) -> None:
        self.rows = {r["id"]: dict(r) for r in rows if self._visible(r.get("status"))}

    def attach(self, bus: ChangeBus) -> Callable[[], None]:
        return bus.subscribe(store_channel(self.store_id), self.apply)

    def apply(self, event: ChangeEvent) -> None:
        if event.store_id != self.store_id:
            return
        if event.type == "DELETE" or not self._visible(event.row.get("status")):
            self.rows.pop(event.order_id, None)
            return
        self.rows[event.order_id] = dict(event.row)

    def columns(self) -> Dict[OrderStatus, List[Dict[str, Any]]]:
        result: Dict[OrderStatus, List[Dict[str, Any]]] = {s: [] for s in self.view.flow}
        for row in self.rows.values():
            column = self.view.column(OrderStatus.parse(row["status"]))
            result[column].append(row)
        for rows in result.values():
            rows.sort(key=lambda r: r.get("created_at") or "")
        return result

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self.rows)

    def restore(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        self.rows = copy.deepcopy(snapshot)

    def request_status(
        self,
        order_id: str,
        target: OrderStatus,
        commit: Callable[[str, OrderStatus], Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Move a card now, confirm with the store, roll the board back on failure."""
        if order_id in self.in_flight:
            raise ConflictError("A status change for this order is already in progress")

        def apply():
            if self.view.column(target) is None:
                self.rows.pop(order_id, None)
            elif order_id in self.rows:
                self.rows[order_id]["status"] = target.value

        self.in_flight.add(order_id)
        try:
            row = optimistic_update(self, apply, lambda: commit(order_id, target))
        finally:
            self.in_flight.discard(order_id)

        self.apply(ChangeEvent(type="UPDATE", store_id=self.store_id, order_id=order_id, row=row))
        return row


class OrderTracker:
    """Customer-facing tracking of one order."""

    def __init__(self, order_id: str, view: StatusView = TRACKING):
        self.order_id = order_id
        self.view = view
        self.row: Dict[str, Any] | None = None

    def attach(self, bus: ChangeBus) -> Callable[[], None]:
        return bus.subscribe(order_channel(self.order_id), self.apply)

    def apply(self, event: ChangeEvent) -> None:
        if event.order_id != self.order_id:
            return
        self.row = None if event.type == "DELETE" else dict(event.row)

    def progress(self) -> tuple[List[OrderStatus], int | None]:
        """Steps shown to the customer and the index of the current one."""
        if self.row is None:
            return [], None
        steps = self.view.steps(self.row.get("order_type"))
        current = self.view.column(OrderStatus.parse(self.row["status"]))
        return steps, (steps.index(current) if current in steps else None)
