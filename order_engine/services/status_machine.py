# order_engine/services/status_machine.py
"""
Status writes for the kitchen board, the tracking page and the printer.

One change per order at a time: a Redis in-flight lock keeps concurrent
requests out, and the store write only lands if the order is still in the
status the request was computed from.
"""
from typing import Any, Dict
from uuid import uuid4

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_engine.domain.errors import ConflictError, IntegrationFailure, ValidationError
from order_engine.domain.status import KITCHEN, OrderStatus, StatusView, can_transition
from order_engine.repos.order_repo import OrderRepo, order_row
from order_engine.services.dispatch_client import DispatchClient
from order_engine.services.lock_service import LockService
from order_engine.services.notification_service import NotificationService
from order_engine.services.print_payload import build_print_payload
from order_engine.services.realtime import ChangeBus, ChangeEvent, RedisChangeBus
from order_engine.services.side_effects import run_degraded
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


class OrderStatusMachine:
    def __init__(
        self,
        db: Session,
        lock: LockService,
        bus: ChangeBus,
        notifier: NotificationService,
        dispatcher: DispatchClient,
    ):
        self.repo = OrderRepo(db)
        self.lock = lock
        self.bus = bus
        self.notifier = notifier
        self.dispatcher = dispatcher

    def _get(self, order_id: str):
        order = self.repo.get_order(order_id)
        if order is None:
            raise LookupError("Order not found")
        return order

    def transition(
        self,
        order_id: str,
        target: OrderStatus | str,
        view: StatusView = KITCHEN,
        notify: bool = True,
    ) -> Dict[str, Any]:
        try:
            target = OrderStatus.parse(target)
        except ValueError:
            raise ValidationError(f"Unknown status: {target}")

        order = self._get(order_id)
        current = OrderStatus.parse(order.status)
        if not can_transition(current, target, view):
            raise ValidationError(f"Cannot move order from {current.value} to {target.value}")

        token = str(uuid4())
        try:
            acquired = self.lock.acquire_status_lock(order_id, token)
        except redis.RedisError as e:
            logger.error(f"Status lock unavailable for order {order_id}: {e}")
            raise IntegrationFailure("Could not update order status")
        if not acquired:
            raise ConflictError("A status change for this order is already in progress")

        try:
            try:
                if self.repo.update_status(order_id, current.value, target.value) == 0:
                    self.repo.rollback()
                    raise ConflictError("Order status was changed by someone else")
                self.repo.commit()
            except SQLAlchemyError as e:
                self.repo.rollback()
                logger.error(f"Status write failed for order {order_id}: {e}")
                raise IntegrationFailure("Could not update order status")
        finally:
            try:
                self.lock.release_status_lock(order_id, token)
            except redis.RedisError as e:
                # the key expires on its own
                logger.warning(f"Could not release status lock for order {order_id}: {e}")

        row = order_row(self.repo.refresh(order))
        logger.info(f"Order #{order.order_number} {current.value} -> {target.value}")

        run_degraded(
            "publish",
            self.bus.publish,
            ChangeEvent(type="UPDATE", store_id=order.store_id, order_id=order_id, row=row),
        )
        if notify:
            run_degraded("notify", self.notifier.enqueue_status, order_id, target.value)
        return row

    def advance(self, order_id: str, view: StatusView = KITCHEN) -> Dict[str, Any]:
        order = self._get(order_id)
        target = view.next_status(OrderStatus.parse(order.status))
        if target is None:
            raise ValidationError("Order is already at its last step")
        return self.transition(order_id, target, view)

    def cancel(self, order_id: str) -> Dict[str, Any]:
        return self.transition(order_id, OrderStatus.CANCELLED)

    def print_order(self, order_id: str, custom_notes: str | None = None) -> Dict[str, Any]:
        """Send the ticket to the store printer. Never touches the status."""
        order = self._get(order_id)
        store = self.repo.get_store(order.store_id)
        if store is None:
            raise LookupError("Store not found")

        payload = build_print_payload(order, store, custom_notes)
        result = self.dispatcher.print_job(
            store.printer_id,
            payload,
            title=f"Order #{order.order_number}",
            max_retries=store.printer_max_retries,
        )
        if not result.success:
            raise IntegrationFailure(result.reason or "Print failed")

        logger.info(f"Printed order #{order.order_number} (job {result.job_id})")
        return {"order_id": order_id, "job_id": result.job_id}

    def auto_print(self, order_id: str) -> Dict[str, Any] | None:
        """
        Print a fresh order and, once the printer accepted it, move it from
        pending to preparing. Returns the new row, or None when nothing moved.
        """
        order = self._get(order_id)
        store = self.repo.get_store(order.store_id)
        if store is None or not store.auto_print:
            return None

        self.print_order(order_id)

        order = self.repo.refresh(order)
        if OrderStatus.parse(order.status) != OrderStatus.PENDING:
            logger.info(f"Order #{order.order_number} already {order.status}, auto-print leaves it")
            return None
        try:
            return self.transition(order_id, OrderStatus.PREPARING, KITCHEN)
        except ConflictError as e:
            logger.info(f"Auto-print status change skipped for order {order_id}: {e.message}")
            return None


def create_status_machine(db: Session) -> OrderStatusMachine:
    return OrderStatusMachine(
        db=db,
        lock=LockService(),
        bus=RedisChangeBus(),
        notifier=NotificationService(db),
        dispatcher=DispatchClient(),
    )
