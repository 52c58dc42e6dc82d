# order_engine/services/notification_service.py
from sqlalchemy.orm import Session

from order_engine.celery_worker import celery_app
from order_engine.data.database import SessionLocal
from order_engine.repos.order_repo import OrderRepo
from order_engine.services.dispatch_client import DispatchClient, DispatchResult
from order_engine.services.print_payload import render_status_message
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Customer messages on status changes.
    The HTTP path only enqueues; the Celery worker renders and sends.
    """

    def __init__(self, db: Session | None = None, dispatcher: DispatchClient | None = None):
        self.db = db
        self.dispatcher = dispatcher or DispatchClient()

    @staticmethod
    def enqueue_status(order_id: str, status: str):
        send_status_notification_task.delay(order_id, status)

    def notify_status(self, order_id: str, status: str) -> DispatchResult:
        repo = OrderRepo(self.db)
        order = repo.get_order(order_id)
        if order is None:
            return DispatchResult(success=False, reason="Order not found")

        message = repo.get_status_message(order.store_id, status)
        if message is None:
            logger.info(f"No active message for status '{status}' in store {order.store_id}")
            return DispatchResult(success=False, reason="No message configured")

        text = render_status_message(message.template, order)
        result = self.dispatcher.send_message(order.customer_phone, text)
        if not result.success:
            logger.warning(f"Status message for order #{order.order_number} not sent: {result.reason}")
        return result


@celery_app.task(name="order_engine.services.notification_service.send_status_notification_task")
def send_status_notification_task(order_id: str, status: str):
    db = SessionLocal()
    try:
        result = NotificationService(db).notify_status(order_id, status)
    finally:
        db.close()

    return {"order_id": order_id, "status": status, "sent": result.success, "reason": result.reason}
