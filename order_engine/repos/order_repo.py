# order_engine/repos/order_repo.py
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from order_engine.data.models.order import OrderModel
from order_engine.data.models.store import DeliveryAreaModel, StatusMessageModel, StoreModel


def order_row(order: OrderModel) -> dict:
    """JSON-safe row as published to realtime subscribers and returned by the API."""
    return {
        "id": order.id,
        "store_id": order.store_id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "order_type": order.order_type,
        "order_source": order.order_source,
        "items": order.items or [],
        "subtotal": str(order.subtotal),
        "delivery_fee": str(order.delivery_fee),
        "discount": str(order.discount),
        "total": str(order.total),
        "address": order.address,
        "table_number": order.table_number,
        "payment_method": order.payment_method,
        "payment_change": str(order.payment_change) if order.payment_change is not None else None,
        "notes": order.notes,
        "status": order.status,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_store(self, store_id: str) -> StoreModel | None:
        return self.db.get(StoreModel, store_id)

    def get_delivery_area(self, store_id: str, area_id: str) -> DeliveryAreaModel | None:
        return self.db.execute(
            select(DeliveryAreaModel).where(
                DeliveryAreaModel.id == area_id,
                DeliveryAreaModel.store_id == store_id,
                DeliveryAreaModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def get_status_message(self, store_id: str, status: str) -> StatusMessageModel | None:
        return self.db.execute(
            select(StatusMessageModel).where(
                StatusMessageModel.store_id == store_id,
                StatusMessageModel.status == status,
                StatusMessageModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def next_order_number(self, store_id: str) -> int:
        current = self.db.execute(
            select(func.max(OrderModel.order_number)).where(OrderModel.store_id == store_id)
        ).scalar_one()
        return (current or 0) + 1

    def add_order(self, order: OrderModel) -> OrderModel:
        # flush only, the caller owns the transaction
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def list_orders(self, store_id: str, statuses: list[str]) -> list[OrderModel]:
        return list(self.db.execute(
            select(OrderModel)
            .where(OrderModel.store_id == store_id, OrderModel.status.in_(statuses))
            .order_by(OrderModel.created_at)
        ).scalars().all())

    def update_status(self, order_id: str, expected: str, status: str) -> int:
        """
        UPDATE orders SET status = :status WHERE id = :id AND status = :expected
        0 rows -> somebody else moved the order first.
        """
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == expected)
            .values(status=status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
