import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint

from order_engine.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    order_number = Column(Integer, nullable=False)

    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False, default="")

    # delivery | pickup | dine_in
    order_type = Column(String(10), nullable=False)
    # digital | pdv
    order_source = Column(String(10), nullable=False, default="digital")

    items = Column(JSON, nullable=False, default=list)
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    address = Column(JSON, nullable=True)
    table_number = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_change = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("store_id", "order_number", name="u_store_order_number"),)
