# order_engine/data/models/coupon.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String

from order_engine.data.database import Base


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    code = Column(String(64), nullable=False, index=True)

    # fixed | percentage | free_shipping | combined | delivery_discount
    discount_type = Column(String(20), nullable=False, default="percentage")
    discount_value = Column(Numeric(10, 2), nullable=False, default=0)

    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)

    max_uses = Column(Integer, nullable=True)
    uses_count = Column(Integer, nullable=False, default=0)
    max_uses_per_customer = Column(Integer, nullable=True)
    min_order_value = Column(Numeric(10, 2), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)


class CouponUsageModel(Base):
    __tablename__ = "coupon_usages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    coupon_id = Column(String(36), ForeignKey("coupons.id"), nullable=False, index=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False)
    customer_phone = Column(String, nullable=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
