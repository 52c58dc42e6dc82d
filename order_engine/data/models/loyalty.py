# order_engine/data/models/loyalty.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String

from order_engine.data.database import Base


class LoyaltySettingsModel(Base):
    __tablename__ = "loyalty_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, unique=True)
    is_enabled = Column(Boolean, nullable=False, default=False)

    points_per_currency = Column(Numeric(10, 2), nullable=False, default=1)
    min_order_for_points = Column(Numeric(10, 2), nullable=False, default=0)
    welcome_bonus = Column(Integer, nullable=False, default=0)

    tiers_enabled = Column(Boolean, nullable=False, default=False)
    tier_silver_min = Column(Integer, nullable=False, default=500)
    tier_gold_min = Column(Integer, nullable=False, default=1500)


class LoyaltyRewardModel(Base):
    __tablename__ = "loyalty_rewards"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    points_required = Column(Integer, nullable=False)
    reward_value = Column(Numeric(10, 2), nullable=True)
    is_percentage = Column(Boolean, nullable=False, default=False)
    redemptions_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class CustomerPointsModel(Base):
    __tablename__ = "customer_points"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_phone = Column(String, nullable=True, index=True)
    customer_cpf = Column(String(11), nullable=True, index=True)
    customer_name = Column(String, nullable=True)

    total_points = Column(Integer, nullable=False, default=0)
    lifetime_points = Column(Integer, nullable=False, default=0)
    tier = Column(String(10), nullable=False, default="bronze")
    updated_at = Column(DateTime(timezone=True), nullable=True)


class PointTransactionModel(Base):
    __tablename__ = "point_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_phone = Column(String, nullable=True)
    customer_cpf = Column(String(11), nullable=True)

    points = Column(Integer, nullable=False)
    # earned | redeemed | bonus
    type = Column(String(10), nullable=False)
    description = Column(String, nullable=True)
    reward_id = Column(String(36), nullable=True)
    order_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
