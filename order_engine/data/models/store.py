# order_engine/data/models/store.py
import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text

from order_engine.data.database import Base


class StoreModel(Base):
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)

    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    min_order_value = Column(Numeric(10, 2), nullable=False, default=0)

    auto_print = Column(Boolean, nullable=False, default=False)
    printer_id = Column(String, nullable=True)
    printer_name = Column(String, nullable=True)
    printer_max_retries = Column(Integer, nullable=False, default=2)
    print_footer_message = Column(String, nullable=True)


class DeliveryAreaModel(Base):
    __tablename__ = "delivery_areas"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    fee = Column(Numeric(10, 2), nullable=False, default=0)
    min_order_value = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class StatusMessageModel(Base):
    """Customer message sent when an order enters `status`, {name}/{order} placeholders."""

    __tablename__ = "status_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    template = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
