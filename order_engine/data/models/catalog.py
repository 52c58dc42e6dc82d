# order_engine/data/models/catalog.py
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String

from order_engine.data.database import Base


class CatalogItemModel(Base):
    __tablename__ = "catalog_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    category_id = Column(String(36), nullable=True)
    name = Column(String, nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    promotional_price = Column(Numeric(10, 2), nullable=True)
    promotion_start_at = Column(DateTime(timezone=True), nullable=True)
    promotion_end_at = Column(DateTime(timezone=True), nullable=True)

    # menu | stock
    origin = Column(String(10), nullable=False, default="menu")
    # [{"name": "Large", "price": "59.90"}, ...]
    variations = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)


class OptionGroupModel(Base):
    __tablename__ = "option_groups"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    category_id = Column(String(36), nullable=False)
    name = Column(String, nullable=False)

    selection_type = Column(String(10), nullable=False, default="single")
    is_required = Column(Boolean, nullable=False, default=False)
    min_selections = Column(Integer, nullable=False, default=0)
    max_selections = Column(Integer, nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)


class OptionItemModel(Base):
    __tablename__ = "option_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    group_id = Column(String(36), ForeignKey("option_groups.id"), nullable=False, index=True)
    category_id = Column(String(36), nullable=True)
    name = Column(String, nullable=False)

    additional_price = Column(Numeric(10, 2), nullable=True)
    promotional_price = Column(Numeric(10, 2), nullable=True)
    promotion_start_at = Column(DateTime(timezone=True), nullable=True)
    promotion_end_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)
