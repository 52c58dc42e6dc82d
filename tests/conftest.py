"""
Test configuration and fixtures.
"""
import os
from decimal import Decimal
from typing import Generator

import pytest

# Set test database URL before importing the app
os.environ["DATABASE_URL"] = "sqlite://"

import fakeredis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from order_engine.api.deps import get_dispatcher, get_notifier, get_print_queue, get_redis
from order_engine.data.database import Base, get_db
from order_engine.data.models import (
    CatalogItemModel,
    CouponModel,
    LoyaltyRewardModel,
    LoyaltySettingsModel,
    OptionGroupModel,
    OptionItemModel,
    StoreModel,
)
from order_engine.domain.entities import (
    CatalogItem,
    ItemOrigin,
    OptionGroup,
    OptionItem,
    SelectionType,
    Variation,
)
from order_engine.main import app
from order_engine.services.catalog import CatalogIndex
from order_engine.services.dispatch_client import DispatchResult

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeDispatcher:
    """Stands in for the print/message dispatcher; records every call."""

    def __init__(self, success: bool = True, reason: str | None = None):
        self.success = success
        self.reason = reason
        self.print_jobs = []
        self.messages = []

    def print_job(self, printer_id, payload, title, max_retries=2):
        self.print_jobs.append({"printer_id": printer_id, "payload": payload, "title": title})
        if not self.success:
            return DispatchResult(success=False, reason=self.reason)
        return DispatchResult(success=True, job_id=str(len(self.print_jobs)))

    def send_message(self, phone, text):
        self.messages.append({"phone": phone, "text": text})
        return DispatchResult(success=self.success, reason=self.reason)


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def enqueue_status(self, order_id, status):
        self.sent.append((order_id, status))


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def print_queue() -> list:
    return []


@pytest.fixture(scope="function")
def client(db: Session, redis_client, dispatcher, notifier, print_queue) -> Generator[TestClient, None, None]:
    """Test client with the database, Redis and outbound integrations overridden."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis_client
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_print_queue] = lambda: print_queue.append

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def catalog() -> CatalogIndex:
    """
    In-memory catalog: a plain burger, a pizza with sizes, a canned soda from
    stock and an acai bowl whose category has a required fruit group (max 3)
    and an optional single-choice sauce group.
    """
    items = [
        CatalogItem(id="burger", name="Burger", price=Decimal("45.90"), category_id="burgers"),
        CatalogItem(
            id="pizza",
            name="Pizza",
            price=Decimal("40.00"),
            category_id="pizzas",
            variations=[
                Variation(name="Medium", price=Decimal("39.90")),
                Variation(name="Large", price=Decimal("59.90")),
            ],
        ),
        CatalogItem(
            id="soda",
            name="Soda",
            price=Decimal("6.00"),
            origin=ItemOrigin.STOCK,
            category_id="drinks",
            variations=[Variation(name="2L", price=Decimal("12.00"))],
        ),
    ]
    groups = [
        OptionGroup(id="acai-sizes", category_id="acai", name="Size", is_primary=True),
        OptionGroup(
            id="fruits",
            category_id="acai",
            name="Fruits",
            selection_type=SelectionType.MULTIPLE,
            is_required=True,
            min_selections=1,
            max_selections=3,
            display_order=1,
        ),
        OptionGroup(id="sauce", category_id="acai", name="Sauce", display_order=2),
        OptionGroup(id="juice-sizes", category_id="juices", name="Juice", is_primary=True),
    ]
    option_items = [
        OptionItem(id="acai-300", name="Acai 300ml", price=Decimal("18.00"), group_id="acai-sizes", category_id="acai"),
        OptionItem(id="orange-juice", name="Orange juice", price=Decimal("8.00"), group_id="juice-sizes", category_id="juices"),
        OptionItem(id="banana", name="Banana", price=Decimal("2.00"), group_id="fruits"),
        OptionItem(id="strawberry", name="Strawberry", price=Decimal("3.00"), group_id="fruits"),
        OptionItem(id="kiwi", name="Kiwi", price=None, group_id="fruits"),
        OptionItem(id="mango", name="Mango", price=Decimal("2.50"), group_id="fruits"),
        OptionItem(id="chocolate", name="Chocolate", price=Decimal("1.50"), group_id="sauce"),
        OptionItem(id="condensed", name="Condensed milk", price=Decimal("1.00"), group_id="sauce"),
    ]
    return CatalogIndex(items=items, groups=groups, option_items=option_items)


@pytest.fixture
def store(db: Session) -> StoreModel:
    """A store with the same catalog as `catalog`, a 20% coupon and loyalty enabled."""
    store = StoreModel(
        id="store-1",
        name="Casa do Acai",
        delivery_fee=Decimal("5.00"),
        min_order_value=Decimal("0"),
        printer_id="printer-1",
        auto_print=False,
        print_footer_message="Thank you!",
    )
    db.add(store)
    db.add_all([
        CatalogItemModel(id="burger", store_id="store-1", name="Burger", price=Decimal("45.90"), category_id="burgers"),
        CatalogItemModel(
            id="pizza",
            store_id="store-1",
            name="Pizza",
            price=Decimal("40.00"),
            category_id="pizzas",
            variations=[{"name": "Medium", "price": "39.90"}, {"name": "Large", "price": "59.90"}],
        ),
        CatalogItemModel(id="soda", store_id="store-1", name="Soda", price=Decimal("6.00"), origin="stock", category_id="drinks"),
        CatalogItemModel(id="old-item", store_id="store-1", name="Retired", price=Decimal("1.00"), is_active=False),
        OptionGroupModel(id="acai-sizes", store_id="store-1", category_id="acai", name="Size", is_primary=True),
        OptionGroupModel(
            id="fruits",
            store_id="store-1",
            category_id="acai",
            name="Fruits",
            selection_type="multiple",
            is_required=True,
            min_selections=1,
            max_selections=3,
            display_order=1,
        ),
        OptionItemModel(id="acai-300", store_id="store-1", group_id="acai-sizes", category_id="acai", name="Acai 300ml", additional_price=Decimal("18.00")),
        OptionItemModel(id="banana", store_id="store-1", group_id="fruits", name="Banana", additional_price=Decimal("2.00")),
        OptionItemModel(id="strawberry", store_id="store-1", group_id="fruits", name="Strawberry", additional_price=Decimal("3.00")),
        CouponModel(id="coupon-20", store_id="store-1", code="PROMO20", discount_type="percentage", discount_value=Decimal("20")),
        LoyaltySettingsModel(store_id="store-1", is_enabled=True, points_per_currency=Decimal("1"), welcome_bonus=10),
        LoyaltyRewardModel(id="reward-10", store_id="store-1", name="R$10 off", points_required=100, reward_value=Decimal("10"), is_percentage=False),
    ])
    db.commit()
    return store
