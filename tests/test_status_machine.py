"""
Tests for status writes, the in-flight lock, printing and auto-print.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import requests

from order_engine.data.models import OrderModel, StoreModel
from order_engine.domain.errors import ConflictError, IntegrationFailure, ValidationError
from order_engine.domain.status import TRACKING, OrderStatus
from order_engine.services.dispatch_client import DispatchClient
from order_engine.services.lock_service import LockService
from order_engine.services.realtime import LocalChangeBus, OrderBoard
from order_engine.services.status_machine import OrderStatusMachine


@pytest.fixture
def order(db, store) -> OrderModel:
    order = OrderModel(
        id="order-1",
        store_id="store-1",
        order_number=7,
        customer_name="Ana",
        customer_phone="11999990000",
        order_type="delivery",
        items=[{"name": "Burger", "quantity": 1, "total": "45.90", "complements": []}],
        subtotal=Decimal("45.90"),
        delivery_fee=Decimal("5.00"),
        total=Decimal("50.90"),
        address={"street": "Rua A", "number": "10", "neighborhood": "Centro"},
        payment_method="pix",
        created_at=datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc),
    )
    db.add(order)
    db.commit()
    return order


@pytest.fixture
def bus() -> LocalChangeBus:
    return LocalChangeBus()


@pytest.fixture
def lock(redis_client) -> LockService:
    return LockService(client=redis_client)


@pytest.fixture
def machine(db, lock, bus, notifier, dispatcher) -> OrderStatusMachine:
    return OrderStatusMachine(db=db, lock=lock, bus=bus, notifier=notifier, dispatcher=dispatcher)


def _count_writes(machine: OrderStatusMachine) -> list:
    calls = []
    original = machine.repo.update_status

    def counting(order_id, expected, status):
        calls.append((expected, status))
        return original(order_id, expected, status)

    machine.repo.update_status = counting
    return calls


def test_transition_writes_publishes_and_notifies(db, machine, order, bus, notifier):
    board = OrderBoard("store-1")
    board.attach(bus)

    row = machine.transition("order-1", "preparing")

    assert row["status"] == "preparing"
    assert db.get(OrderModel, "order-1").status == "preparing"
    assert board.rows["order-1"]["status"] == "preparing"
    assert notifier.sent == [("order-1", "preparing")]


def test_advance_follows_the_requested_view(machine, order):
    assert machine.advance("order-1")["status"] == "preparing"
    assert machine.advance("order-1", TRACKING)["status"] == "ready"


def test_backward_transition_is_rejected(machine, order):
    machine.transition("order-1", "ready")
    with pytest.raises(ValidationError):
        machine.transition("order-1", "preparing")


def test_cancel_accepts_either_spelling(machine, order):
    assert machine.transition("order-1", "canceled")["status"] == "cancelled"


def test_unknown_order(machine, store):
    with pytest.raises(LookupError):
        machine.transition("missing", "preparing")


def test_change_already_in_flight_is_rejected(machine, order, lock):
    assert lock.acquire_status_lock("order-1", "someone-else")

    with pytest.raises(ConflictError):
        machine.transition("order-1", "preparing")

    assert order.status == "pending"


def test_lock_is_released_after_write(machine, order, lock):
    machine.transition("order-1", "preparing")
    assert lock.acquire_status_lock("order-1", "next")


def test_stale_status_is_a_conflict(db, machine, order):
    """The write only lands if the order is still in the status it was read in."""
    original = machine.repo.update_status

    def moved_meanwhile(order_id, expected, status):
        db.query(OrderModel).filter(OrderModel.id == order_id).update({"status": "ready"})
        return original(order_id, expected, status)

    machine.repo.update_status = moved_meanwhile

    with pytest.raises(ConflictError):
        machine.transition("order-1", "preparing")


def test_notification_failure_does_not_undo_the_write(db, machine, order, notifier):
    def broken(order_id, status):
        raise RuntimeError("broker down")

    notifier.enqueue_status = broken

    row = machine.transition("order-1", "preparing")

    assert row["status"] == "preparing"
    assert db.get(OrderModel, "order-1").status == "preparing"


def test_explicit_print_never_changes_status(machine, order, dispatcher):
    calls = _count_writes(machine)

    result = machine.print_order("order-1", custom_notes="No onions")

    assert result["job_id"] == "1"
    assert calls == []
    assert dispatcher.print_jobs[0]["payload"]["notes"] == "No onions"
    assert dispatcher.print_jobs[0]["title"] == "Order #7"


def test_auto_print_moves_pending_to_preparing_exactly_once(db, machine, order, dispatcher):
    db.get(StoreModel, "store-1").auto_print = True
    db.commit()
    calls = _count_writes(machine)

    row = machine.auto_print("order-1")

    assert row["status"] == "preparing"
    assert calls == [("pending", "preparing")]
    assert len(dispatcher.print_jobs) == 1


def test_auto_print_leaves_order_already_moving(db, machine, order):
    db.get(StoreModel, "store-1").auto_print = True
    db.commit()
    machine.transition("order-1", "ready")
    calls = _count_writes(machine)

    assert machine.auto_print("order-1") is None
    assert calls == []


def test_print_failure_keeps_order_pending(db, machine, order, dispatcher):
    db.get(StoreModel, "store-1").auto_print = True
    db.commit()
    dispatcher.success = False
    dispatcher.reason = "Printer offline"
    calls = _count_writes(machine)

    with pytest.raises(IntegrationFailure) as exc:
        machine.auto_print("order-1")

    assert exc.value.message == "Printer offline"
    assert calls == []
    assert db.get(OrderModel, "order-1").status == OrderStatus.PENDING.value


def test_auto_print_disabled_does_nothing(machine, order, dispatcher):
    assert machine.auto_print("order-1") is None
    assert dispatcher.print_jobs == []


def test_dispatch_retry_still_means_one_status_write(db, lock, bus, notifier, order, monkeypatch):
    db.get(StoreModel, "store-1").auto_print = True
    db.commit()
    posts = []

    class Accepted:
        content = b"{}"

        def raise_for_status(self):
            pass

        def json(self):
            return {"id": 42}

    def flaky_post(url, json, timeout):
        posts.append(url)
        if len(posts) == 1:
            raise requests.ConnectionError("connection reset")
        return Accepted()

    monkeypatch.setattr(requests, "post", flaky_post)
    machine = OrderStatusMachine(db=db, lock=lock, bus=bus, notifier=notifier, dispatcher=DispatchClient(base_url="http://dispatch"))
    calls = _count_writes(machine)

    row = machine.auto_print("order-1")

    assert len(posts) == 2
    assert calls == [("pending", "preparing")]
    assert row["status"] == "preparing"
