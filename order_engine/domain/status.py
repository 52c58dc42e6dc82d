# order_engine/domain/status.py
"""
Order statuses.

The kitchen board and the customer tracking page walk different flows. Both
are read through one canonical enum, each view carrying its own mapping from
a canonical status to the step it shows.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        if isinstance(value, cls):
            return value
        value = (value or "").strip().lower()
        if value == "canceled":
            return cls.CANCELLED
        return cls(value)


TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED})


@dataclass(frozen=True)
class StatusView:
    name: str
    flow: Tuple[OrderStatus, ...]
    # canonical status -> step of this view; None means "not shown"
    mapping: Mapping[OrderStatus, Optional[OrderStatus]] = field(default_factory=dict)
    # service types that skip the delivery leg
    short_steps: int | None = None

    def column(self, status: OrderStatus) -> Optional[OrderStatus]:
        return self.mapping.get(status)

    def next_status(self, current: OrderStatus) -> Optional[OrderStatus]:
        step = self.column(current)
        if step is None:
            return None
        idx = self.flow.index(step)
        return self.flow[idx + 1] if idx < len(self.flow) - 1 else None

    def steps(self, order_type: str | None = None) -> list[OrderStatus]:
        if self.short_steps and order_type and order_type != "delivery":
            return list(self.flow[:self.short_steps])
        return list(self.flow)


KITCHEN = StatusView(
    name="kitchen",
    flow=(
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.DELIVERING,
        OrderStatus.DELIVERED,
    ),
    mapping={
        OrderStatus.PENDING: OrderStatus.PENDING,
        OrderStatus.CONFIRMED: OrderStatus.PENDING,
        OrderStatus.PREPARING: OrderStatus.PREPARING,
        OrderStatus.READY: OrderStatus.READY,
        OrderStatus.DELIVERING: OrderStatus.DELIVERING,
        OrderStatus.DELIVERED: OrderStatus.DELIVERED,
        OrderStatus.COMPLETED: None,
        OrderStatus.CANCELLED: None,
    },
)

TRACKING = StatusView(
    name="tracking",
    flow=(
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.DELIVERING,
        OrderStatus.COMPLETED,
    ),
    mapping={
        OrderStatus.PENDING: OrderStatus.PENDING,
        OrderStatus.CONFIRMED: OrderStatus.CONFIRMED,
        OrderStatus.PREPARING: OrderStatus.PREPARING,
        OrderStatus.READY: OrderStatus.READY,
        OrderStatus.DELIVERING: OrderStatus.DELIVERING,
        OrderStatus.DELIVERED: OrderStatus.COMPLETED,
        OrderStatus.COMPLETED: OrderStatus.COMPLETED,
        OrderStatus.CANCELLED: None,
    },
    short_steps=4,
)

VIEWS = {KITCHEN.name: KITCHEN, TRACKING.name: TRACKING}


def next_status(current: OrderStatus, view: StatusView = KITCHEN) -> Optional[OrderStatus]:
    return view.next_status(OrderStatus.parse(current))


def can_transition(current: OrderStatus, target: OrderStatus, view: StatusView = KITCHEN) -> bool:
    current = OrderStatus.parse(current)
    target = OrderStatus.parse(target)
    if current in TERMINAL:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    if target not in view.flow:
        return False
    step = view.column(current)
    if step is None:
        return False
    return view.flow.index(target) > view.flow.index(step)
