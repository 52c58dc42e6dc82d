# order_engine/services/order_service.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_engine.data.models.order import OrderModel
from order_engine.data.models.store import StoreModel
from order_engine.domain.entities import AppliedCoupon, ServiceType
from order_engine.domain.errors import ConflictError, IntegrationFailure, ValidationError
from order_engine.domain.schemas import CheckoutRequest
from order_engine.domain.status import KITCHEN, OrderStatus, StatusView
from order_engine.repos.order_repo import OrderRepo, order_row
from order_engine.services import pricing
from order_engine.services.cart_service import CartEngine, CartService
from order_engine.services.coupon_service import CouponResolver
from order_engine.services.loyalty_service import LoyaltyService
from order_engine.services.notification_service import NotificationService
from order_engine.services.realtime import ChangeBus, ChangeEvent, OrderBoard
from order_engine.services.side_effects import run_degraded
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


def order_notes(request: CheckoutRequest, engine: CartEngine, coupon: AppliedCoupon | None) -> str | None:
    reward = engine.cart.applied_reward
    parts = [
        f"[Coupon: {coupon.code}]" if coupon else "",
        f"[Loyalty: {reward.reward_name} - {reward.points_used} pts]" if reward else "",
        f"[Table: {request.table_number}]" if request.table_number else "",
        (request.notes or "").strip(),
    ]
    return " ".join(p for p in parts if p).strip() or None


class OrderService:
    """
    Checkout: turns a cart session into an order row.

    The order row and the coupon reservation commit together. Everything
    after the commit (points, realtime, customer message, auto-print) is
    best effort and never fails an order that already exists.
    """

    def __init__(
        self,
        db: Session,
        carts: CartService,
        bus: ChangeBus,
        notifier: NotificationService,
        enqueue_print: Callable[[str], Any],
    ):
        self.repo = OrderRepo(db)
        self.carts = carts
        self.coupons = CouponResolver(db)
        self.loyalty = LoyaltyService(db)
        self.bus = bus
        self.notifier = notifier
        self.enqueue_print = enqueue_print

    def _store(self, store_id: str) -> StoreModel:
        store = self.repo.get_store(store_id)
        if store is None:
            raise LookupError("Store not found")
        return store

    def _price(self, engine: CartEngine, request: CheckoutRequest, now: datetime | None = None):
        if engine.is_empty:
            raise ValidationError("Cart is empty")

        store = self._store(engine.cart.store_id)
        subtotal = engine.subtotal

        base_fee = pricing.ZERO
        min_order = Decimal(store.min_order_value or 0)
        if request.service_type == ServiceType.DELIVERY:
            if request.delivery_area_id:
                area = self.repo.get_delivery_area(store.id, request.delivery_area_id)
                if area is None:
                    raise ValidationError("We do not deliver to this area")
                base_fee = Decimal(area.fee or 0)
                if area.min_order_value and area.min_order_value > 0:
                    min_order = Decimal(area.min_order_value)
            else:
                base_fee = Decimal(store.delivery_fee or 0)

        coupon = None
        if request.coupon_code:
            coupon = self.coupons.resolve(
                request.coupon_code,
                store.id,
                subtotal,
                customer_phone=request.customer_phone,
                now=now,
            )

        # the counter has no minimum, the storefront does
        if request.order_source == "digital" and min_order > 0 and subtotal < min_order:
            raise ValidationError(f"Minimum order is {pricing.quantize(min_order)}")

        totals = pricing.checkout_totals(
            subtotal,
            base_fee,
            coupon=coupon,
            reward=engine.cart.applied_reward,
            manual=engine.cart.manual_discount,
        )
        return store, coupon, totals

    def quote(self, cart_id: str, request: CheckoutRequest) -> Dict[str, Any]:
        engine = self.carts.load_engine(cart_id)
        _, coupon, totals = self._price(engine, request)
        return {
            "subtotal": totals.subtotal,
            "base_delivery_fee": totals.base_delivery_fee,
            "delivery_fee": totals.delivery_fee,
            "coupon_discount": totals.coupon_discount,
            "loyalty_discount": totals.loyalty_discount,
            "manual_discount": totals.manual_discount,
            "discount": totals.discount,
            "total": totals.total,
            "coupon": coupon.model_dump(mode="json") if coupon else None,
        }

    def submit(self, cart_id: str, request: CheckoutRequest) -> Dict[str, Any]:
        engine = self.carts.load_engine(cart_id)
        store, coupon, totals = self._price(engine, request)
        cart = engine.cart

        order = OrderModel(
            store_id=store.id,
            customer_name=(request.customer_name or cart.customer_name).strip(),
            customer_phone=request.customer_phone or "",
            order_type=request.service_type.value,
            order_source=request.order_source,
            items=engine.snapshot_items(),
            subtotal=totals.subtotal,
            delivery_fee=totals.delivery_fee,
            discount=totals.discount,
            total=totals.total,
            address=request.address if request.service_type == ServiceType.DELIVERY else None,
            table_number=request.table_number,
            payment_method=request.payment_method,
            payment_change=request.payment_change,
            notes=order_notes(request, engine, coupon),
            status=OrderStatus.PENDING.value,
        )

        try:
            order.order_number = self.repo.next_order_number(store.id)
            self.repo.add_order(order)
            if coupon is not None:
                self.coupons.redeem(coupon, store.id, order.id, request.customer_phone)
            self.repo.commit()
        except ConflictError:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Order creation failed for cart {cart_id}: {e}")
            raise IntegrationFailure("Could not create the order")

        row = order_row(order)
        logger.info(f"Order #{order.order_number} ({order.id}) created from cart {cart_id}, total {totals.total}")

        failures = []
        if cart.applied_reward is not None:
            failures.append(run_degraded(
                "loyalty_redeem",
                self.loyalty.redeem,
                store.id,
                cart.applied_reward,
                order.id,
                row["order_number"],
            ))
        cpf = request.cpf_for_points or cart.cpf_for_points
        if cpf:
            failures.append(run_degraded(
                "loyalty_earn",
                self.loyalty.award_points,
                store.id,
                cpf,
                request.customer_phone,
                row["customer_name"],
                totals.subtotal,
                row["order_number"],
            ))
        failures.append(run_degraded(
            "publish",
            self.bus.publish,
            ChangeEvent(type="INSERT", store_id=store.id, order_id=row["id"], row=row),
        ))
        failures.append(run_degraded("notify", self.notifier.enqueue_status, row["id"], row["status"]))
        if store.auto_print:
            failures.append(run_degraded("auto_print", self.enqueue_print, row["id"]))
        failures.append(run_degraded("clear_cart", self.carts.clear, cart_id))

        warnings: List[str] = [f.message for f in failures if f is not None]
        return {"order": row, "warnings": warnings}

    def get_order(self, order_id: str) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)
        if order is None:
            raise LookupError("Order not found")
        return order_row(order)

    def board(self, store_id: str, view: StatusView = KITCHEN) -> Dict[str, List[Dict[str, Any]]]:
        """Initial board state; realtime events take over from here."""
        self._store(store_id)
        statuses = [s.value for s in OrderStatus if view.column(s) is not None]
        board = OrderBoard(store_id, view)
        board.load([order_row(o) for o in self.repo.list_orders(store_id, statuses)])
        return {column.value: rows for column, rows in board.columns().items()}
