# order_engine/services/pricing.py
"""
Pure price computation shared by the storefront checkout and the point of sale.

Every function takes an optional reference clock so the promotion window test
is deterministic under test.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from order_engine.domain.entities import (
    AppliedCoupon,
    AppliedReward,
    CartLine,
    CouponType,
    DiscountType,
    ManualDiscount,
    PricedItem,
)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _aware(value: datetime) -> datetime:
    # naive timestamps from the store are UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def promotion_active(item: PricedItem, now: datetime | None = None) -> bool:
    if item.promotional_price is None:
        return False
    now = _aware(now or datetime.now(timezone.utc))
    start = item.promotion_start_at
    end = item.promotion_end_at
    if start is not None and now < _aware(start):
        return False
    if end is not None and now > _aware(end):
        return False
    return True


def effective_price(item: PricedItem, now: datetime | None = None) -> Decimal:
    if promotion_active(item, now):
        return Decimal(item.promotional_price)
    # a null price is a zero-cost addition, never "inherit parent price"
    return Decimal(item.price) if item.price is not None else ZERO


def line_unit_price(line: CartLine, now: datetime | None = None) -> Decimal:
    if line.selected_variation is not None:
        root = Decimal(line.selected_variation.price)
    else:
        root = effective_price(line.item, now)
    complements = sum(
        (effective_price(c.item, now) * c.quantity for c in line.complements),
        ZERO,
    )
    return root + complements


def line_total(line: CartLine, now: datetime | None = None) -> Decimal:
    return quantize(line_unit_price(line, now) * line.quantity)


def subtotal(lines: Iterable[CartLine], now: datetime | None = None) -> Decimal:
    return quantize(sum((line_total(l, now) for l in lines), ZERO))


def _capped_discount(discount_type: DiscountType, value: Decimal, base: Decimal) -> Decimal:
    if base <= ZERO or value <= ZERO:
        return ZERO
    if discount_type == DiscountType.PERCENTAGE:
        pct = min(Decimal(value), HUNDRED)
        return quantize(base * pct / HUNDRED)
    return quantize(min(Decimal(value), base))


def manual_discount_amount(discount: ManualDiscount | None, base: Decimal) -> Decimal:
    if discount is None:
        return ZERO
    return _capped_discount(discount.type, discount.value, base)


def reward_discount_amount(reward: AppliedReward | None, base: Decimal) -> Decimal:
    if reward is None:
        return ZERO
    return _capped_discount(reward.discount_type, reward.discount_value, base)


def coupon_discount_amount(coupon_type: CouponType, value: Decimal, base: Decimal) -> Decimal:
    """Contribution of a coupon to the subtotal discount."""
    if coupon_type in (CouponType.PERCENTAGE, CouponType.COMBINED):
        return _capped_discount(DiscountType.PERCENTAGE, value, base)
    if coupon_type == CouponType.FIXED:
        return _capped_discount(DiscountType.FIXED, value, base)
    # free_shipping and delivery_discount only touch the delivery fee
    return ZERO


def delivery_fee_after_coupon(coupon: AppliedCoupon | None, base_fee: Decimal) -> Decimal:
    base_fee = quantize(base_fee)
    if coupon is None:
        return base_fee
    if coupon.free_shipping:
        return ZERO
    if coupon.discount_type == CouponType.DELIVERY_DISCOUNT:
        reduction = base_fee * Decimal(coupon.discount_value) / HUNDRED
        return max(ZERO, quantize(base_fee - reduction))
    return base_fee


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: Decimal
    base_delivery_fee: Decimal
    delivery_fee: Decimal
    coupon_discount: Decimal
    loyalty_discount: Decimal
    manual_discount: Decimal
    discount: Decimal
    total: Decimal

    @property
    def delivery_discount(self) -> Decimal:
        return self.base_delivery_fee - self.delivery_fee


def checkout_totals(
    cart_subtotal: Decimal,
    base_delivery_fee: Decimal = ZERO,
    coupon: AppliedCoupon | None = None,
    reward: AppliedReward | None = None,
    manual: ManualDiscount | None = None,
) -> CheckoutTotals:
    cart_subtotal = quantize(cart_subtotal)
    fee = delivery_fee_after_coupon(coupon, base_delivery_fee)

    coupon_amount = (
        coupon_discount_amount(coupon.discount_type, coupon.discount_value, cart_subtotal)
        if coupon else ZERO
    )
    loyalty_amount = reward_discount_amount(reward, cart_subtotal)
    manual_amount = manual_discount_amount(manual, cart_subtotal)

    # discounts never eat into the delivery fee
    discount = min(coupon_amount + loyalty_amount + manual_amount, cart_subtotal)
    total = max(ZERO, cart_subtotal + fee - discount)

    return CheckoutTotals(
        subtotal=cart_subtotal,
        base_delivery_fee=quantize(base_delivery_fee),
        delivery_fee=fee,
        coupon_discount=coupon_amount,
        loyalty_discount=loyalty_amount,
        manual_discount=manual_amount,
        discount=discount,
        total=quantize(total),
    )
