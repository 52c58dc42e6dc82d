"""
Tests for coupon validation order and redemption.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from order_engine.data.models import CouponModel, CouponUsageModel, OrderModel
from order_engine.domain.errors import ConflictError, CouponRejected
from order_engine.services.coupon_service import CouponResolver, RejectionReason, phone_variants

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _coupon(db, **kwargs) -> CouponModel:
    values = {"store_id": "store-1", "code": "TEST", "discount_type": "percentage", "discount_value": Decimal("10")}
    values.update(kwargs)
    coupon = CouponModel(**values)
    db.add(coupon)
    db.commit()
    return coupon


def _order(db, order_id="order-1", number=1) -> OrderModel:
    order = OrderModel(
        id=order_id,
        store_id="store-1",
        order_number=number,
        customer_name="Ana",
        order_type="pickup",
        items=[],
        subtotal=Decimal("45.90"),
        total=Decimal("45.90"),
    )
    db.add(order)
    db.flush()
    return order


def _reason(resolver, code="TEST", subtotal="45.90", phone=None):
    with pytest.raises(CouponRejected) as exc:
        resolver.resolve(code, "store-1", Decimal(subtotal), customer_phone=phone, now=NOW)
    return exc.value.reason


def test_unknown_code_is_not_found(db, store):
    assert _reason(CouponResolver(db), code="NOPE") == RejectionReason.NOT_FOUND


def test_inactive_coupon_is_not_found(db, store):
    _coupon(db, is_active=False)
    assert _reason(CouponResolver(db)) == RejectionReason.NOT_FOUND


def test_code_is_case_insensitive(db, store):
    applied = CouponResolver(db).resolve("promo20", "store-1", Decimal("45.90"), now=NOW)
    assert applied.discount_amount == Decimal("9.18")


def test_not_yet_valid_is_checked_before_expiry(db, store):
    _coupon(db, valid_from=NOW + timedelta(days=1), valid_until=NOW - timedelta(days=1))
    assert _reason(CouponResolver(db)) == RejectionReason.NOT_YET_VALID


def test_expiry_is_checked_before_usage_limit(db, store):
    _coupon(db, valid_until=NOW - timedelta(seconds=1), max_uses=1, uses_count=1)
    assert _reason(CouponResolver(db)) == RejectionReason.EXPIRED


def test_usage_limit_is_checked_before_minimum(db, store):
    _coupon(db, max_uses=5, uses_count=5, min_order_value=Decimal("100"))
    assert _reason(CouponResolver(db)) == RejectionReason.USAGE_LIMIT


def test_customer_limit_matches_raw_and_normalized_phone(db, store):
    coupon = _coupon(db, max_uses_per_customer=1)
    _order(db)
    # an older row stored the phone as typed
    db.add(CouponUsageModel(coupon_id=coupon.id, store_id="store-1", customer_phone="(11) 99999-0000", order_id="order-1"))
    db.commit()

    assert _reason(CouponResolver(db), phone="(11) 99999-0000") == RejectionReason.CUSTOMER_LIMIT


def test_customer_limit_with_digits_only_usage(db, store):
    coupon = _coupon(db, max_uses_per_customer=1)
    _order(db)
    db.add(CouponUsageModel(coupon_id=coupon.id, store_id="store-1", customer_phone="11999990000", order_id="order-1"))
    db.commit()

    assert _reason(CouponResolver(db), phone="(11) 99999-0000") == RejectionReason.CUSTOMER_LIMIT


def test_below_minimum_is_last(db, store):
    _coupon(db, min_order_value=Decimal("50"))
    assert _reason(CouponResolver(db)) == RejectionReason.BELOW_MINIMUM


def test_phone_variants():
    assert phone_variants("(11) 99999-0000") == ["11999990000", "(11) 99999-0000"]
    assert phone_variants("11999990000") == ["11999990000"]
    assert phone_variants(None) == []


def test_shipping_coupon_keeps_subtotal(db, store):
    _coupon(db, code="FRETE", discount_type="free_shipping", discount_value=Decimal("0"))
    applied = CouponResolver(db).resolve("FRETE", "store-1", Decimal("45.90"), now=NOW)
    assert applied.discount_amount == Decimal("0.00")
    assert applied.free_shipping
    assert CouponResolver.delivery_fee_after(applied, Decimal("5.00")) == Decimal("0.00")


def test_redeem_counts_use_and_records_customer(db, store):
    coupon = _coupon(db, max_uses=2)
    resolver = CouponResolver(db)
    applied = resolver.resolve("TEST", "store-1", Decimal("45.90"), now=NOW)
    _order(db)

    resolver.redeem(applied, "store-1", "order-1", "(11) 99999-0000")
    db.commit()
    db.refresh(coupon)

    assert coupon.uses_count == 1
    usage = db.execute(select(CouponUsageModel)).scalar_one()
    assert usage.customer_phone == "11999990000"


def test_redeem_loses_race_on_last_use(db, store):
    """Two checkouts validated the same last use; only the first one gets it."""
    coupon = _coupon(db, max_uses=1)
    resolver = CouponResolver(db)
    applied = resolver.resolve("TEST", "store-1", Decimal("45.90"), now=NOW)

    _order(db, "order-1")
    resolver.redeem(applied, "store-1", "order-1", None)
    db.commit()

    _order(db, "order-2", 2)
    with pytest.raises(ConflictError):
        resolver.redeem(applied, "store-1", "order-2", None)
    db.rollback()

    db.refresh(coupon)
    assert coupon.uses_count == 1
    assert db.execute(select(func.count(CouponUsageModel.id))).scalar_one() == 1
