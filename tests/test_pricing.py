"""
Tests for price computation: promotion windows, line totals, discounts and
checkout totals.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from order_engine.domain.entities import (
    AppliedCoupon,
    AppliedReward,
    CartLine,
    CatalogItem,
    CouponType,
    DiscountType,
    ManualDiscount,
    OptionItem,
    SelectedComplement,
    Variation,
)
from order_engine.services import pricing

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _promo_item(start=None, end=None) -> CatalogItem:
    return CatalogItem(
        id="x",
        name="X",
        price=Decimal("30.00"),
        promotional_price=Decimal("25.00"),
        promotion_start_at=start,
        promotion_end_at=end,
    )


def _coupon(coupon_type: CouponType, value: str, subtotal: str = "45.90") -> AppliedCoupon:
    return AppliedCoupon(
        id="c",
        code="C",
        discount_type=coupon_type,
        discount_value=Decimal(value),
        discount_amount=pricing.coupon_discount_amount(coupon_type, Decimal(value), Decimal(subtotal)),
    )


class TestEffectivePrice:
    def test_promotion_applies_exactly_at_start(self):
        """The window start is inclusive."""
        item = _promo_item(start=NOW, end=NOW + timedelta(hours=1))
        assert pricing.effective_price(item, NOW) == Decimal("25.00")

    def test_promotion_applies_exactly_at_end(self):
        """The window end is inclusive."""
        item = _promo_item(start=NOW - timedelta(hours=1), end=NOW)
        assert pricing.effective_price(item, NOW) == Decimal("25.00")

    def test_base_price_one_second_after_end(self):
        item = _promo_item(end=NOW)
        assert pricing.effective_price(item, NOW + timedelta(seconds=1)) == Decimal("30.00")

    def test_base_price_before_start(self):
        item = _promo_item(start=NOW)
        assert pricing.effective_price(item, NOW - timedelta(seconds=1)) == Decimal("30.00")

    def test_open_window_is_always_active(self):
        """No bounds means the promotional price is always in effect."""
        assert pricing.effective_price(_promo_item(), NOW) == Decimal("25.00")

    def test_naive_bounds_are_read_as_utc(self):
        item = _promo_item(start=datetime(2025, 3, 10, 12, 0))
        assert pricing.effective_price(item, NOW) == Decimal("25.00")

    def test_missing_price_is_zero(self):
        item = OptionItem(id="k", name="Kiwi", price=None, group_id="fruits")
        assert pricing.effective_price(item, NOW) == Decimal("0.00")


class TestLineTotal:
    def test_complements_are_added_per_unit_and_multiplied_by_quantity(self):
        line = CartLine(
            item=CatalogItem(id="a", name="Acai", price=Decimal("18.00")),
            quantity=2,
            complements=[
                SelectedComplement(item=OptionItem(id="b", name="Banana", price=Decimal("2.00"), group_id="g"), quantity=2),
                SelectedComplement(item=OptionItem(id="s", name="Syrup", price=Decimal("1.50"), group_id="g")),
            ],
        )
        # (18 + 2*2 + 1.5) * 2
        assert pricing.line_total(line, NOW) == Decimal("47.00")

    def test_variation_price_replaces_root_price(self):
        line = CartLine(
            item=_promo_item(),
            selected_variation=Variation(name="Large", price=Decimal("59.90")),
        )
        assert pricing.line_total(line, NOW) == Decimal("59.90")

    def test_subtotal_sums_lines(self):
        lines = [
            CartLine(item=CatalogItem(id="a", name="A", price=Decimal("10.10")), quantity=3),
            CartLine(item=CatalogItem(id="b", name="B", price=Decimal("0.05"))),
        ]
        assert pricing.subtotal(lines, NOW) == Decimal("30.35")


class TestDiscounts:
    def test_manual_percentage_is_capped_at_one_hundred(self):
        discount = ManualDiscount(type=DiscountType.PERCENTAGE, value=Decimal("150"))
        assert pricing.manual_discount_amount(discount, Decimal("45.90")) == Decimal("45.90")

    def test_manual_fixed_is_capped_at_subtotal(self):
        discount = ManualDiscount(type=DiscountType.FIXED, value=Decimal("100"))
        assert pricing.manual_discount_amount(discount, Decimal("45.90")) == Decimal("45.90")

    def test_manual_fixed_ten(self):
        discount = ManualDiscount(type=DiscountType.FIXED, value=Decimal("10"))
        assert pricing.manual_discount_amount(discount, Decimal("45.90")) == Decimal("10.00")

    def test_percentage_rounds_half_up(self):
        discount = ManualDiscount(type=DiscountType.PERCENTAGE, value=Decimal("10"))
        # 10% of 0.25 = 0.025
        assert pricing.manual_discount_amount(discount, Decimal("0.25")) == Decimal("0.03")

    def test_reward_uses_same_capping(self):
        reward = AppliedReward(
            reward_id="r",
            reward_name="Big",
            points_used=10,
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("80"),
        )
        assert pricing.reward_discount_amount(reward, Decimal("45.90")) == Decimal("45.90")


class TestCoupons:
    def test_percentage_coupon(self):
        assert pricing.coupon_discount_amount(CouponType.PERCENTAGE, Decimal("20"), Decimal("45.90")) == Decimal("9.18")

    def test_fixed_coupon_is_capped(self):
        assert pricing.coupon_discount_amount(CouponType.FIXED, Decimal("50"), Decimal("45.90")) == Decimal("45.90")

    def test_shipping_coupons_do_not_touch_subtotal(self):
        for coupon_type in (CouponType.FREE_SHIPPING, CouponType.DELIVERY_DISCOUNT):
            assert pricing.coupon_discount_amount(coupon_type, Decimal("50"), Decimal("45.90")) == Decimal("0.00")

    def test_free_shipping_zeroes_fee(self):
        assert pricing.delivery_fee_after_coupon(_coupon(CouponType.FREE_SHIPPING, "0"), Decimal("5.00")) == Decimal("0.00")

    def test_combined_zeroes_fee_and_discounts_subtotal(self):
        totals = pricing.checkout_totals(Decimal("45.90"), Decimal("5.00"), coupon=_coupon(CouponType.COMBINED, "10"))
        assert totals.delivery_fee == Decimal("0.00")
        assert totals.coupon_discount == Decimal("4.59")
        assert totals.total == Decimal("41.31")

    def test_delivery_discount_takes_percentage_off_fee(self):
        totals = pricing.checkout_totals(Decimal("45.90"), Decimal("5.00"), coupon=_coupon(CouponType.DELIVERY_DISCOUNT, "50"))
        assert totals.delivery_fee == Decimal("2.50")
        assert totals.delivery_discount == Decimal("2.50")
        assert totals.total == Decimal("48.40")


class TestCheckoutTotals:
    def test_twenty_percent_coupon_on_burger(self):
        totals = pricing.checkout_totals(Decimal("45.90"), coupon=_coupon(CouponType.PERCENTAGE, "20"))
        assert totals.discount == Decimal("9.18")
        assert totals.total == Decimal("36.72")

    def test_combined_discounts_never_exceed_subtotal(self):
        """Delivery fee is still charged when discounts eat the whole subtotal."""
        totals = pricing.checkout_totals(
            Decimal("45.90"),
            Decimal("5.00"),
            coupon=_coupon(CouponType.FIXED, "30"),
            manual=ManualDiscount(type=DiscountType.FIXED, value=Decimal("30")),
        )
        assert totals.discount == Decimal("45.90")
        assert totals.total == Decimal("5.00")

    def test_total_never_negative(self):
        totals = pricing.checkout_totals(
            Decimal("45.90"),
            manual=ManualDiscount(type=DiscountType.PERCENTAGE, value=Decimal("100")),
        )
        assert totals.total == Decimal("0.00")
