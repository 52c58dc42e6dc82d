# order_engine/services/coupon_service.py
import re
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session

from order_engine.data.models.coupon import CouponModel, CouponUsageModel
from order_engine.domain.entities import AppliedCoupon, CouponType
from order_engine.domain.errors import ConflictError, CouponRejected
from order_engine.repos.coupon_repo import CouponRepo
from order_engine.services import pricing
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


class RejectionReason(str, Enum):
    NOT_FOUND = "not_found"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    USAGE_LIMIT = "usage_limit"
    CUSTOMER_LIMIT = "customer_limit"
    BELOW_MINIMUM = "below_minimum"


def normalize_phone(phone: str | None) -> str:
    return re.sub(r"\D", "", phone or "")


def phone_variants(phone: str | None) -> list[str]:
    """Raw and digits-only forms; usage rows were written with either."""
    if not phone:
        return []
    return list(dict.fromkeys([normalize_phone(phone), phone]))


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class CouponResolver:
    """
    Validates a coupon code against the coupon store and computes its
    contribution. Checks run in a fixed order and stop at the first failure.
    """

    def __init__(self, db: Session):
        self.repo = CouponRepo(db)

    def resolve(
        self,
        code: str,
        store_id: str,
        subtotal: Decimal,
        customer_phone: str | None = None,
        now: datetime | None = None,
    ) -> AppliedCoupon:
        now = _aware(now or datetime.now(timezone.utc))
        code = (code or "").strip().upper()

        coupon = self.repo.get_active_by_code(store_id, code) if code else None
        if coupon is None:
            raise CouponRejected("Invalid or inactive coupon", RejectionReason.NOT_FOUND)

        if coupon.valid_from and _aware(coupon.valid_from) > now:
            raise CouponRejected("This coupon is not valid yet", RejectionReason.NOT_YET_VALID)

        if coupon.valid_until and _aware(coupon.valid_until) < now:
            raise CouponRejected("This coupon has expired", RejectionReason.EXPIRED)

        if coupon.max_uses and (coupon.uses_count or 0) >= coupon.max_uses:
            raise CouponRejected("This coupon has reached its usage limit", RejectionReason.USAGE_LIMIT)

        if coupon.max_uses_per_customer and customer_phone:
            used = self.repo.count_customer_usages(coupon.id, phone_variants(customer_phone))
            if used >= coupon.max_uses_per_customer:
                raise CouponRejected(
                    f"You have already used this coupon {coupon.max_uses_per_customer} time(s)",
                    RejectionReason.CUSTOMER_LIMIT,
                )

        if coupon.min_order_value and subtotal < coupon.min_order_value:
            raise CouponRejected(
                f"Minimum order of {pricing.quantize(coupon.min_order_value)} to use this coupon",
                RejectionReason.BELOW_MINIMUM,
            )

        return self.to_applied(coupon, subtotal)

    @staticmethod
    def to_applied(coupon: CouponModel, subtotal: Decimal) -> AppliedCoupon:
        coupon_type = CouponType(coupon.discount_type or CouponType.PERCENTAGE.value)
        value = Decimal(coupon.discount_value or 0)
        return AppliedCoupon(
            id=coupon.id,
            code=coupon.code,
            discount_type=coupon_type,
            discount_value=value,
            discount_amount=pricing.coupon_discount_amount(coupon_type, value, Decimal(subtotal)),
        )

    @staticmethod
    def discount_for(coupon: AppliedCoupon, subtotal: Decimal) -> Decimal:
        return pricing.coupon_discount_amount(coupon.discount_type, coupon.discount_value, Decimal(subtotal))

    @staticmethod
    def delivery_fee_after(coupon: AppliedCoupon | None, fee: Decimal) -> Decimal:
        return pricing.delivery_fee_after_coupon(coupon, fee)

    def redeem(self, applied: AppliedCoupon, store_id: str, order_id: str, customer_phone: str | None) -> None:
        """
        Reserve one use and record the customer row. Runs inside the caller's
        order transaction, after the order row has been flushed; the caller
        commits or rolls back both together.
        """
        if self.repo.reserve_use(applied.id) == 0:
            logger.info(f"Coupon {applied.code} ran out of uses while order {order_id} was being created")
            raise ConflictError("This coupon has reached its usage limit")

        self.repo.add_usage(
            CouponUsageModel(
                coupon_id=applied.id,
                store_id=store_id,
                customer_phone=normalize_phone(customer_phone),
                order_id=order_id,
            )
        )
        logger.info(f"Coupon {applied.code} redeemed for order {order_id}")
