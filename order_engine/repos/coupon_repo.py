# order_engine/repos/coupon_repo.py
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from order_engine.data.models.coupon import CouponModel, CouponUsageModel


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_active_by_code(self, store_id: str, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel).where(
                CouponModel.store_id == store_id,
                CouponModel.code == code,
                CouponModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def count_customer_usages(self, coupon_id: str, phones: list[str]) -> int:
        return self.db.execute(
            select(func.count(CouponUsageModel.id)).where(
                CouponUsageModel.coupon_id == coupon_id,
                or_(*[CouponUsageModel.customer_phone == p for p in phones]),
            )
        ).scalar_one()

    def reserve_use(self, coupon_id: str) -> int:
        """
        Conditional increment, the store decides whether a use is left.
        UPDATE coupons SET uses_count = uses_count + 1
        WHERE id = :id AND (max_uses IS NULL OR uses_count < max_uses)
        """
        result = self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon_id,
                or_(CouponModel.max_uses.is_(None), CouponModel.uses_count < CouponModel.max_uses),
            )
            .values(uses_count=CouponModel.uses_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_usage(self, usage: CouponUsageModel) -> None:
        self.db.add(usage)
        self.db.flush()
