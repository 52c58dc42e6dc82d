from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from order_engine.data.models.loyalty import (
    CustomerPointsModel,
    LoyaltyRewardModel,
    LoyaltySettingsModel,
    PointTransactionModel,
)


class LoyaltyRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_settings(self, store_id: str) -> LoyaltySettingsModel | None:
        return self.db.execute(
            select(LoyaltySettingsModel).where(LoyaltySettingsModel.store_id == store_id)
        ).scalar_one_or_none()

    def find_customer(self, store_id: str, cpf: str | None = None, phones: list[str] | None = None) -> CustomerPointsModel | None:
        query = select(CustomerPointsModel).where(CustomerPointsModel.store_id == store_id)
        if cpf:
            query = query.where(CustomerPointsModel.customer_cpf == cpf)
        elif phones:
            query = query.where(or_(*[CustomerPointsModel.customer_phone == p for p in phones]))
        else:
            return None
        return self.db.execute(query.limit(1)).scalar_one_or_none()

    def list_rewards(self, store_id: str) -> list[LoyaltyRewardModel]:
        return list(self.db.execute(
            select(LoyaltyRewardModel)
            .where(LoyaltyRewardModel.store_id == store_id, LoyaltyRewardModel.is_active.is_(True))
            .order_by(LoyaltyRewardModel.points_required)
        ).scalars().all())

    def get_reward(self, reward_id: str) -> LoyaltyRewardModel | None:
        return self.db.get(LoyaltyRewardModel, reward_id)

    def debit_points(self, customer_id: str, points: int) -> int:
        # conditional: never drives the balance below zero
        result = self.db.execute(
            update(CustomerPointsModel)
            .where(CustomerPointsModel.id == customer_id, CustomerPointsModel.total_points >= points)
            .values(
                total_points=CustomerPointsModel.total_points - points,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_redemptions(self, reward_id: str) -> None:
        self.db.execute(
            update(LoyaltyRewardModel)
            .where(LoyaltyRewardModel.id == reward_id)
            .values(redemptions_count=LoyaltyRewardModel.redemptions_count + 1)
            .execution_options(synchronize_session=False)
        )

    def add_customer(self, customer: CustomerPointsModel) -> CustomerPointsModel:
        self.db.add(customer)
        self.db.flush()
        return customer

    def add_transaction(self, tx: PointTransactionModel) -> None:
        self.db.add(tx)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
