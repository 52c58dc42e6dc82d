# order_engine/services/loyalty_service.py
import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from order_engine.data.models.loyalty import CustomerPointsModel, LoyaltyRewardModel, PointTransactionModel
from order_engine.domain.entities import AppliedReward, DiscountType
from order_engine.domain.errors import ConflictError, ValidationError
from order_engine.repos.loyalty_repo import LoyaltyRepo
from order_engine.services.coupon_service import normalize_phone, phone_variants
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


def clean_cpf(cpf: str | None) -> str | None:
    digits = re.sub(r"\D", "", cpf or "")
    return digits or None


def tier_for(lifetime_points: int, settings) -> str:
    if not settings.tiers_enabled:
        return "bronze"
    if lifetime_points >= (settings.tier_gold_min or 1500):
        return "gold"
    if lifetime_points >= (settings.tier_silver_min or 500):
        return "silver"
    return "bronze"


class LoyaltyService:
    """
    Points ledger around an order: rewards are only referenced by the cart;
    debit and earn happen after the order exists.
    """

    def __init__(self, db: Session):
        self.repo = LoyaltyRepo(db)

    def is_enabled(self, store_id: str) -> bool:
        settings = self.repo.get_settings(store_id)
        return bool(settings and settings.is_enabled)

    def lookup(self, store_id: str, cpf: str | None = None, phone: str | None = None) -> Dict[str, Any] | None:
        customer = self.repo.find_customer(store_id, cpf=clean_cpf(cpf), phones=phone_variants(phone))
        if customer is None:
            return None
        return {
            "customer_name": customer.customer_name,
            "customer_cpf": customer.customer_cpf,
            "total_points": customer.total_points,
            "tier": customer.tier,
        }

    def available_rewards(self, store_id: str) -> list[LoyaltyRewardModel]:
        return self.repo.list_rewards(store_id)

    def apply_reward(self, store_id: str, reward_id: str, cpf: str | None = None, phone: str | None = None) -> AppliedReward:
        reward = self.repo.get_reward(reward_id)
        if reward is None or reward.store_id != store_id or not reward.is_active:
            raise ValidationError("Reward not available")
        if not self.is_enabled(store_id):
            raise ValidationError("Loyalty program is not enabled")

        customer = self.repo.find_customer(store_id, cpf=clean_cpf(cpf), phones=phone_variants(phone))
        if customer is None or customer.total_points < reward.points_required:
            raise ValidationError("Not enough points for this reward")

        return AppliedReward(
            reward_id=reward.id,
            reward_name=reward.name,
            points_used=reward.points_required,
            discount_type=DiscountType.PERCENTAGE if reward.is_percentage else DiscountType.FIXED,
            discount_value=Decimal(reward.reward_value or 0),
            customer_cpf=customer.customer_cpf,
            customer_phone=customer.customer_phone,
        )

    def redeem(self, store_id: str, reward: AppliedReward, order_id: str, order_number: int) -> None:
        customer = self.repo.find_customer(
            store_id,
            cpf=clean_cpf(reward.customer_cpf),
            phones=phone_variants(reward.customer_phone),
        )
        if customer is None:
            raise ConflictError("Loyalty customer not found")

        try:
            if self.repo.debit_points(customer.id, reward.points_used) == 0:
                raise ConflictError("Not enough points for this reward")

            self.repo.add_transaction(
                PointTransactionModel(
                    store_id=store_id,
                    customer_phone=normalize_phone(customer.customer_phone),
                    customer_cpf=customer.customer_cpf,
                    points=-reward.points_used,
                    type="redeemed",
                    description=f"Redeemed: {reward.reward_name} - Order #{order_number}",
                    reward_id=reward.reward_id,
                    order_id=order_id,
                )
            )
            self.repo.increment_redemptions(reward.reward_id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Redeemed {reward.points_used} points for order {order_id}")

    def award_points(
        self,
        store_id: str,
        cpf: str | None,
        phone: str | None,
        name: str | None,
        subtotal: Decimal,
        order_number: int,
    ) -> int:
        """Earn points on the subtotal, enrolling the customer on first purchase."""
        cpf = clean_cpf(cpf)
        if not cpf or len(cpf) != 11:
            return 0

        settings = self.repo.get_settings(store_id)
        if settings is None or not settings.is_enabled:
            return 0

        points = 0
        if subtotal >= (settings.min_order_for_points or 0):
            points = math.floor(Decimal(subtotal) * Decimal(settings.points_per_currency or 1))

        clean_phone = normalize_phone(phone)
        now = datetime.now(timezone.utc)

        try:
            customer = self.repo.find_customer(store_id, cpf=cpf)
            if customer is not None:
                customer.total_points += points
                customer.lifetime_points += points
                customer.tier = tier_for(customer.lifetime_points, settings)
                customer.customer_phone = clean_phone or customer.customer_phone
                customer.customer_name = name or customer.customer_name
                customer.updated_at = now
            else:
                bonus = settings.welcome_bonus or 0
                initial = points + bonus
                self.repo.add_customer(
                    CustomerPointsModel(
                        store_id=store_id,
                        customer_phone=clean_phone,
                        customer_cpf=cpf,
                        customer_name=name,
                        total_points=initial,
                        lifetime_points=initial,
                        tier=tier_for(initial, settings),
                        updated_at=now,
                    )
                )
                if bonus > 0:
                    self.repo.add_transaction(
                        PointTransactionModel(
                            store_id=store_id,
                            customer_phone=clean_phone,
                            customer_cpf=cpf,
                            points=bonus,
                            type="bonus",
                            description="Welcome bonus",
                        )
                    )

            if points > 0:
                self.repo.add_transaction(
                    PointTransactionModel(
                        store_id=store_id,
                        customer_phone=clean_phone,
                        customer_cpf=cpf,
                        points=points,
                        type="earned",
                        description=f"Order #{order_number} - {Decimal(subtotal):.2f}",
                    )
                )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Awarded {points} points to customer {cpf} for order #{order_number}")
        return points
