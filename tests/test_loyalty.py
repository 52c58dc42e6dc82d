"""
Tests for the points ledger: enrolment, earning, tiers and reward redemption.
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from order_engine.data.models import CustomerPointsModel, LoyaltyRewardModel, LoyaltySettingsModel, PointTransactionModel
from order_engine.domain.entities import DiscountType
from order_engine.domain.errors import ConflictError, ValidationError
from order_engine.services.loyalty_service import LoyaltyService, clean_cpf, tier_for

CPF = "12345678901"


def _customer(db, points=150, lifetime=150) -> CustomerPointsModel:
    customer = CustomerPointsModel(
        store_id="store-1",
        customer_cpf=CPF,
        customer_phone="11999990000",
        customer_name="Ana",
        total_points=points,
        lifetime_points=lifetime,
    )
    db.add(customer)
    db.commit()
    return customer


def test_clean_cpf_strips_punctuation():
    assert clean_cpf("123.456.789-01") == CPF
    assert clean_cpf("") is None


def test_tiers():
    settings = LoyaltySettingsModel(tiers_enabled=True, tier_silver_min=500, tier_gold_min=1500)
    assert tier_for(499, settings) == "bronze"
    assert tier_for(500, settings) == "silver"
    assert tier_for(1500, settings) == "gold"


def test_first_purchase_enrols_with_welcome_bonus(db, store):
    earned = LoyaltyService(db).award_points("store-1", "123.456.789-01", "(11) 99999-0000", "Ana", Decimal("45.90"), 1)

    customer = db.execute(select(CustomerPointsModel)).scalar_one()
    assert earned == 45
    # 45 earned + 10 welcome bonus
    assert customer.total_points == 55
    assert customer.customer_phone == "11999990000"
    types = sorted(t.type for t in db.execute(select(PointTransactionModel)).scalars())
    assert types == ["bonus", "earned"]


def test_returning_customer_accumulates(db, store):
    _customer(db)
    LoyaltyService(db).award_points("store-1", CPF, None, None, Decimal("20.00"), 2)

    customer = db.execute(select(CustomerPointsModel)).scalar_one()
    assert customer.total_points == 170
    assert customer.lifetime_points == 170


def test_no_points_below_minimum(db, store):
    settings = db.execute(select(LoyaltySettingsModel)).scalar_one()
    settings.min_order_for_points = Decimal("50")
    db.commit()

    assert LoyaltyService(db).award_points("store-1", CPF, None, "Ana", Decimal("45.90"), 1) == 0


def test_invalid_cpf_earns_nothing(db, store):
    assert LoyaltyService(db).award_points("store-1", "123", None, "Ana", Decimal("45.90"), 1) == 0
    assert db.execute(select(CustomerPointsModel)).scalar_one_or_none() is None


def test_apply_reward_requires_enough_points(db, store):
    _customer(db, points=50)
    with pytest.raises(ValidationError):
        LoyaltyService(db).apply_reward("store-1", "reward-10", cpf=CPF)


def test_apply_reward_finds_customer_by_phone(db, store):
    _customer(db)
    reward = LoyaltyService(db).apply_reward("store-1", "reward-10", phone="(11) 99999-0000")

    assert reward.points_used == 100
    assert reward.discount_type == DiscountType.FIXED
    assert reward.discount_value == Decimal("10")
    assert reward.customer_cpf == CPF


def test_redeem_debits_points_once(db, store):
    _customer(db)
    service = LoyaltyService(db)
    reward = service.apply_reward("store-1", "reward-10", cpf=CPF)

    service.redeem("store-1", reward, "order-1", 1)
    with pytest.raises(ConflictError):
        service.redeem("store-1", reward, "order-2", 2)

    customer = db.execute(select(CustomerPointsModel)).scalar_one()
    assert customer.total_points == 50
    assert db.get(LoyaltyRewardModel, "reward-10").redemptions_count == 1


def test_apply_reward_when_program_disabled(db, store):
    _customer(db)
    settings = db.execute(select(LoyaltySettingsModel)).scalar_one()
    settings.is_enabled = False
    db.commit()

    with pytest.raises(ValidationError):
        LoyaltyService(db).apply_reward("store-1", "reward-10", cpf=CPF)
