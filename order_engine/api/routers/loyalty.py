# order_engine/api/routers/loyalty.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from order_engine.api.deps import get_cart_service
from order_engine.api.errors import to_http
from order_engine.data.database import get_db
from order_engine.domain.errors import EngineError
from order_engine.domain.schemas import ApplyRewardIn, CartOut, LoyaltyBalanceOut, RewardOut
from order_engine.services.cart_service import CartService
from order_engine.services.loyalty_service import LoyaltyService

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get("/{store_id}/balance", response_model=LoyaltyBalanceOut)
def balance(
    store_id: str,
    cpf: str | None = Query(None),
    phone: str | None = Query(None),
    db: Session = Depends(get_db),
):
    found = LoyaltyService(db).lookup(store_id, cpf=cpf, phone=phone)
    if found is None:
        raise to_http(LookupError("Customer not found"))
    return found


@router.get("/{store_id}/rewards", response_model=List[RewardOut])
def rewards(store_id: str, db: Session = Depends(get_db)):
    return LoyaltyService(db).available_rewards(store_id)


@router.post("/{store_id}/apply", response_model=CartOut)
def apply_reward(
    store_id: str,
    payload: ApplyRewardIn,
    db: Session = Depends(get_db),
    carts: CartService = Depends(get_cart_service),
):
    """Attaches a reward to the cart; `reward_id: null` removes it. Points move only at checkout."""
    try:
        reward = None
        if payload.reward_id:
            reward = LoyaltyService(db).apply_reward(store_id, payload.reward_id, cpf=payload.cpf, phone=payload.phone)
        return carts.apply_reward(payload.cart_id, store_id, reward)
    except (LookupError, EngineError) as e:
        raise to_http(e)
