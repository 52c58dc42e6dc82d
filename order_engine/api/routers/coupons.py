# order_engine/api/routers/coupons.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from order_engine.api.errors import to_http
from order_engine.data.database import get_db
from order_engine.domain.errors import EngineError
from order_engine.domain.schemas import CouponOut, CouponValidateIn
from order_engine.services.coupon_service import CouponResolver

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=CouponOut)
def validate_coupon(payload: CouponValidateIn, db: Session = Depends(get_db)):
    """Checks the code against the store's coupons; nothing is reserved here."""
    resolver = CouponResolver(db)
    try:
        return resolver.resolve(
            payload.code,
            payload.store_id,
            payload.subtotal,
            customer_phone=payload.customer_phone,
        ).model_dump(mode="json")
    except EngineError as e:
        raise to_http(e)
