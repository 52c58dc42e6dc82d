# order_engine/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from order_engine.domain.entities import DiscountType, ServiceType, SplitPayment


class CreateCartIn(BaseModel):
    store_id: str = Field(..., min_length=1)


class ItemIn(BaseModel):
    """Item the user picked from the menu, stock or an option list."""

    item_id: str = Field(..., min_length=1)


class VariationIn(BaseModel):
    name: str = Field(..., min_length=1)


class ComplementIn(BaseModel):
    item_id: str
    group_id: str


class ComplementAdjustIn(ComplementIn):
    delta: int


class QuantityIn(BaseModel):
    delta: int


class NotesIn(BaseModel):
    notes: str = ""


class ManualDiscountIn(BaseModel):
    """`type: null` removes the discount."""

    type: Optional[DiscountType] = None
    value: Optional[Decimal] = None


class CustomerNameIn(BaseModel):
    name: str = ""


class SplitPaymentsIn(BaseModel):
    payments: List[SplitPayment] = []


class CartLineOut(BaseModel):
    id: str
    item_id: str
    name: str
    quantity: int
    variation: Optional[str] = None
    complements: List[Dict[str, Any]] = []
    notes: Optional[str] = None
    total: Decimal


class PickerOut(BaseModel):
    mode: str
    item_id: str
    name: str
    selections: Dict[str, int]
    complements_total: Decimal


class CartOut(BaseModel):
    cart_id: str
    store_id: str
    customer_name: str
    lines: List[CartLineOut]
    picker: Optional[PickerOut] = None
    subtotal: Decimal
    manual_discount_amount: Decimal
    loyalty_discount_amount: Decimal
    final_total: Decimal


class CouponValidateIn(BaseModel):
    store_id: str
    code: str
    subtotal: Decimal = Field(..., ge=0)
    customer_phone: Optional[str] = None


class CouponOut(BaseModel):
    id: str
    code: str
    discount_type: str
    discount_value: Decimal
    discount_amount: Decimal


class LoyaltyBalanceOut(BaseModel):
    customer_name: Optional[str] = None
    customer_cpf: Optional[str] = None
    total_points: int
    tier: str


class RewardOut(BaseModel):
    id: str
    name: str
    points_required: int
    reward_value: Optional[Decimal] = None
    is_percentage: bool = False

    model_config = ConfigDict(from_attributes=True)


class ApplyRewardIn(BaseModel):
    cart_id: str
    reward_id: Optional[str] = None
    cpf: Optional[str] = None
    phone: Optional[str] = None


class CheckoutRequest(BaseModel):
    """Everything checkout needs besides the cart itself."""

    service_type: ServiceType = ServiceType.DELIVERY
    customer_name: Optional[str] = None
    customer_phone: str = ""
    delivery_area_id: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    table_number: Optional[str] = None
    payment_method: Optional[str] = None
    payment_change: Optional[Decimal] = None
    coupon_code: Optional[str] = None
    cpf_for_points: Optional[str] = None
    notes: Optional[str] = None
    order_source: Literal["digital", "pdv"] = "digital"


class QuoteOut(BaseModel):
    subtotal: Decimal
    base_delivery_fee: Decimal
    delivery_fee: Decimal
    coupon_discount: Decimal
    loyalty_discount: Decimal
    manual_discount: Decimal
    discount: Decimal
    total: Decimal
    coupon: Optional[CouponOut] = None


class OrderOut(BaseModel):
    id: str
    store_id: str
    order_number: int
    customer_name: str
    customer_phone: str
    order_type: str
    order_source: str
    items: List[Dict[str, Any]]
    subtotal: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal
    address: Optional[Dict[str, Any]] = None
    table_number: Optional[str] = None
    payment_method: Optional[str] = None
    payment_change: Optional[Decimal] = None
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubmitOut(BaseModel):
    order: OrderOut
    warnings: List[str] = []


class StatusIn(BaseModel):
    status: str
    view: Literal["kitchen", "tracking"] = "kitchen"


class AdvanceIn(BaseModel):
    view: Literal["kitchen", "tracking"] = "kitchen"


class PrintIn(BaseModel):
    notes: Optional[str] = None


class PrintOut(BaseModel):
    order_id: str
    job_id: Optional[str] = None
