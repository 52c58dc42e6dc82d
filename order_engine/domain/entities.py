# order_engine/domain/entities.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field

from order_engine.utils.settings import DEFAULT_CUSTOMER_NAME


class ItemOrigin(str, Enum):
    MENU = "menu"
    STOCK = "stock"


class SelectionType(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class CouponType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    FREE_SHIPPING = "free_shipping"
    COMBINED = "combined"
    DELIVERY_DISCOUNT = "delivery_discount"


class ServiceType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    DINE_IN = "dine_in"


class Variation(BaseModel):
    name: str
    price: Decimal


class PricedItem(BaseModel):
    """Common shape of anything that carries a price and a promotion window."""

    id: str
    name: str
    price: Optional[Decimal] = None
    promotional_price: Optional[Decimal] = None
    promotion_start_at: Optional[datetime] = None
    promotion_end_at: Optional[datetime] = None
    is_active: bool = True
    category_id: Optional[str] = None


class CatalogItem(PricedItem):
    kind: Literal["catalog"] = "catalog"
    origin: ItemOrigin = ItemOrigin.MENU
    variations: List[Variation] = Field(default_factory=list)


class OptionItem(PricedItem):
    kind: Literal["option"] = "option"
    group_id: str


LineRoot = Annotated[Union[CatalogItem, OptionItem], Field(discriminator="kind")]


class OptionGroup(BaseModel):
    id: str
    category_id: str
    name: str
    selection_type: SelectionType = SelectionType.SINGLE
    is_required: bool = False
    min_selections: int = 0
    max_selections: Optional[int] = None
    display_order: int = 0
    is_primary: bool = False


class SelectedComplement(BaseModel):
    item: OptionItem
    quantity: int = Field(1, ge=1)


class CartLine(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    item: LineRoot
    quantity: int = Field(1, ge=1)
    complements: List[SelectedComplement] = Field(default_factory=list)
    notes: Optional[str] = None
    selected_variation: Optional[Variation] = None


class ManualDiscount(BaseModel):
    type: DiscountType
    value: Decimal = Field(..., gt=0)


class AppliedReward(BaseModel):
    reward_id: str
    reward_name: str
    points_used: int
    discount_type: DiscountType
    discount_value: Decimal
    customer_cpf: Optional[str] = None
    customer_phone: Optional[str] = None


class SplitPayment(BaseModel):
    method: str
    amount: Decimal
    change_for: Optional[Decimal] = None


class PickerState(BaseModel):
    root: LineRoot
    mode: Literal["variation", "complements"]
    selections: Dict[str, int] = Field(default_factory=dict)


class Cart(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    store_id: str
    lines: List[CartLine] = Field(default_factory=list)
    customer_name: str = DEFAULT_CUSTOMER_NAME
    manual_discount: Optional[ManualDiscount] = None
    applied_reward: Optional[AppliedReward] = None
    cpf_for_points: Optional[str] = None
    split_payments: List[SplitPayment] = Field(default_factory=list)
    release_table_after_order: bool = True
    picker: Optional[PickerState] = None


class AppliedCoupon(BaseModel):
    id: str
    code: str
    discount_type: CouponType
    discount_value: Decimal
    discount_amount: Decimal

    @property
    def free_shipping(self) -> bool:
        return self.discount_type in (CouponType.FREE_SHIPPING, CouponType.COMBINED)
