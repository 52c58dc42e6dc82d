# order_engine/api/routers/carts.py
from fastapi import APIRouter, Depends

from order_engine.api.deps import get_cart_service
from order_engine.api.errors import to_http
from order_engine.domain.errors import EngineError
from order_engine.domain.schemas import (
    CartOut,
    ComplementAdjustIn,
    ComplementIn,
    CreateCartIn,
    CustomerNameIn,
    ItemIn,
    ManualDiscountIn,
    NotesIn,
    QuantityIn,
    SplitPaymentsIn,
    VariationIn,
)
from order_engine.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.post("/", response_model=CartOut, status_code=201)
def create_cart(payload: CreateCartIn, svc: CartService = Depends(get_cart_service)):
    return svc.create_cart(payload.store_id)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(cart_id: str, svc: CartService = Depends(get_cart_service)):
    cart = svc.get_cart(cart_id)
    if cart is None:
        raise to_http(LookupError("Cart not found"))
    return cart


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item(cart_id: str, payload: ItemIn, svc: CartService = Depends(get_cart_service)):
    """
    Adds the item, or opens the variation/complement picker when the item
    needs choices first.
    """
    try:
        return svc.add_item(cart_id, payload.item_id)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{cart_id}/picker/variation", response_model=CartOut)
def choose_variation(cart_id: str, payload: VariationIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.choose_variation(cart_id, payload.name)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{cart_id}/picker/toggle", response_model=CartOut)
def toggle_complement(cart_id: str, payload: ComplementIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.toggle_complement(cart_id, payload.item_id, payload.group_id)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{cart_id}/picker/adjust", response_model=CartOut)
def adjust_complement(cart_id: str, payload: ComplementAdjustIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.adjust_complement(cart_id, payload.item_id, payload.group_id, payload.delta)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{cart_id}/picker/confirm", response_model=CartOut)
def confirm_complements(cart_id: str, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.confirm_complements(cart_id)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.delete("/{cart_id}/picker", response_model=CartOut)
def cancel_picker(cart_id: str, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.cancel_picker(cart_id)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{cart_id}/lines/{line_id}/quantity", response_model=CartOut)
def update_quantity(cart_id: str, line_id: str, payload: QuantityIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.update_quantity(cart_id, line_id, payload.delta)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.put("/{cart_id}/lines/{line_id}/notes", response_model=CartOut)
def update_notes(cart_id: str, line_id: str, payload: NotesIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.update_notes(cart_id, line_id, payload.notes)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.delete("/{cart_id}/lines/{line_id}", response_model=CartOut)
def remove_line(cart_id: str, line_id: str, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.remove_line(cart_id, line_id)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.put("/{cart_id}/manual-discount", response_model=CartOut)
def set_manual_discount(cart_id: str, payload: ManualDiscountIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.set_manual_discount(cart_id, payload.type, payload.value)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.put("/{cart_id}/customer-name", response_model=CartOut)
def set_customer_name(cart_id: str, payload: CustomerNameIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.set_customer_name(cart_id, payload.name)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.put("/{cart_id}/split-payments", response_model=CartOut)
def set_split_payments(cart_id: str, payload: SplitPaymentsIn, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.set_split_payments(cart_id, payload.payments)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{cart_id}/clear", response_model=CartOut)
def clear_cart(cart_id: str, svc: CartService = Depends(get_cart_service)):
    try:
        return svc.clear(cart_id)
    except (LookupError, EngineError) as e:
        raise to_http(e)
