# order_engine/api/routers/orders.py
from typing import Dict, List, Literal

from fastapi import APIRouter, Depends, Query

from order_engine.api.deps import get_order_service, get_status_machine
from order_engine.api.errors import to_http
from order_engine.domain.errors import EngineError
from order_engine.domain.schemas import (
    AdvanceIn,
    CheckoutRequest,
    OrderOut,
    PrintIn,
    PrintOut,
    QuoteOut,
    StatusIn,
    SubmitOut,
)
from order_engine.domain.status import VIEWS
from order_engine.services.order_service import OrderService
from order_engine.services.status_machine import OrderStatusMachine

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/quote/{cart_id}", response_model=QuoteOut)
def quote(cart_id: str, payload: CheckoutRequest, svc: OrderService = Depends(get_order_service)):
    """Checkout totals for the cart as it stands, coupon included."""
    try:
        return svc.quote(cart_id, payload)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/submit/{cart_id}", response_model=SubmitOut, status_code=201)
def submit(cart_id: str, payload: CheckoutRequest, svc: OrderService = Depends(get_order_service)):
    """
    Creates the order from the cart. Post-order steps that failed are
    reported in `warnings`; the order stands regardless.
    """
    try:
        return svc.submit(cart_id, payload)
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.get("/board/{store_id}", response_model=Dict[str, List[OrderOut]])
def board(
    store_id: str,
    view: Literal["kitchen", "tracking"] = Query("kitchen"),
    svc: OrderService = Depends(get_order_service),
):
    """Active orders grouped by column, for a board that is just opening."""
    try:
        return svc.board(store_id, VIEWS[view])
    except LookupError as e:
        raise to_http(e)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    try:
        return svc.get_order(order_id)
    except LookupError as e:
        raise to_http(e)


@router.post("/{order_id}/status", response_model=OrderOut)
def set_status(order_id: str, payload: StatusIn, machine: OrderStatusMachine = Depends(get_status_machine)):
    try:
        return machine.transition(order_id, payload.status, VIEWS[payload.view])
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{order_id}/advance", response_model=OrderOut)
def advance(order_id: str, payload: AdvanceIn, machine: OrderStatusMachine = Depends(get_status_machine)):
    try:
        return machine.advance(order_id, VIEWS[payload.view])
    except (LookupError, EngineError) as e:
        raise to_http(e)


@router.post("/{order_id}/print", response_model=PrintOut)
def print_order(order_id: str, payload: PrintIn, machine: OrderStatusMachine = Depends(get_status_machine)):
    """Operator reprint; the order status is left as is."""
    try:
        return machine.print_order(order_id, payload.notes)
    except (LookupError, EngineError) as e:
        raise to_http(e)
