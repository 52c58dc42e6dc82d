# order_engine/services/print_payload.py
"""
Kitchen ticket ("comanda") and customer status messages, both rendered from
the order snapshot alone.
"""
from datetime import timezone
from decimal import Decimal
from typing import Any, Dict, List
from zoneinfo import ZoneInfo

from order_engine.data.models.order import OrderModel
from order_engine.data.models.store import StoreModel
from order_engine.services import pricing
from order_engine.utils.settings import PUBLIC_TZ

PAYMENT_LABELS = {
    "pix": "PIX",
    "cash": "Cash",
    "credit_card": "Credit card",
    "debit_card": "Debit card",
}

SERVICE_LABELS = {
    "delivery": "DELIVERY",
    "pickup": "PICKUP",
    "dine_in": "TABLE",
}


def format_address(address: Dict[str, Any] | None) -> str | None:
    if not address:
        return None
    street = ", ".join(p for p in (address.get("street"), address.get("number")) if p)
    parts = [street, address.get("complement"), address.get("neighborhood")]
    return " - ".join(p for p in parts if p) or None


def _modifiers(item: Dict[str, Any]) -> List[str]:
    lines = []
    if item.get("size"):
        lines.append(f"Size: {item['size']}")
    qty = int(item.get("quantity") or 1)
    for c in item.get("complements") or []:
        # complement quantities are per unit of the line
        lines.append(f"{int(c.get('quantity') or 1) * qty}x {c['name']}")
    return lines


def build_print_payload(order: OrderModel, store: StoreModel, custom_notes: str | None = None) -> Dict[str, Any]:
    created = order.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    created = created.astimezone(ZoneInfo(PUBLIC_TZ))

    address = order.address or {}
    payment = order.payment_method
    payload = {
        "store_name": store.name,
        "order_number": order.order_number,
        "created_at": created.strftime("%d/%m/%Y %H:%M"),
        "service_type": SERVICE_LABELS.get(order.order_type, order.order_type),
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone or None,
        "address": format_address(address) if order.order_type == "delivery" else None,
        "address_reference": address.get("reference") if order.order_type == "delivery" else None,
        "table_number": order.table_number,
        "payment": PAYMENT_LABELS.get(payment, payment) if payment else "Not informed",
        "payment_change": str(pricing.quantize(order.payment_change)) if order.payment_change else None,
        "items": [
            {
                "quantity": item.get("quantity", 1),
                "name": item["name"],
                "modifiers": _modifiers(item),
                "notes": item.get("notes"),
                "total": str(pricing.quantize(Decimal(item.get("total") or 0))),
            }
            for item in order.items or []
        ],
        "notes": custom_notes if custom_notes is not None else order.notes,
        "subtotal": str(pricing.quantize(order.subtotal)),
        "delivery_fee": str(pricing.quantize(order.delivery_fee)) if order.delivery_fee else None,
        "discount": str(pricing.quantize(order.discount)) if order.discount else None,
        "total": str(pricing.quantize(order.total)),
        "footer": store.print_footer_message,
    }
    return payload


def render_status_message(template: str, order: OrderModel) -> str:
    return (
        template
        .replace("{name}", order.customer_name or "")
        .replace("{order}", str(order.order_number))
    )
