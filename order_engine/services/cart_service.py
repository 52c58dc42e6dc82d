from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List

from order_engine.domain.entities import (
    AppliedReward,
    Cart,
    CartLine,
    CatalogItem,
    DiscountType,
    ItemOrigin,
    ManualDiscount,
    OptionItem,
    PickerState,
    SelectedComplement,
    SplitPayment,
)
from order_engine.domain.errors import ValidationError
from order_engine.repos.cart_repo import CartStore
from order_engine.repos.catalog_repo import CatalogRepo
from order_engine.services import pricing
from order_engine.services.catalog import CatalogIndex
from order_engine.services.selection import SelectionSession, validate_required
from order_engine.utils.settings import DEFAULT_CUSTOMER_NAME
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)

ADDED = "added"
VARIATION_PICKER = "variation"
COMPLEMENT_PICKER = "complements"


class CartEngine:
    """
    Cart composition shared by the storefront and the point of sale.

    Owns the cart lines and the cart-level discount state. Totals are derived
    on every read, never cached across mutations.
    """

    def __init__(
        self,
        cart: Cart,
        catalog: CatalogIndex,
        clock: Callable[[], datetime] | None = None,
    ):
        self.cart = cart
        self.catalog = catalog
        self.clock = clock

    def _now(self) -> datetime | None:
        return self.clock() if self.clock else None

    # routing
    def add(self, item: CatalogItem | OptionItem) -> str:
        """Entry point for "the user picked this item"; returns where it went."""
        if isinstance(item, CatalogItem):
            if item.origin == ItemOrigin.STOCK:
                self.add_direct(item)
                return ADDED
            if item.variations:
                self.open_variation_picker(item)
                return VARIATION_PICKER
            self.add_direct(item)
            return ADDED

        if not self.catalog.secondary_groups(item.category_id):
            self.add_direct(item)
            return ADDED

        self.open_complement_picker(item)
        return COMPLEMENT_PICKER

    def add_direct(
        self,
        item: CatalogItem | OptionItem,
        complements: Iterable[SelectedComplement] = (),
    ) -> CartLine:
        line = CartLine(item=item, quantity=1, complements=list(complements))
        self.cart.lines.append(line)
        logger.info(f"Added {item.name} to cart {self.cart.id}")
        return line

    # variations
    def open_variation_picker(self, item: CatalogItem) -> None:
        if not isinstance(item, CatalogItem) or item.origin == ItemOrigin.STOCK or not item.variations:
            raise ValidationError(f"{item.name} has no variations")
        self.cart.picker = PickerState(root=item, mode=VARIATION_PICKER)

    def confirm_variation(self, variation_name: str) -> CartLine:
        picker = self.cart.picker
        if picker is None or picker.mode != VARIATION_PICKER:
            raise ValidationError("No item is waiting for a variation")

        variation = next(
            (v for v in picker.root.variations if v.name == variation_name),
            None,
        )
        if variation is None:
            raise ValidationError(f'Unknown variation "{variation_name}" for {picker.root.name}')

        line = CartLine(item=picker.root, quantity=1, selected_variation=variation)
        self.cart.lines.append(line)
        self.cart.picker = None
        logger.info(f"Added {picker.root.name} ({variation.name}) to cart {self.cart.id}")
        return line

    # complements
    def open_complement_picker(self, item: CatalogItem | OptionItem) -> None:
        if isinstance(item, CatalogItem) and item.origin == ItemOrigin.STOCK:
            raise ValidationError(f"{item.name} does not take complements")
        self.cart.picker = PickerState(root=item, mode=COMPLEMENT_PICKER)

    def _complement_session(self) -> SelectionSession:
        picker = self.cart.picker
        if picker is None or picker.mode != COMPLEMENT_PICKER:
            raise ValidationError("No item is waiting for complements")
        return SelectionSession(picker.selections, self.catalog)

    def _resolve_choice(self, item_id: str, group_id: str):
        group = self.catalog.get_group(group_id)
        item = self.catalog.get_option_item(item_id)
        if item.group_id != group.id:
            raise ValidationError(f"{item.name} does not belong to {group.name}")
        allowed = {g.id for g in self.catalog.secondary_groups(self.cart.picker.root.category_id)}
        if group.id not in allowed:
            raise ValidationError(f"{group.name} is not an option for {self.cart.picker.root.name}")
        return item, group

    def toggle_complement(self, item_id: str, group_id: str) -> None:
        session = self._complement_session()
        item, group = self._resolve_choice(item_id, group_id)
        session.toggle(item, group)

    def adjust_complement(self, item_id: str, group_id: str, delta: int) -> None:
        session = self._complement_session()
        item, group = self._resolve_choice(item_id, group_id)
        session.adjust_quantity(item, group, delta)

    def confirm_complement_selection(self) -> CartLine:
        self._complement_session()
        picker = self.cart.picker
        groups = self.catalog.secondary_groups(picker.root.category_id)

        validate_required(groups, picker.selections, self.catalog)

        complements: List[SelectedComplement] = []
        for item_id, qty in picker.selections.items():
            item = self.catalog.option_items.get(item_id)
            if item is not None and qty > 0:
                complements.append(SelectedComplement(item=item, quantity=qty))

        line = self.add_direct(picker.root, complements)
        self.cart.picker = None
        return line

    def cancel_picker(self) -> None:
        self.cart.picker = None

    @property
    def complements_total(self) -> Decimal:
        picker = self.cart.picker
        if picker is None:
            return pricing.ZERO
        total = pricing.ZERO
        for item_id, qty in picker.selections.items():
            item = self.catalog.option_items.get(item_id)
            if item is not None:
                total += pricing.effective_price(item, self._now()) * qty
        return pricing.quantize(total)

    # line mutations
    def _find(self, line_id: str) -> CartLine | None:
        return next((l for l in self.cart.lines if l.id == line_id), None)

    def update_quantity(self, line_id: str, delta: int) -> None:
        line = self._find(line_id)
        if line is None:
            return
        new_qty = line.quantity + delta
        if new_qty <= 0:
            self.remove_line(line_id)
            return
        line.quantity = new_qty

    def remove_line(self, line_id: str) -> None:
        self.cart.lines = [l for l in self.cart.lines if l.id != line_id]

    def update_notes(self, line_id: str, notes: str) -> None:
        line = self._find(line_id)
        if line is not None:
            line.notes = notes

    def clear(self) -> None:
        """Start a new order: nothing from the previous session survives."""
        self.cart.lines = []
        self.cart.customer_name = DEFAULT_CUSTOMER_NAME
        self.cart.applied_reward = None
        self.cart.cpf_for_points = None
        self.cart.split_payments = []
        self.cart.manual_discount = None
        self.cart.release_table_after_order = True
        self.cart.picker = None

    # cart-level state
    def set_customer_name(self, name: str) -> None:
        self.cart.customer_name = name.strip() or DEFAULT_CUSTOMER_NAME

    def apply_manual_discount(self, discount_type: DiscountType, value: Decimal) -> None:
        if value is None or Decimal(value) <= 0:
            raise ValidationError("Discount must be greater than zero")
        self.cart.manual_discount = ManualDiscount(type=discount_type, value=value)

    def remove_manual_discount(self) -> None:
        self.cart.manual_discount = None

    def apply_reward(self, reward: AppliedReward) -> None:
        self.cart.applied_reward = reward

    def remove_reward(self) -> None:
        self.cart.applied_reward = None

    def set_cpf_for_points(self, cpf: str | None) -> None:
        self.cart.cpf_for_points = cpf

    def set_split_payments(self, payments: Iterable[SplitPayment]) -> None:
        self.cart.split_payments = list(payments)

    # derived values
    def line_total(self, line: CartLine) -> Decimal:
        return pricing.line_total(line, self._now())

    @property
    def subtotal(self) -> Decimal:
        return pricing.subtotal(self.cart.lines, self._now())

    @property
    def manual_discount_amount(self) -> Decimal:
        return pricing.manual_discount_amount(self.cart.manual_discount, self.subtotal)

    @property
    def loyalty_discount_amount(self) -> Decimal:
        return pricing.reward_discount_amount(self.cart.applied_reward, self.subtotal)

    @property
    def total_discount(self) -> Decimal:
        return min(self.manual_discount_amount + self.loyalty_discount_amount, self.subtotal)

    @property
    def final_total(self) -> Decimal:
        return max(pricing.ZERO, self.subtotal - self.total_discount)

    @property
    def is_empty(self) -> bool:
        return not self.cart.lines

    def snapshot_items(self) -> List[Dict[str, Any]]:
        """Order line JSON, frozen at submission time."""
        now = self._now()
        items = []
        for line in self.cart.lines:
            items.append({
                "id": line.id,
                "item_id": line.item.id,
                "name": line.item.name,
                "origin": line.item.origin.value if isinstance(line.item, CatalogItem) else "option",
                "quantity": line.quantity,
                "unit_price": str(pricing.quantize(pricing.line_unit_price(line, now))),
                "total": str(pricing.line_total(line, now)),
                "size": line.selected_variation.name if line.selected_variation else None,
                "complements": [
                    {
                        "id": c.item.id,
                        "name": c.item.name,
                        "quantity": c.quantity,
                        "price": str(pricing.effective_price(c.item, now)),
                    }
                    for c in line.complements
                ],
                "notes": line.notes,
            })
        return items


class CartService:
    """
    Cart sessions for the HTTP layer: load from the cart store, run one
    CartEngine operation, save back.
    """

    def __init__(self, store: CartStore, catalog_repo: CatalogRepo):
        self.store = store
        self.catalog_repo = catalog_repo

    def engine_for(self, cart: Cart) -> CartEngine:
        return CartEngine(cart, self.catalog_repo.load_index(cart.store_id))

    def _load(self, cart_id: str) -> CartEngine:
        cart = self.store.get(cart_id)
        if cart is None:
            raise LookupError("Cart not found")
        return self.engine_for(cart)

    def _apply(self, cart_id: str, op: Callable[[CartEngine], Any]) -> Dict[str, Any]:
        engine = self._load(cart_id)
        op(engine)
        self.store.save(engine.cart)
        return self.view(engine)

    # query
    def get_cart(self, cart_id: str) -> Dict[str, Any] | None:
        cart = self.store.get(cart_id)
        if cart is None:
            return None
        return self.view(self.engine_for(cart))

    def load_engine(self, cart_id: str) -> CartEngine:
        return self._load(cart_id)

    # commands
    def create_cart(self, store_id: str) -> Dict[str, Any]:
        cart = Cart(store_id=store_id)
        self.store.save(cart)
        logger.info(f"Created cart {cart.id} for store {store_id}")
        return self.view(self.engine_for(cart))

    def add_item(self, cart_id: str, item_id: str) -> Dict[str, Any]:
        def op(engine: CartEngine):
            item = engine.catalog.find(item_id)
            if not item.is_active:
                raise ValidationError(f"{item.name} is not available")
            engine.add(item)
        return self._apply(cart_id, op)

    def choose_variation(self, cart_id: str, variation_name: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.confirm_variation(variation_name))

    def toggle_complement(self, cart_id: str, item_id: str, group_id: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.toggle_complement(item_id, group_id))

    def adjust_complement(self, cart_id: str, item_id: str, group_id: str, delta: int) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.adjust_complement(item_id, group_id, delta))

    def confirm_complements(self, cart_id: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.confirm_complement_selection())

    def cancel_picker(self, cart_id: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.cancel_picker())

    def update_quantity(self, cart_id: str, line_id: str, delta: int) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.update_quantity(line_id, delta))

    def update_notes(self, cart_id: str, line_id: str, notes: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.update_notes(line_id, notes))

    def remove_line(self, cart_id: str, line_id: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.remove_line(line_id))

    def set_manual_discount(self, cart_id: str, discount_type: DiscountType | None, value: Decimal | None) -> Dict[str, Any]:
        def op(engine: CartEngine):
            if discount_type is None:
                engine.remove_manual_discount()
            else:
                engine.apply_manual_discount(discount_type, value)
        return self._apply(cart_id, op)

    def set_customer_name(self, cart_id: str, name: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.set_customer_name(name))

    def set_split_payments(self, cart_id: str, payments: List[SplitPayment]) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.set_split_payments(payments))

    def apply_reward(self, cart_id: str, store_id: str, reward: AppliedReward | None) -> Dict[str, Any]:
        def op(engine: CartEngine):
            if engine.cart.store_id != store_id:
                raise ValidationError("Reward belongs to another store")
            if reward is None:
                engine.remove_reward()
            else:
                engine.apply_reward(reward)
                engine.set_cpf_for_points(reward.customer_cpf)
        return self._apply(cart_id, op)

    def clear(self, cart_id: str) -> Dict[str, Any]:
        return self._apply(cart_id, lambda e: e.clear())

    def view(self, engine: CartEngine) -> Dict[str, Any]:
        cart = engine.cart
        picker = None
        if cart.picker is not None:
            picker = {
                "mode": cart.picker.mode,
                "item_id": cart.picker.root.id,
                "name": cart.picker.root.name,
                "selections": dict(cart.picker.selections),
                "complements_total": engine.complements_total,
            }
        return {
            "cart_id": cart.id,
            "store_id": cart.store_id,
            "customer_name": cart.customer_name,
            "lines": [
                {
                    "id": line.id,
                    "item_id": line.item.id,
                    "name": line.item.name,
                    "quantity": line.quantity,
                    "variation": line.selected_variation.name if line.selected_variation else None,
                    "complements": [
                        {"id": c.item.id, "name": c.item.name, "quantity": c.quantity}
                        for c in line.complements
                    ],
                    "notes": line.notes,
                    "total": engine.line_total(line),
                }
                for line in cart.lines
            ],
            "picker": picker,
            "subtotal": engine.subtotal,
            "manual_discount_amount": engine.manual_discount_amount,
            "loyalty_discount_amount": engine.loyalty_discount_amount,
            "final_total": engine.final_total,
        }
