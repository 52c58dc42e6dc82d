from typing import Dict, Iterable

from order_engine.domain.entities import OptionGroup, OptionItem, SelectionType
from order_engine.domain.errors import ValidationError
from order_engine.services.catalog import CatalogIndex


def _max_reached_message(group: OptionGroup) -> str:
    return f"Maximum of {group.max_selections} selections for {group.name}"


def group_total(selections: Dict[str, int], group_items: Iterable[OptionItem], skip: str | None = None) -> int:
    return sum(selections.get(gi.id, 0) for gi in group_items if gi.id != skip)


class SelectionSession:
    """
    Complement selection for one pending cart line.

    Works on the mapping item id -> selected quantity in place. Rejected calls
    raise ValidationError and leave the mapping untouched.
    """

    def __init__(self, selections: Dict[str, int], catalog: CatalogIndex):
        self.selections = selections
        self.catalog = catalog

    def toggle(self, item: OptionItem, group: OptionGroup) -> None:
        group_items = self.catalog.group_items(group.id)
        current = self.selections.get(item.id, 0)

        if group.selection_type == SelectionType.SINGLE:
            # radio: clear the rest of the group first
            for gi in group_items:
                if gi.id != item.id:
                    self.selections.pop(gi.id, None)
            if current > 0:
                self.selections.pop(item.id, None)
            else:
                self.selections[item.id] = 1
            return

        if current > 0:
            self.selections.pop(item.id, None)
            return

        total = group_total(self.selections, group_items)
        if group.max_selections is not None and total >= group.max_selections:
            raise ValidationError(_max_reached_message(group), group=group.name)
        self.selections[item.id] = 1

    def adjust_quantity(self, item: OptionItem, group: OptionGroup, delta: int) -> None:
        current = self.selections.get(item.id, 0)
        new_qty = max(0, current + delta)

        if new_qty == 0:
            self.selections.pop(item.id, None)
            return

        others = group_total(self.selections, self.catalog.group_items(group.id), skip=item.id)
        if group.max_selections is not None and others + new_qty > group.max_selections:
            raise ValidationError(_max_reached_message(group), group=group.name)

        self.selections[item.id] = new_qty

    def total_for(self, group: OptionGroup) -> int:
        return group_total(self.selections, self.catalog.group_items(group.id))


def validate_required(groups: Iterable[OptionGroup], selections: Dict[str, int], catalog: CatalogIndex) -> None:
    for group in groups:
        if not group.is_required:
            continue
        selected = group_total(selections, catalog.group_items(group.id))
        if selected < group.min_selections:
            raise ValidationError(
                f'Select at least {group.min_selections} in "{group.name}"',
                group=group.name,
            )
