from typing import Dict, Iterable, List

from order_engine.domain.entities import CatalogItem, OptionGroup, OptionItem


class CatalogIndex:
    """
    Read-only snapshot of one store's active catalog, as returned by the
    catalog store (already filtered by store and active flag, ordered by
    display order).
    """

    def __init__(
        self,
        items: Iterable[CatalogItem] = (),
        groups: Iterable[OptionGroup] = (),
        option_items: Iterable[OptionItem] = (),
    ):
        self.items: Dict[str, CatalogItem] = {i.id: i for i in items}
        self.groups: Dict[str, OptionGroup] = {g.id: g for g in groups}
        self.option_items: Dict[str, OptionItem] = {i.id: i for i in option_items}

    def secondary_groups(self, category_id: str | None) -> List[OptionGroup]:
        if not category_id:
            return []
        groups = [
            g for g in self.groups.values()
            if g.category_id == category_id and not g.is_primary
        ]
        return sorted(groups, key=lambda g: g.display_order)

    def group_items(self, group_id: str) -> List[OptionItem]:
        return [i for i in self.option_items.values() if i.group_id == group_id]

    def get_group(self, group_id: str) -> OptionGroup:
        group = self.groups.get(group_id)
        if group is None:
            raise LookupError(f"Option group {group_id} not found")
        return group

    def get_option_item(self, item_id: str) -> OptionItem:
        item = self.option_items.get(item_id)
        if item is None:
            raise LookupError(f"Option item {item_id} not found")
        return item

    def find(self, item_id: str) -> CatalogItem | OptionItem:
        item = self.items.get(item_id) or self.option_items.get(item_id)
        if item is None:
            raise LookupError(f"Item {item_id} not found")
        return item
