# order_engine/repos/catalog_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from order_engine.data.models.catalog import CatalogItemModel, OptionGroupModel, OptionItemModel
from order_engine.domain.entities import (
    CatalogItem,
    ItemOrigin,
    OptionGroup,
    OptionItem,
    SelectionType,
    Variation,
)
from order_engine.services.catalog import CatalogIndex


class CatalogRepo:
    """Read-only catalog queries, active rows of one store in display order."""

    def __init__(self, db: Session):
        self.db = db

    def list_items(self, store_id: str) -> list[CatalogItem]:
        rows = self.db.execute(
            select(CatalogItemModel)
            .where(CatalogItemModel.store_id == store_id, CatalogItemModel.is_active.is_(True))
            .order_by(CatalogItemModel.display_order)
        ).scalars().all()
        return [
            CatalogItem(
                id=r.id,
                name=r.name,
                price=r.price,
                promotional_price=r.promotional_price,
                promotion_start_at=r.promotion_start_at,
                promotion_end_at=r.promotion_end_at,
                is_active=r.is_active,
                category_id=r.category_id,
                origin=ItemOrigin(r.origin),
                variations=[Variation(**v) for v in (r.variations or [])],
            )
            for r in rows
        ]

    def list_groups(self, store_id: str) -> list[OptionGroup]:
        rows = self.db.execute(
            select(OptionGroupModel)
            .where(OptionGroupModel.store_id == store_id, OptionGroupModel.is_active.is_(True))
            .order_by(OptionGroupModel.display_order)
        ).scalars().all()
        return [
            OptionGroup(
                id=r.id,
                category_id=r.category_id,
                name=r.name,
                selection_type=SelectionType(r.selection_type),
                is_required=r.is_required,
                min_selections=r.min_selections,
                max_selections=r.max_selections,
                display_order=r.display_order,
                is_primary=r.is_primary,
            )
            for r in rows
        ]

    def list_option_items(self, store_id: str) -> list[OptionItem]:
        rows = self.db.execute(
            select(OptionItemModel)
            .where(OptionItemModel.store_id == store_id, OptionItemModel.is_active.is_(True))
            .order_by(OptionItemModel.display_order)
        ).scalars().all()
        return [
            OptionItem(
                id=r.id,
                group_id=r.group_id,
                category_id=r.category_id,
                name=r.name,
                price=r.additional_price,
                promotional_price=r.promotional_price,
                promotion_start_at=r.promotion_start_at,
                promotion_end_at=r.promotion_end_at,
                is_active=r.is_active,
            )
            for r in rows
        ]

    def load_index(self, store_id: str) -> CatalogIndex:
        return CatalogIndex(
            items=self.list_items(store_id),
            groups=self.list_groups(store_id),
            option_items=self.list_option_items(store_id),
        )
