# import all models so SQLAlchemy registers them in Base.metadata

from order_engine.data.models.store import StoreModel, DeliveryAreaModel, StatusMessageModel
from order_engine.data.models.catalog import CatalogItemModel, OptionGroupModel, OptionItemModel
from order_engine.data.models.coupon import CouponModel, CouponUsageModel
from order_engine.data.models.loyalty import (
    LoyaltySettingsModel,
    LoyaltyRewardModel,
    CustomerPointsModel,
    PointTransactionModel,
)
from order_engine.data.models.order import OrderModel

__all__ = [
    "StoreModel",
    "DeliveryAreaModel",
    "StatusMessageModel",
    "CatalogItemModel",
    "OptionGroupModel",
    "OptionItemModel",
    "CouponModel",
    "CouponUsageModel",
    "LoyaltySettingsModel",
    "LoyaltyRewardModel",
    "CustomerPointsModel",
    "PointTransactionModel",
    "OrderModel",
]
