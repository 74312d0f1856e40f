"""Store Service models package."""

from services.store_service.models.admin import StoreAdmin, StoreSetting
from services.store_service.models.analytics import AnalyticsEvent, DailySummary
from services.store_service.models.catalog import Product, ProductImage, ProductVariant
from services.store_service.models.commerce import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    generate_order_number,
)
from services.store_service.models.enums import (
    AdminRole,
    AnalyticsEventType,
    DeviceType,
    FulfillmentStatus,
    PaymentMethod,
    PaymentStatus,
    ProductCategory,
    PromotionScope,
    PromotionType,
    VariantSize,
)
from services.store_service.models.promotions import Promotion

__all__ = [
    "AdminRole",
    "AnalyticsEvent",
    "AnalyticsEventType",
    "Cart",
    "CartItem",
    "DailySummary",
    "DeviceType",
    "FulfillmentStatus",
    "Order",
    "OrderItem",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "ProductCategory",
    "ProductImage",
    "ProductVariant",
    "Promotion",
    "PromotionScope",
    "PromotionType",
    "StoreAdmin",
    "StoreSetting",
    "VariantSize",
    "generate_order_number",
]
