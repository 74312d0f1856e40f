"""Store service routers package."""

from services.store_service.routers.admin_analytics import router as admin_analytics_router
from services.store_service.routers.admin_auth import router as admin_auth_router
from services.store_service.routers.admin_catalog import router as admin_catalog_router
from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.admin_promotions import (
    router as admin_promotions_router,
)
from services.store_service.routers.admin_settings import router as admin_settings_router
from services.store_service.routers.analytics import router as analytics_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.checkout import router as checkout_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.pages import router as pages_router
from services.store_service.routers.promotions import router as promotions_router
from services.store_service.routers.settings import router as settings_router
from services.store_service.routers.webhooks import router as webhooks_router

__all__ = [
    "admin_analytics_router",
    "admin_auth_router",
    "admin_catalog_router",
    "admin_orders_router",
    "admin_promotions_router",
    "admin_settings_router",
    "analytics_router",
    "cart_router",
    "catalog_router",
    "checkout_router",
    "orders_router",
    "pages_router",
    "promotions_router",
    "settings_router",
    "webhooks_router",
]
