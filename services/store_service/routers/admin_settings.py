"""Admin settings and dashboard summary."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin, require_roles
from libs.auth.models import AdminPrincipal
from libs.common.currency import as_float
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Order, PaymentStatus, Product
from services.store_service.routers._helpers import ok, order_payload
from services.store_service.schemas import SettingsUpdate
from services.store_service.services.store_settings import get_settings_map, set_setting
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)

DASHBOARD_RECENT_ORDERS = 5


@router.get("/settings")
async def get_store_settings(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await get_settings_map(db))


@router.put("/settings")
async def update_store_settings(
    payload: SettingsUpdate,
    current_admin: AdminPrincipal = Depends(require_roles("super_admin", "admin")),
    db: AsyncSession = Depends(get_async_db),
):
    """Update several settings at once. Unknown keys reject the whole request."""
    for key, value in payload.settings.items():
        try:
            await set_setting(db, key, value)
        except ValueError as e:
            await db.rollback()
            raise StoreError(str(e), status_code=400) from e
    await db.commit()
    logger.info(
        "Updated store settings",
        extra={
            "extra_fields": {
                "keys": sorted(payload.settings),
                "admin_id": current_admin.admin_id,
            }
        },
    )
    return ok(await get_settings_map(db), message="Settings updated")


@router.get("/dashboard")
async def dashboard_summary(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    total_products = (await db.execute(select(func.count()).select_from(Product))).scalar_one()
    active_products = (
        await db.execute(
            select(func.count()).select_from(Product).where(Product.is_active.is_(True))
        )
    ).scalar_one()
    synced_products = (
        await db.execute(
            select(func.count())
            .select_from(Product)
            .where(Product.printful_sync_product_id.is_not(None))
        )
    ).scalar_one()

    total_orders = (await db.execute(select(func.count()).select_from(Order))).scalar_one()
    pending_fulfillment = (
        await db.execute(
            select(func.count())
            .select_from(Order)
            .where(Order.fulfillment_status.in_(("pending", "processing", "on_hold")))
        )
    ).scalar_one()
    revenue = (
        await db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                Order.payment_status == PaymentStatus.COMPLETED
            )
        )
    ).scalar_one()

    recent = await db.execute(
        select(Order).order_by(Order.created_at.desc()).limit(DASHBOARD_RECENT_ORDERS)
    )

    return ok(
        {
            "products": {
                "total": total_products,
                "active": active_products,
                "synced": synced_products,
            },
            "orders": {"total": total_orders, "pending_fulfillment": pending_fulfillment},
            "revenue": as_float(revenue),
            "recent_orders": [order_payload(o) for o in recent.scalars().all()],
        }
    )
