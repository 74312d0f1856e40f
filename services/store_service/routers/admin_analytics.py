"""Admin analytics router: dashboard queries and the daily rollup."""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AdminPrincipal
from libs.common.currency import as_float
from libs.common.datetime_utils import utc_now
from libs.db.session import get_async_db
from services.store_service.routers._helpers import ok
from services.store_service.services import analytics
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-analytics"])


@router.get("/analytics/overview")
async def analytics_overview(
    period: Optional[str] = Query(None),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.overview(db, period))


@router.get("/analytics/timeseries")
async def analytics_timeseries(
    period: Optional[str] = Query(None),
    metric: Optional[str] = Query(None),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.timeseries(db, period, metric))


@router.get("/analytics/top-products")
async def analytics_top_products(
    period: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=50),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.top_products(db, period, limit))


@router.get("/analytics/traffic-sources")
async def analytics_traffic_sources(
    period: Optional[str] = Query(None),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.traffic_sources(db, period))


@router.get("/analytics/devices")
async def analytics_devices(
    period: Optional[str] = Query(None),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.devices(db, period))


@router.get("/analytics/searches")
async def analytics_searches(
    limit: int = Query(20, ge=1, le=100),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.top_searches(db, limit))


@router.get("/analytics/promotions")
async def analytics_promotions(
    period: Optional[str] = Query("30d"),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(await analytics.promotion_usage(db, period))


@router.post("/analytics/rollup")
async def analytics_rollup(
    day: Optional[date] = Query(None, alias="date"),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Compute the daily summary for ``date`` (yesterday, UTC, by default)."""
    day = day or (utc_now().date() - timedelta(days=1))
    summary = await analytics.rollup_day(db, day)
    return ok(
        {
            "date": summary.date.isoformat(),
            "page_views": summary.page_views,
            "unique_visitors": summary.unique_visitors,
            "sessions": summary.sessions,
            "product_views": summary.product_views,
            "add_to_carts": summary.add_to_carts,
            "checkouts_started": summary.checkouts_started,
            "checkouts_completed": summary.checkouts_completed,
            "order_count": summary.order_count,
            "revenue": as_float(summary.revenue),
            "average_order_value": as_float(summary.average_order_value),
            "conversion_rate": as_float(summary.conversion_rate),
            "searches": summary.searches,
        },
        message="Daily summary updated",
    )
