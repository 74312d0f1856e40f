"""Analytics tracking beacons. These answer success even when recording fails."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import AnalyticsEventType, Product
from services.store_service.routers._helpers import get_session_id, ok
from services.store_service.schemas import (
    PageViewRequest,
    ProductViewRequest,
    TrackEventRequest,
)
from services.store_service.services.analytics import record_event
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["analytics"])
logger = get_logger(__name__)


@router.post("/analytics/track")
async def track_event(
    request: Request,
    payload: TrackEventRequest,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    if not payload.event_type:
        return JSONResponse(
            status_code=400, content={"success": False, "message": "Event type is required"}
        )
    try:
        event_type = AnalyticsEventType(payload.event_type)
    except ValueError:
        return JSONResponse(
            status_code=400, content={"success": False, "message": "Unknown event type"}
        )

    fields = payload.model_dump(exclude={"event_type"}, exclude_none=True)
    fields["session_id"] = fields.get("session_id") or session_id
    fields["visitor_id"] = fields.get("visitor_id") or request.cookies.get("visitor_id")
    fields["referrer"] = fields.get("referrer") or request.headers.get("referer")

    event = await record_event(
        db, event_type, user_agent=request.headers.get("user-agent"), **fields
    )
    return ok({"event_id": str(event.id) if event else None})


@router.post("/analytics/pageview")
async def track_page_view(
    request: Request,
    payload: PageViewRequest,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    await record_event(
        db,
        AnalyticsEventType.PAGE_VIEW,
        user_agent=request.headers.get("user-agent"),
        session_id=payload.session_id or session_id,
        visitor_id=payload.visitor_id or request.cookies.get("visitor_id"),
        page=payload.page,
        referrer=payload.referrer or request.headers.get("referer"),
    )
    return ok()


@router.post("/analytics/product-view")
async def track_product_view(
    request: Request,
    payload: ProductViewRequest,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    event = await record_event(
        db,
        AnalyticsEventType.PRODUCT_VIEW,
        user_agent=request.headers.get("user-agent"),
        session_id=payload.session_id or session_id,
        visitor_id=payload.visitor_id or request.cookies.get("visitor_id"),
        product_id=payload.product_id,
        product_name=payload.product_name,
        product_category=payload.product_category,
        product_price=payload.product_price,
    )
    if event is not None and payload.product_id:
        try:
            await db.execute(
                update(Product)
                .where(Product.id == payload.product_id)
                .values(view_count=Product.view_count + 1)
            )
            await db.commit()
        except Exception as e:
            logger.error("Failed to bump view count for %s: %s", payload.product_id, e)
            await db.rollback()
    return ok()
