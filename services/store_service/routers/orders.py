"""Store orders router: customer order status."""

from fastapi import APIRouter, Depends
from libs.common.error_handler import StoreError
from libs.db.session import get_async_db
from services.store_service.models import Order
from services.store_service.printful_client import PrintfulClient
from services.store_service.routers._helpers import get_printful, ok, order_client_payload
from services.store_service.services.fulfillment import refresh_order_from_printful
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


async def get_order_by_number(db: AsyncSession, order_number: str) -> Order:
    result = await db.execute(select(Order).where(Order.order_number == order_number))
    order = result.scalar_one_or_none()
    if order is None:
        raise StoreError("Order not found", status_code=404)
    return order


@router.get("/orders/{order_number}")
async def get_order_status(order_number: str, db: AsyncSession = Depends(get_async_db)):
    """Order status and tracking for the confirmation page."""
    order = await get_order_by_number(db, order_number)
    return ok(order_client_payload(order))


@router.post("/orders/{order_number}/refresh")
async def refresh_order_status(
    order_number: str,
    db: AsyncSession = Depends(get_async_db),
    printful: PrintfulClient = Depends(get_printful),
):
    """Pull the latest status from Printful."""
    order = await get_order_by_number(db, order_number)
    order = await refresh_order_from_printful(db, order, printful)
    return ok(order_client_payload(order))
