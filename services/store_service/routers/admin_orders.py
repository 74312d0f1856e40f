"""Admin orders router: order list, Printful refresh and refunds."""

import uuid

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AdminPrincipal
from libs.common.currency import cents_to_dollars, dollars_to_cents, to_decimal
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Order, PaymentStatus
from services.store_service.printful_client import PrintfulClient
from services.store_service.routers._helpers import get_printful, get_stripe, ok, order_payload
from services.store_service.schemas import RefundRequest
from services.store_service.services.fulfillment import refresh_order_from_printful
from services.store_service.stripe_client import StripeClient, StripeError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)

RECENT_ORDERS_LIMIT = 100


async def _get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await db.get(Order, order_id)
    if order is None:
        raise StoreError("Order not found", status_code=404)
    return order


@router.get("/orders")
async def list_recent_orders(
    limit: int = Query(RECENT_ORDERS_LIMIT, ge=1, le=RECENT_ORDERS_LIMIT),
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Most recent orders, newest first."""
    result = await db.execute(select(Order).order_by(Order.created_at.desc()).limit(limit))
    return ok([order_payload(o) for o in result.scalars().all()])


@router.get("/orders/{order_id}")
async def get_order(
    order_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(order_payload(await _get_order(db, order_id)))


@router.post("/orders/{order_id}/refresh")
async def refresh_order(
    order_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    printful: PrintfulClient = Depends(get_printful),
):
    order = await _get_order(db, order_id)
    if not order.printful_order_id:
        raise StoreError("Order not linked to Printful", status_code=400)
    order = await refresh_order_from_printful(db, order, printful)
    return ok(order_payload(order), message="Order refreshed")


@router.post("/orders/{order_id}/refund")
async def refund_order(
    order_id: uuid.UUID,
    payload: RefundRequest,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    stripe: StripeClient = Depends(get_stripe),
):
    """Refund an order in full, or partially when an amount is given."""
    order = await _get_order(db, order_id)
    if order.payment_status != PaymentStatus.COMPLETED or not order.stripe_payment_intent_id:
        raise StoreError("Only paid orders can be refunded", status_code=400)

    refundable = to_decimal(order.total) - to_decimal(order.refunded_amount)
    amount = to_decimal(payload.amount) if payload.amount is not None else refundable
    if amount <= 0 or amount > refundable:
        raise StoreError(
            f"Refund amount must be between $0.01 and ${refundable:.2f}", status_code=400
        )

    try:
        refund = await stripe.create_refund(
            order.stripe_payment_intent_id,
            amount_cents=dollars_to_cents(amount) if payload.amount is not None else None,
        )
    except StripeError as e:
        logger.error("Refund failed for order %s: %s", order.order_number, e.message)
        raise StoreError(f"Refund failed: {e.message}", status_code=502) from e

    order.refunded_amount = to_decimal(order.refunded_amount) + (
        cents_to_dollars(refund.amount) if refund.amount else amount
    )
    order.payment_status = PaymentStatus.REFUNDED
    if payload.reason:
        order.notes = f"{order.notes}\n{payload.reason}".strip() if order.notes else payload.reason
    await db.commit()

    logger.info(
        "Refunded order %s",
        order.order_number,
        extra={
            "extra_fields": {
                "refund_id": refund.id,
                "amount": str(amount),
                "admin_id": current_admin.admin_id,
            }
        },
    )
    return ok(
        {**order_payload(order), "refund_id": refund.id, "refund_status": refund.status},
        message="Refund issued",
    )
