"""Inbound webhooks from Printful and Stripe.

Printful deliveries are always acknowledged with 200 once the signature
checks out, so Printful never retries a delivery we could not use.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from libs.common.config import get_settings
from libs.common.currency import cents_to_dollars
from libs.common.datetime_utils import utc_now
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Order, PaymentStatus
from services.store_service.printful_client import (
    PrintfulClient,
    verify_webhook_signature,
)
from services.store_service.routers._helpers import get_optional_printful
from services.store_service.services.fulfillment import (
    SYNC_WEBHOOK_TYPES,
    apply_printful_order,
)
from services.store_service.stripe_client import StripeError, construct_event
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["webhooks"])
logger = get_logger(__name__)
settings = get_settings()

RECEIVED = {"received": True}


# ============================================================================
# PRINTFUL
# ============================================================================


@router.post("/webhooks/printful")
async def printful_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    printful: Optional[PrintfulClient] = Depends(get_optional_printful),
):
    body = await request.body()

    if settings.PRINTFUL_WEBHOOK_SECRET and not verify_webhook_signature(
        body, request.headers.get("x-printful-signature"), settings.PRINTFUL_WEBHOOK_SECRET
    ):
        logger.warning("Invalid Printful webhook signature")
        return JSONResponse(
            status_code=401, content={"success": False, "message": "Invalid signature"}
        )

    try:
        payload = json.loads(body or b"{}")
        event_type = payload.get("type")
        printful_order_id = ((payload.get("data") or {}).get("order") or {}).get("id")
        logger.info("Received Printful webhook: %s", event_type)

        if not printful_order_id:
            return RECEIVED

        result = await db.execute(
            select(Order).where(Order.printful_order_id == int(printful_order_id))
        )
        order = result.scalar_one_or_none()
        if order is None:
            logger.warning("Order not found for Printful order %s", printful_order_id)
            return RECEIVED

        if event_type not in SYNC_WEBHOOK_TYPES:
            logger.info("Unhandled Printful webhook type: %s", event_type)
            return RECEIVED
        if printful is None:
            logger.warning("Printful webhook %s ignored: client not configured", event_type)
            return RECEIVED

        printful_order = await printful.get_order(order.printful_order_id)
        if printful_order and apply_printful_order(order, printful_order):
            await db.commit()
            logger.info("Updated order %s from webhook: %s", order.order_number, event_type)
    except Exception as e:
        logger.error("Printful webhook processing error: %s", e, exc_info=True)
        await db.rollback()

    return RECEIVED


# ============================================================================
# STRIPE
# ============================================================================


async def _order_for_intent(db: AsyncSession, payment_intent_id: Optional[str]) -> Optional[Order]:
    if not payment_intent_id:
        return None
    result = await db.execute(
        select(Order).where(Order.stripe_payment_intent_id == payment_intent_id)
    )
    return result.scalar_one_or_none()


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_async_db)):
    body = await request.body()
    try:
        event = construct_event(
            body, request.headers.get("stripe-signature"), settings.STRIPE_WEBHOOK_SECRET
        )
    except StripeError as e:
        logger.error("Stripe webhook error: %s", e.message)
        raise StoreError(e.message, status_code=400) from e

    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "payment_intent.succeeded":
        logger.info("Payment succeeded: %s", obj.get("id"))
        order = await _order_for_intent(db, obj.get("id"))
        if order and order.payment_status != PaymentStatus.COMPLETED:
            order.payment_status = PaymentStatus.COMPLETED
            order.paid_at = order.paid_at or utc_now()
            await db.commit()
    elif event_type == "payment_intent.payment_failed":
        logger.warning("Payment failed: %s", obj.get("id"))
        order = await _order_for_intent(db, obj.get("id"))
        if order and order.payment_status == PaymentStatus.PENDING:
            order.payment_status = PaymentStatus.FAILED
            await db.commit()
    elif event_type == "charge.refunded":
        order = await _order_for_intent(db, obj.get("payment_intent"))
        if order:
            order.refunded_amount = cents_to_dollars(int(obj.get("amount_refunded") or 0))
            if obj.get("refunded"):
                order.payment_status = PaymentStatus.REFUNDED
            await db.commit()
            logger.info("Recorded refund for order %s", order.order_number)
    else:
        logger.info("Unhandled Stripe event: %s", event_type)

    return RECEIVED
