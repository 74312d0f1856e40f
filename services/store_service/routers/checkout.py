"""Store checkout router: shipping quotes, payment intents and order confirmation."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from libs.common.currency import as_float
from libs.common.rate_limit import checkout_limit
from libs.db.session import get_async_db
from services.store_service.models import AnalyticsEventType
from services.store_service.printful_client import PrintfulClient
from services.store_service.routers._helpers import (
    get_client_metadata,
    get_optional_printful,
    get_session_id,
    get_stripe,
    ok,
    order_client_payload,
)
from services.store_service.schemas import (
    CartTotalsResponse,
    CheckoutConfirmRequest,
    CheckoutSessionRequest,
    ShippingQuoteRequest,
)
from services.store_service.services import cart_service, checkout
from services.store_service.services.analytics import record_event
from services.store_service.stripe_client import StripeClient
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


def totals_payload(totals: checkout.CartTotals) -> dict:
    return CartTotalsResponse(
        subtotal=as_float(totals.subtotal),
        shipping=as_float(totals.shipping.cost),
        shipping_method=totals.shipping.method,
        shipping_source=totals.shipping.source,
        discount=as_float(totals.discount),
        donation=as_float(totals.donation),
        total=as_float(totals.total),
        promotion_code=totals.promotion.code if totals.promotion else None,
    ).model_dump()


@router.post("/checkout/calculate-shipping")
async def calculate_shipping(
    payload: ShippingQuoteRequest,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
    printful: Optional[PrintfulClient] = Depends(get_optional_printful),
):
    """Quote shipping and the resulting order total for the session cart."""
    cart = cart_service.ensure_purchasable(await cart_service.load_cart(db, session_id))
    totals = await checkout.price_cart(
        db,
        cart,
        payload.shipping_address.model_dump(),
        payload.promotion_code,
        printful,
    )
    return ok(totals_payload(totals))


@router.post("/checkout/create-session")
@checkout_limit
async def create_checkout_session(
    request: Request,
    payload: Optional[CheckoutSessionRequest] = None,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
    stripe: StripeClient = Depends(get_stripe),
    printful: Optional[PrintfulClient] = Depends(get_optional_printful),
):
    """Open a payment intent for the cart total."""
    payload = payload or CheckoutSessionRequest()
    intent, totals, cart = await checkout.create_payment_session(
        db,
        session_id,
        stripe,
        address=payload.shipping_address.model_dump() if payload.shipping_address else None,
        promotion_code=payload.promotion_code,
        printful=printful,
        email=payload.email,
    )
    data = {
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.id,
        "amount": intent.amount,
        "totals": totals_payload(totals),
    }

    await record_event(
        db,
        AnalyticsEventType.CHECKOUT_STARTED,
        user_agent=request.headers.get("user-agent"),
        session_id=session_id,
        cart_total=totals.subtotal,
        quantity=cart.item_count,
    )
    return ok(data)


@router.post("/checkout/confirm")
@checkout_limit
async def confirm_checkout(
    request: Request,
    payload: CheckoutConfirmRequest,
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
    stripe: StripeClient = Depends(get_stripe),
    printful: Optional[PrintfulClient] = Depends(get_optional_printful),
):
    """Create the order for a paid cart."""
    order = await checkout.confirm_checkout(
        db,
        session_id=session_id,
        payment_intent_id=payload.payment_intent_id,
        customer=payload.customer.model_dump(),
        shipping_address=payload.shipping_address.model_dump(),
        billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
        promotion_code=payload.promotion_code,
        stripe=stripe,
        printful=printful,
        client_metadata=get_client_metadata(request),
    )
    data = order_client_payload(order)

    user_agent = request.headers.get("user-agent")
    await record_event(
        db,
        AnalyticsEventType.CHECKOUT_COMPLETED,
        user_agent=user_agent,
        session_id=session_id,
        order_id=order.id,
        order_number=order.order_number,
        order_total=order.total,
        quantity=sum(item.quantity for item in order.items),
    )
    if order.discount_code:
        await record_event(
            db,
            AnalyticsEventType.PROMOTION_APPLIED,
            user_agent=user_agent,
            session_id=session_id,
            order_id=order.id,
            order_number=order.order_number,
            promotion_code=order.discount_code,
            discount_amount=order.discount_amount,
        )
    return ok(data, message="Order placed")
